"""Contracts of the collaborators the planner and the CLI depend on.

The Lustre implementations live in :mod:`lprojquota._lustre`,
:mod:`lprojquota._identity` and :mod:`lprojquota._executor`; the in-memory
fake used by the tests lives in :mod:`lprojquota._pytest_plugin`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ._operations import Operation


class MountProvider(Protocol):
    def current_mountpoint(self) -> str | None:
        """Mountpoint of the target filesystem, or None if not mounted."""
        ...

    def mount(self) -> str: ...

    def unmount(self) -> None: ...


class IdentityResolver(Protocol):
    def resolve_user(self, name: str) -> int: ...

    def resolve_group(self, name: str) -> int: ...


class QuotaStateReader(Protocol):
    def get_dir_projid(self, path: str) -> int | None:
        """Project id of ``path``; None or 0 both mean unassigned."""
        ...

    def get_dir_quota_kb(self, path: str) -> int:
        """Current block quota of ``path`` in KB, 0 when unassigned."""
        ...


class MaxProjidReader(Protocol):
    def max_assigned_projid(self) -> int: ...


class OperationExecutor(Protocol):
    def apply(self, op: Operation) -> None: ...


class Filesystem(MountProvider, QuotaStateReader, MaxProjidReader, Protocol):
    """Everything a run needs from the target filesystem."""
