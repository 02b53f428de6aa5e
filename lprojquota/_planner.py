from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ._allocator import ProjidAllocator
from ._exceptions import (
    LPQError,
    LPQMountUnavailableError,
    LPQNoProjectAssignedError,
    LPQPathOutsideFilesystemError,
)
from ._operations import (
    AppendAuditRecord,
    AssignIdentifier,
    MakeDirectory,
    Operation,
    SetOwnership,
    SetPermissions,
    SetQuotaLimit,
    audit_text,
)
from ._path import is_under, normalize_path
from ._protocols import (
    IdentityResolver,
    MountProvider,
    OperationExecutor,
    QuotaStateReader,
)
from ._quota import resolve_quota, tb_to_kb
from ._spec import CreateOrUpdate, SpecLine, Update

if TYPE_CHECKING:
    from ._executor import PlanJournal

log = logging.getLogger(__name__)


def _where(line: SpecLine) -> str:
    if line.source is None or line.lineno is None:
        return ""
    return f"{line.source}:{line.lineno}: "


class Planner:
    """Turns spec lines into the ordered operations that reconcile them.

    The planner only reads filesystem state; nothing is changed until an
    executor applies the returned operations.  The allocator is the only
    state carried from one line to the next.
    """

    def __init__(
        self,
        mounts: MountProvider,
        identities: IdentityResolver,
        state: QuotaStateReader,
        allocator: ProjidAllocator,
    ) -> None:
        self._mounts = mounts
        self._identities = identities
        self._state = state
        self._allocator = allocator

    @property
    def allocator(self) -> ProjidAllocator:
        return self._allocator

    def plan(self, line: SpecLine) -> list[Operation]:
        try:
            if isinstance(line, CreateOrUpdate):
                return self._plan_create(line)
            if isinstance(line, Update):
                return self._plan_update(line)
        except LPQError as exc:
            raise exc.locate(line.source, line.lineno)
        raise TypeError(f"Unsupported spec line: {line!r}")

    # -- helpers --

    def check_path(self, path: str) -> str:
        """Return the normalized ``path`` if it lies in the mounted filesystem."""
        mountpoint = self._mounts.current_mountpoint()
        if not mountpoint:
            raise LPQMountUnavailableError()
        if not is_under(path, mountpoint):
            raise LPQPathOutsideFilesystemError(path, mountpoint)
        return normalize_path(path)

    def _assigned_projid(self, path: str) -> int | None:
        projid = self._state.get_dir_projid(path)
        if not projid:
            return None
        return projid

    def _plan_create(self, line: CreateOrUpdate) -> list[Operation]:
        path = self.check_path(line.path)

        uid = self._identities.resolve_user(line.user)
        gid = self._identities.resolve_group(line.group)

        projid = self._assigned_projid(path)
        if projid is None:
            projid = self._allocator.allocate()
            log.info("Assigning new projid %d to `%s`", projid, path)
        else:
            # An existing assignment is never overwritten
            log.warning(
                "%sRespecting `%s` associated projid %d", _where(line), path, projid
            )

        return [
            MakeDirectory(path),
            SetOwnership(path, uid, gid),
            SetPermissions(path, line.mode),
            AssignIdentifier(path, projid),
            SetQuotaLimit(projid, path, tb_to_kb(line.quota_tb)),
            AppendAuditRecord(
                audit_text(line.path, line.quota_tb, line.group, line.user, line.mode)
            ),
        ]

    def _plan_update(self, line: Update) -> list[Operation]:
        path = self.check_path(line.path)

        projid = self._assigned_projid(path)
        if projid is None:
            raise LPQNoProjectAssignedError(path)

        current_kb = self._state.get_dir_quota_kb(path)
        new_kb = resolve_quota(current_kb, line.quota_expr)
        log.info(
            "Quota of `%s` (projid %d): %d KB -> %d KB", path, projid, current_kb, new_kb
        )

        return [
            SetQuotaLimit(projid, path, new_kb),
            AppendAuditRecord(audit_text(line.path, line.quota_expr)),
        ]


def reconcile(
    lines: Iterable[SpecLine],
    planner: Planner,
    executor: OperationExecutor,
    journal: PlanJournal | None = None,
) -> list[Operation]:
    """Plan and apply ``lines`` one at a time, in order.

    The first error stops the run.  Operations of the lines before it have
    already been applied and are not rolled back.
    """
    applied: list[Operation] = []
    for line in lines:
        ops = planner.plan(line)
        for op in ops:
            if journal is not None:
                journal.record(op)
            try:
                executor.apply(op)
            except LPQError as exc:
                raise exc.locate(line.source, line.lineno)
            applied.append(op)
    return applied
