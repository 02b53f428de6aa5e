"""pytest fixture plugin.

Usage::

    # conftest.py
    pytest_plugins = ["lprojquota._pytest_plugin"]

This makes the ``lustre`` fixture available: an :class:`InMemoryLustre`
mounted on ``/mnt/fs`` whose largest project id is 10, knowing users
``userA`` (1001), ``userB`` (1002) and groups ``grpA`` (2001), ``grpB``
(2002)::

    def test_something(lustre):
        lustre.add_project("/mnt/fs/p1", projid=7, quota_kb=100 * KB_PER_TB)
"""
from __future__ import annotations

import pytest

from ._exceptions import (
    LPQMountUnavailableError,
    LPQOperationFailedError,
    LPQPathOutsideFilesystemError,
    LPQQueryFailedError,
    LPQUnknownGroupError,
    LPQUnknownUserError,
)
from ._operations import (
    AppendAuditRecord,
    AssignIdentifier,
    MakeDirectory,
    Operation,
    SetOwnership,
    SetPermissions,
    SetQuotaLimit,
)
from ._path import is_under, normalize_path


class InMemoryLustre:
    """A Lustre filesystem, its identity databases and its tooling, in memory.

    Implements every collaborator contract of :mod:`lprojquota._protocols`,
    executor included, so applied operations show up in later lookups.
    ``max_projid=None`` makes the maximum projid query fail.
    """

    def __init__(
        self,
        mountpoint: str = "/mnt/fs",
        max_projid: int | None = 0,
        users: dict[str, int] | None = None,
        groups: dict[str, int] | None = None,
        mounted: bool = True,
    ) -> None:
        self.mountpoint = mountpoint
        self.is_mounted = mounted
        self.max_projid = max_projid
        self.users: dict[str, int] = dict(users or {})
        self.groups: dict[str, int] = dict(groups or {})
        # path -> {"uid", "gid", "mode", "projid"}
        self.dirs: dict[str, dict] = {}
        self.quotas: dict[int, int] = {}
        self.applied: list[Operation] = []
        self.audit: list[str] = []
        self.max_queries = 0
        self.mount_calls = 0
        self.unmount_calls = 0
        self._mounted_here = False

    def add_project(self, path: str, projid: int, quota_kb: int = 0) -> None:
        self.dirs[normalize_path(path)] = {"uid": 0, "gid": 0, "mode": "0755", "projid": projid}
        self.quotas[projid] = quota_kb
        if self.max_projid is not None:
            self.max_projid = max(self.max_projid, projid)

    def projid_of(self, path: str) -> int | None:
        return self.dirs.get(normalize_path(path), {}).get("projid")

    def quota_of(self, path: str) -> int:
        projid = self.projid_of(path)
        return self.quotas.get(projid, 0) if projid else 0

    def _require(self, path: str | None = None) -> None:
        if not self.is_mounted:
            raise LPQMountUnavailableError()
        if path is not None and not is_under(path, self.mountpoint):
            raise LPQPathOutsideFilesystemError(path, self.mountpoint)

    # -- mount provider --

    def current_mountpoint(self) -> str | None:
        return self.mountpoint if self.is_mounted else None

    def mount(self) -> str:
        if not self.is_mounted:
            self.mount_calls += 1
            self.is_mounted = True
            self._mounted_here = True
        return self.mountpoint

    def unmount(self) -> None:
        if self._mounted_here:
            self.unmount_calls += 1
            self.is_mounted = False
            self._mounted_here = False

    # -- identity resolver --

    def resolve_user(self, name: str) -> int:
        if name not in self.users:
            raise LPQUnknownUserError(name)
        return self.users[name]

    def resolve_group(self, name: str) -> int:
        if name not in self.groups:
            raise LPQUnknownGroupError(name)
        return self.groups[name]

    # -- readers --

    def max_assigned_projid(self) -> int:
        self._require()
        self.max_queries += 1
        if self.max_projid is None:
            raise LPQQueryFailedError("Unable to determine maximum projid")
        return self.max_projid

    def get_dir_projid(self, path: str) -> int | None:
        self._require(path)
        return self.projid_of(path)

    def get_dir_quota_kb(self, path: str) -> int:
        self._require(path)
        return self.quota_of(path)

    # -- executor --

    def apply(self, op: Operation) -> None:
        if isinstance(op, MakeDirectory):
            self._require(op.path)
            self.dirs.setdefault(op.path, {"uid": 0, "gid": 0, "mode": "0755", "projid": None})
        elif isinstance(op, AppendAuditRecord):
            self.audit.append(op.text)
        else:
            self._require(op.path)
            if op.path not in self.dirs:
                raise LPQOperationFailedError(op, f"No such directory: {op.path}")
            entry = self.dirs[op.path]
            if isinstance(op, SetOwnership):
                entry["uid"], entry["gid"] = op.uid, op.gid
            elif isinstance(op, SetPermissions):
                entry["mode"] = op.mode
            elif isinstance(op, AssignIdentifier):
                entry["projid"] = op.projid
            elif isinstance(op, SetQuotaLimit):
                self.quotas[op.projid] = op.kbytes
                if self.max_projid is not None:
                    self.max_projid = max(self.max_projid, op.projid)
            else:
                raise TypeError(f"Unsupported operation: {op!r}")
        self.applied.append(op)


@pytest.fixture
def lustre() -> InMemoryLustre:
    """An :class:`InMemoryLustre` mounted on ``/mnt/fs`` with max projid 10.

    Provides an independent instance per test (function scope).
    """
    return InMemoryLustre(
        mountpoint="/mnt/fs",
        max_projid=10,
        users={"userA": 1001, "userB": 1002},
        groups={"grpA": 2001, "grpB": 2002},
    )
