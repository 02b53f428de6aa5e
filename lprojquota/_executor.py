from __future__ import annotations

import datetime
import logging
import os
import shlex
import subprocess
from collections.abc import Callable
from typing import TextIO

from ._exceptions import LPQError, LPQOperationFailedError
from ._lustre import LFS, LustreFilesystem
from ._operations import (
    AppendAuditRecord,
    AssignIdentifier,
    MakeDirectory,
    Operation,
    SetOwnership,
    SetPermissions,
    SetQuotaLimit,
)
from ._protocols import QuotaStateReader

log = logging.getLogger(__name__)


def rfc3339_now() -> str:
    """Local time as ``date --rfc-3339=seconds`` prints it."""
    return datetime.datetime.now().astimezone().isoformat(sep=" ", timespec="seconds")


def audit_line(text: str, timestamp: str) -> str:
    return f"[{timestamp}] {text}\n"


def render_operation(op: Operation, lfs: str = "lfs", logfile: str = "/tmp/quotas.log") -> str:
    """Shell command equivalent to applying ``op``."""
    q = shlex.quote
    if isinstance(op, MakeDirectory):
        return f"mkdir -p {q(op.path)}"
    if isinstance(op, SetOwnership):
        return f"chown -R {op.uid}:{op.gid} {q(op.path)}"
    if isinstance(op, SetPermissions):
        return f"chmod -R {op.mode} {q(op.path)}"
    if isinstance(op, AssignIdentifier):
        return f"{lfs} project -p {op.projid} -s {q(op.path)}"
    if isinstance(op, SetQuotaLimit):
        return f"{lfs} setquota -p {op.projid} -b {op.kbytes} -B {op.kbytes} {q(op.path)}"
    if isinstance(op, AppendAuditRecord):
        return f'echo "[$(date --rfc-3339=seconds)] {op.text}" >> {q(logfile)}'
    raise TypeError(f"Unsupported operation: {op!r}")


def _walk(path: str):
    """Yield ``path`` and everything below it, without following symlinks."""
    yield path
    for root, dirs, files in os.walk(path):
        for name in dirs + files:
            yield os.path.join(root, name)


class LustreExecutor:
    """Applies operations to the real filesystem, one at a time."""

    def __init__(
        self,
        lfs: LFS,
        logfile: str,
        clock: Callable[[], str] = rfc3339_now,
        filesystem: LustreFilesystem | None = None,
    ) -> None:
        self.lfs = lfs
        self.logfile = logfile
        self.clock = clock
        # When set, every directory operation is checked against its mountpoint
        self.filesystem = filesystem

    def apply(self, op: Operation) -> None:
        log.debug("Applying %s", render_operation(op, self.lfs.lfs, self.logfile))
        try:
            self._apply(op)
        except LPQError:
            raise
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            raise LPQOperationFailedError(op, str(e)) from e

    def _apply(self, op: Operation) -> None:
        if self.filesystem is not None and not isinstance(op, AppendAuditRecord):
            self.filesystem.require_mounted(op.path)
        if isinstance(op, MakeDirectory):
            os.makedirs(op.path, exist_ok=True)
        elif isinstance(op, SetOwnership):
            for p in _walk(op.path):
                os.chown(p, op.uid, op.gid, follow_symlinks=(p == op.path))
        elif isinstance(op, SetPermissions):
            mode = int(op.mode, 8)
            for p in _walk(op.path):
                if p != op.path and os.path.islink(p):
                    continue
                os.chmod(p, mode)
        elif isinstance(op, AssignIdentifier):
            self.lfs.set_project(op.path, op.projid)
        elif isinstance(op, SetQuotaLimit):
            self.lfs.set_quota(op.projid, op.path, op.kbytes)
        elif isinstance(op, AppendAuditRecord):
            with open(self.logfile, "a", encoding="utf-8") as f:
                f.write(audit_line(op.text, self.clock()))
        else:
            raise TypeError(f"Unsupported operation: {op!r}")


class DryRunExecutor:
    """Prints the shell equivalent of each operation instead of applying it.

    Project ids and quotas it would have set are remembered and answered
    as quota state on top of ``state``, so the later lines of a run are
    planned as they would be for real.
    """

    def __init__(
        self,
        stream: TextIO,
        lfs: str = "lfs",
        logfile: str = "/tmp/quotas.log",
        state: QuotaStateReader | None = None,
    ) -> None:
        self.stream = stream
        self.lfs = lfs
        self.logfile = logfile
        self.state = state
        self._projids: dict[str, int] = {}
        self._quotas: dict[int, int] = {}

    def apply(self, op: Operation) -> None:
        print(render_operation(op, self.lfs, self.logfile), file=self.stream)
        if isinstance(op, AssignIdentifier):
            self._projids[op.path] = op.projid
        elif isinstance(op, SetQuotaLimit):
            self._quotas[op.projid] = op.kbytes

    # -- quota state reader --

    def get_dir_projid(self, path: str) -> int | None:
        if path in self._projids:
            return self._projids[path]
        if self.state is None:
            return None
        return self.state.get_dir_projid(path)

    def get_dir_quota_kb(self, path: str) -> int:
        projid = self.get_dir_projid(path)
        if projid in self._quotas:
            return self._quotas[projid]
        if self.state is None or path in self._projids:
            return 0
        return self.state.get_dir_quota_kb(path)


class PlanJournal:
    """Shell rendering of every operation of the run, written before it is applied."""

    def __init__(self, path: str, lfs: str = "lfs", logfile: str = "/tmp/quotas.log") -> None:
        self.path = path
        self.lfs = lfs
        self.logfile = logfile
        with open(self.path, "w", encoding="utf-8"):
            pass

    def record(self, op: Operation) -> str:
        command = render_operation(op, self.lfs, self.logfile)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(command + "\n")
        return command
