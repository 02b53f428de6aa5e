"""Lustre collaborators: mount bookkeeping, project ids and quota state.

Everything here shells out to ``lfs(1)``, ``mount(8)`` and the site mount
helper, or reads the quota master target files under ``/proc``.  None of
it is safe to call from several threads at once.
"""
from __future__ import annotations

import glob
import logging
import os
import re
import subprocess

import psutil

from ._exceptions import (
    LPQError,
    LPQMountUnavailableError,
    LPQPathOutsideFilesystemError,
    LPQQueryFailedError,
)
from ._path import is_under

log = logging.getLogger(__name__)

#: "- id:      1000" entries of the qmt glb-prj index
RE_GLB_PRJ_ID = re.compile(r"^\s*-\s+id:\s+(?P<id>[0-9]+)")


def parse_glb_prj(text: str) -> list[int]:
    """Project ids listed in a qmt ``glb-prj`` file."""
    ids = []
    for line in text.splitlines():
        match = RE_GLB_PRJ_ID.match(line)
        if match:
            ids.append(int(match.group("id")))
    return ids


def parse_project_output(stdout: str) -> int | None:
    """Project id from ``lfs project -d <dir>`` output, None if absent.

    The output reads ``<projid> <flag> <dir>``, e.g. ``    7 P /mnt/fs/p1``.
    """
    for line in stdout.splitlines():
        fields = line.split()
        if not fields:
            continue
        if fields[0].isdigit():
            return int(fields[0])
        return None
    return None


def parse_quota_output(stdout: str) -> int:
    """Block quota (soft limit, KB) from ``lfs quota -p <id> <dir>`` output.

    Long filesystem names make ``lfs`` wrap the values onto the next line,
    so the record is read as one token stream after the header.  Values
    over their limit carry a trailing ``*``.
    """
    lines = stdout.splitlines()
    for i, line in enumerate(lines):
        if line.split()[:1] == ["Filesystem"]:
            tokens = " ".join(lines[i + 1:]).split()
            break
    else:
        raise LPQQueryFailedError("Unexpected lfs quota output: no header line")

    # filesystem, kbytes, quota, limit, ...
    if len(tokens) < 3:
        raise LPQQueryFailedError(f"Unexpected lfs quota output: {stdout!r}")
    quota = tokens[2].rstrip("*")
    if not quota.isdigit():
        raise LPQQueryFailedError(f"Unexpected lfs quota value: {tokens[2]!r}")
    return int(quota)


class LFS:
    """Thin wrapper around the ``lfs(1)`` commands used for project quotas."""

    def __init__(self, lfs: str = "lfs", timeout: float | None = 60.0) -> None:
        self.lfs = lfs
        self.timeout = timeout

    def _run(self, *args: str, check: bool = False) -> subprocess.CompletedProcess:
        cmd = [self.lfs, *args]
        log.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                check=check,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise LPQQueryFailedError(f"{self.lfs} not found, is the lustre client installed?")
        except subprocess.TimeoutExpired:
            raise LPQQueryFailedError(f"{' '.join(cmd)} timed out after {self.timeout}s")

    def project_id(self, path: str) -> int | None:
        result = self._run("project", "-d", path)
        if result.returncode != 0:
            # A directory that does not exist yet has no project: not an error
            if not os.path.lexists(path):
                return None
            raise LPQQueryFailedError(
                f"lfs project -d {path} failed: {result.stderr.strip()}"
            )
        return parse_project_output(result.stdout)

    def project_quota_kb(self, projid: int, path: str) -> int:
        result = self._run("quota", "-p", str(projid), path)
        if result.returncode != 0:
            raise LPQQueryFailedError(
                f"lfs quota -p {projid} {path} failed: {result.stderr.strip()}"
            )
        return parse_quota_output(result.stdout)

    def set_project(self, path: str, projid: int) -> None:
        self._run("project", "-p", str(projid), "-s", path, check=True)

    def set_quota(self, projid: int, path: str, kbytes: int) -> None:
        self._run(
            "setquota", "-p", str(projid), "-b", str(kbytes), "-B", str(kbytes), path,
            check=True,
        )


class LustreFilesystem:
    """The one Lustre filesystem, named ``fsname``, a run works on.

    Implements the mount provider, quota state reader and maximum projid
    reader contracts.  A filesystem that was already mounted when
    :meth:`mount` is called is reused and left mounted afterwards.
    """

    def __init__(
        self,
        fsname: str,
        mountpoint: str,
        lfs: LFS | None = None,
        mount_helper: str = "mount-lustre-client",
        proc_root: str = "/proc",
        timeout: float | None = 60.0,
    ) -> None:
        self.fsname = fsname
        self.mountpoint = mountpoint
        self.lfs = lfs if lfs is not None else LFS(timeout=timeout)
        self.mount_helper = mount_helper
        self.proc_root = proc_root
        self.timeout = timeout
        self._mounted_here: str | None = None

    # -- mount provider --

    def current_mountpoint(self) -> str | None:
        suffix = f":/{self.fsname}"
        for part in psutil.disk_partitions(all=True):
            if part.device.endswith(suffix):
                return part.mountpoint
        return None

    def mount(self) -> str:
        current = self.current_mountpoint()
        if current:
            log.warning("Using `%s` mount on %s", self.fsname, current)
            self.mountpoint = current
            return current

        cmd = self._mount_command()
        log.info("Mounting `%s`: %s", self.fsname, " ".join(cmd))
        self._check_call(cmd, f"Unable to mount `{self.fsname}`")
        mounted = self.current_mountpoint()
        if not mounted:
            raise LPQMountUnavailableError(self.fsname)
        self._mounted_here = mounted
        return mounted

    def unmount(self) -> None:
        if self._mounted_here is None:
            return
        mountpoint, self._mounted_here = self._mounted_here, None
        log.info("Unmounting `%s` from %s", self.fsname, mountpoint)
        self._check_call(["umount", mountpoint], f"Unable to unmount {mountpoint}")

    def _mount_command(self) -> list[str]:
        # The helper prints the full mount command; keep "mount -t lustre
        # <opts> <device>" and substitute our own mountpoint.
        result = self._check_call(
            [self.mount_helper, "--fs", self.fsname, "-n"],
            f"Unable to build the mount command for `{self.fsname}`",
        )
        words = result.stdout.split()[:4]
        if len(words) < 4:
            raise LPQMountUnavailableError(self.fsname)
        return [*words, self.mountpoint]

    def _check_call(self, cmd: list[str], what: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd, check=True, capture_output=True, text=True, timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            raise LPQError(f"{what}: {e.stderr.strip()}")
        except (OSError, subprocess.TimeoutExpired) as e:
            raise LPQError(f"{what}: {e}")

    def require_mounted(self, path: str | None = None) -> str:
        mountpoint = self.current_mountpoint()
        if not mountpoint:
            raise LPQMountUnavailableError(self.fsname)
        if path is not None and not is_under(path, mountpoint):
            raise LPQPathOutsideFilesystemError(path, mountpoint)
        return mountpoint

    # -- maximum projid reader --

    def glb_prj_pattern(self) -> str:
        return os.path.join(
            self.proc_root, "fs", "lustre", "qmt", f"{self.fsname}-*", "dt-0x0", "glb-prj"
        )

    def max_assigned_projid(self) -> int:
        """Largest project id known to the quota master, 0 if there is none.

        Raises :class:`LPQQueryFailedError` when the index cannot be read,
        which is distinct from an index that lists no project.
        """
        self.require_mounted()
        pattern = self.glb_prj_pattern()
        files = sorted(glob.glob(pattern))
        if not files:
            raise LPQQueryFailedError(f"Unable to determine maximum projid, check {pattern}")
        ids: list[int] = []
        for fname in files:
            try:
                with open(fname) as f:
                    ids.extend(parse_glb_prj(f.read()))
            except OSError as e:
                raise LPQQueryFailedError(f"Unable to determine maximum projid: {e}")
        return max(ids, default=0)

    # -- quota state reader --

    def get_dir_projid(self, path: str) -> int | None:
        self.require_mounted(path)
        return self.lfs.project_id(path)

    def get_dir_quota_kb(self, path: str) -> int:
        self.require_mounted(path)
        projid = self.get_dir_projid(path)
        if not projid:
            return 0
        return self.lfs.project_quota_kb(projid, path)
