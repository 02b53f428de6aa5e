"""Command line entry point: ``lprojquota <quota_spec>``."""
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from ._allocator import ProjidAllocator
from ._config import Settings, load_settings
from ._exceptions import LPQError
from ._executor import DryRunExecutor, LustreExecutor, PlanJournal
from ._identity import SystemIdentityResolver
from ._lustre import LFS, LustreFilesystem
from ._planner import Planner, reconcile
from ._protocols import (
    Filesystem,
    IdentityResolver,
    MountProvider,
    OperationExecutor,
    QuotaStateReader,
)
from ._spec import iter_spec

log = logging.getLogger(__name__)

DESCRIPTION = """\
Create or update the project folders of a lustre filesystem with the quotas
given in <quota_spec>.  There are two kinds of records, which can be mixed in
the same spec:

1. Create a new project folder with a quota
    <project_dir> <quota> <group> <user> <mode>

   The folder is created if needed, owned by <user>:<group> with <mode>
   (octal) applied recursively, and given a new project id with a quota of
   <quota> TB.  If the folder already has a project id it is kept, but the
   ownership, mode and quota are applied again.

2. Update the quota of an existing project folder
    <project_dir> <quota>

   <quota> is in TB.  A bare number sets the quota; a number prefixed with
   + or - adds to or removes from the current quota.
"""

EPILOG = """\
example spec:
  # Mountpoint                  Quota(TB)  Group  User       Mode(Octal)
  /lustre/testfs/client/mount1  250        grp1   admin-usr  0775
  /lustre/testfs/client/mount2  +2
  /lustre/testfs/client/mount3  50         grp4   admin-usr  0555

Applied changes are appended to the audit log (--logfile).  The commands
applying them are written to the plan log (--plan-logfile) on every run.
"""


class Backend:
    """The collaborators one run works with."""

    def __init__(
        self,
        filesystem: Filesystem,
        identities: IdentityResolver,
        executor: OperationExecutor,
        state: QuotaStateReader | None = None,
    ) -> None:
        self.filesystem = filesystem
        self.identities = identities
        self.executor = executor
        # Quota state lines are planned against; the filesystem unless overlaid
        self.state = state if state is not None else filesystem


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lprojquota",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("spec", metavar="quota_spec", help="quota spec file")
    parser.add_argument("--fsname", help="lustre filesystem name")
    parser.add_argument("--mountpoint", help="where to mount the filesystem if it is not mounted")
    parser.add_argument("--logfile", help="audit log applied changes are appended to")
    parser.add_argument("--plan-logfile", help="file the commands of the run are written to")
    parser.add_argument("--lfs", help="lfs(1) executable")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="print the commands instead of applying them; later lines see the "
        "project ids and quotas earlier lines would have set",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@contextmanager
def mounted(provider: MountProvider) -> Iterator[str]:
    """Mount for the duration of the block; unmount whatever was mounted."""
    mountpoint = provider.mount()
    try:
        yield mountpoint
    finally:
        provider.unmount()


def lustre_backend(settings: Settings, dry_run: bool = False) -> Backend:
    lfs = LFS(settings.lfs, timeout=settings.lfs_timeout)
    filesystem = LustreFilesystem(
        settings.fsname,
        settings.mountpoint,
        lfs=lfs,
        mount_helper=settings.mount_helper,
        timeout=settings.lfs_timeout,
    )
    if dry_run:
        dry = DryRunExecutor(sys.stdout, settings.lfs, settings.logfile, state=filesystem)
        return Backend(filesystem, SystemIdentityResolver(), dry, state=dry)
    executor = LustreExecutor(lfs, settings.logfile, filesystem=filesystem)
    return Backend(filesystem, SystemIdentityResolver(), executor)


def run(spec: str, settings: Settings, backend: Backend) -> int:
    """Reconcile the filesystem with ``spec``; returns the exit status."""
    fs = backend.filesystem
    try:
        with mounted(fs):
            # Read once: the allocator tracks new ids for the rest of the run
            allocator = ProjidAllocator.from_reader(fs)
            planner = Planner(fs, backend.identities, backend.state, allocator)
            journal = PlanJournal(settings.plan_logfile, settings.lfs, settings.logfile)
            applied = reconcile(iter_spec(spec), planner, backend.executor, journal)
    except LPQError as e:
        log.error("%s", e)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        log.error("%s: %s", spec, e)
        return 1

    log.info(
        "Applied %d operations from %s, %d new project ids",
        len(applied), spec, len(allocator.allocated),
    )
    return 0


def _terminate(signum, frame):
    # Unwind through the finally blocks so the filesystem gets unmounted
    log.info("Shutting down (signal %d)", signum)
    raise SystemExit(128 + signum)


def main(argv: Sequence[str] | None = None, backend: Backend | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(
            fsname=args.fsname,
            mountpoint=args.mountpoint,
            logfile=args.logfile,
            plan_logfile=args.plan_logfile,
            lfs=args.lfs,
        )
    except ValueError as e:
        parser.error(str(e))
    configure_logging(settings.log_level)

    if not os.path.isfile(args.spec):
        log.error("Input file error: No such file: %s", args.spec)
        parser.print_usage(sys.stderr)
        return 1

    signal.signal(signal.SIGTERM, _terminate)
    if backend is None:
        backend = lustre_backend(settings, dry_run=args.dry_run)
    return run(args.spec, settings, backend)
