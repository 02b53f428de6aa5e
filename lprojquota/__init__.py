from typing import TYPE_CHECKING

from ._allocator import ProjidAllocator
from ._config import Settings, load_settings
from ._exceptions import (
    LPQError,
    LPQMalformedLineError,
    LPQMountUnavailableError,
    LPQNegativeQuotaError,
    LPQNoProjectAssignedError,
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
from ._planner import Planner, reconcile
from ._quota import KB_PER_TB, resolve_quota
from ._spec import CreateOrUpdate, Update, iter_spec, iter_spec_lines, parse_line

if TYPE_CHECKING:
    from ._executor import LustreExecutor
    from ._lustre import LFS, LustreFilesystem


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    # The Lustre backend needs psutil; only import it when asked for
    if name in ("LFS", "LustreFilesystem"):
        from . import _lustre

        globals()[name] = getattr(_lustre, name)
        return globals()[name]
    if name == "LustreExecutor":
        from ._executor import LustreExecutor

        globals()["LustreExecutor"] = LustreExecutor
        return LustreExecutor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Planner",
    "ProjidAllocator",
    "reconcile",
    "resolve_quota",
    "KB_PER_TB",
    "parse_line",
    "iter_spec",
    "iter_spec_lines",
    "CreateOrUpdate",
    "Update",
    "Operation",
    "MakeDirectory",
    "SetOwnership",
    "SetPermissions",
    "AssignIdentifier",
    "SetQuotaLimit",
    "AppendAuditRecord",
    "Settings",
    "load_settings",
    "LPQError",
    "LPQMalformedLineError",
    "LPQUnknownUserError",
    "LPQUnknownGroupError",
    "LPQPathOutsideFilesystemError",
    "LPQNoProjectAssignedError",
    "LPQNegativeQuotaError",
    "LPQQueryFailedError",
    "LPQMountUnavailableError",
    "LPQOperationFailedError",
    "LFS",
    "LustreFilesystem",
    "LustreExecutor",
]
__version__ = "0.1.0"
