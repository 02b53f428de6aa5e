import os
from collections.abc import Mapping
from typing import NamedTuple


class Settings(NamedTuple):
    fsname: str = "testfs"
    mountpoint: str = "/lustre/testfs/client"
    logfile: str = "/tmp/quotas.log"
    plan_logfile: str = "/tmp/quotas.tmp.log"
    lfs: str = "lfs"
    mount_helper: str = "mount-lustre-client"
    lfs_timeout: float = 60.0
    log_level: str = "INFO"


# Settings field -> environment variable
ENV_VARS = {
    "fsname": "LPQ_FSNAME",
    "mountpoint": "LPQ_MOUNTPOINT",
    "logfile": "LPQ_LOGFILE",
    "plan_logfile": "LPQ_PLAN_LOGFILE",
    "lfs": "LPQ_LFS",
    "mount_helper": "LPQ_MOUNT_HELPER",
    "lfs_timeout": "LPQ_LFS_TIMEOUT",
    "log_level": "LOG_LEVEL",
}


def load_settings(environ: Mapping[str, str] | None = None, **overrides) -> Settings:
    """Defaults, then environment variables, then non-None ``overrides``."""
    if environ is None:
        environ = os.environ
    values: dict = {}
    for field, var in ENV_VARS.items():
        if environ.get(var):
            values[field] = environ[var]
    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - set(Settings._fields)
    if unknown:
        raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")
    if "lfs_timeout" in values:
        try:
            values["lfs_timeout"] = float(values["lfs_timeout"])
        except ValueError:
            raise ValueError(f"Invalid lfs timeout: {values['lfs_timeout']!r}")
    if "log_level" in values:
        values["log_level"] = values["log_level"].upper()
    return Settings(**values)
