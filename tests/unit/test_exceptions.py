from lprojquota._exceptions import (
    LPQError,
    LPQMalformedLineError,
    LPQMountUnavailableError,
    LPQNegativeQuotaError,
    LPQNoProjectAssignedError,
    LPQOperationFailedError,
    LPQPathOutsideFilesystemError,
    LPQUnknownGroupError,
    LPQUnknownUserError,
)
from lprojquota._operations import MakeDirectory


def test_all_errors_are_lpq_errors():
    errors = [
        LPQMalformedLineError("x", "f", 1),
        LPQUnknownUserError("bob"),
        LPQUnknownGroupError("staff"),
        LPQPathOutsideFilesystemError("/home", "/mnt/fs"),
        LPQNoProjectAssignedError("/mnt/fs/p1"),
        LPQMountUnavailableError("testfs"),
        LPQOperationFailedError(MakeDirectory("/mnt/fs/p1"), "denied"),
    ]
    for err in errors:
        assert isinstance(err, LPQError)


def test_str_without_location():
    assert str(LPQUnknownUserError("bob")) == "User bob not found"


def test_locate_adds_location():
    err = LPQUnknownGroupError("staff").locate("quotas", 12)
    assert str(err) == "quotas:12: Group staff not found"


def test_locate_keeps_existing_location():
    err = LPQMalformedLineError("x", "first", 1)
    err.locate("second", 2)
    assert (err.source, err.lineno) == ("first", 1)


def test_mount_unavailable_message():
    assert "`testfs`" in str(LPQMountUnavailableError("testfs"))
    assert str(LPQMountUnavailableError()) == "Lustre filesystem not mounted"


def test_operation_failed_names_operation():
    err = LPQOperationFailedError(MakeDirectory("/mnt/fs/p1"), "denied")
    assert str(err) == "MakeDirectory failed: denied"
    assert err.operation == MakeDirectory("/mnt/fs/p1")


def test_negative_quota_terabytes_truncate_towards_zero():
    tb = 1024 ** 3
    err = LPQNegativeQuotaError(current_kb=5 * tb + 1, result_kb=-(2 * tb + 1))
    assert (err.current_tb, err.result_tb) == (5, -2)
    assert str(err).startswith("Quota would be negative: -2 TB")
