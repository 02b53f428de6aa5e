from lprojquota import (
    AppendAuditRecord,
    AssignIdentifier,
    MakeDirectory,
    SetOwnership,
    SetPermissions,
    SetQuotaLimit,
)

CREATE_ORDER = [
    MakeDirectory,
    SetOwnership,
    SetPermissions,
    AssignIdentifier,
    SetQuotaLimit,
    AppendAuditRecord,
]

UPDATE_ORDER = [SetQuotaLimit, AppendAuditRecord]


def kinds(ops):
    return [type(op) for op in ops]


def assert_create_plan(ops, path, projid, kbytes):
    assert kinds(ops) == CREATE_ORDER
    assert ops[0] == MakeDirectory(path)
    assert ops[3] == AssignIdentifier(path, projid)
    assert ops[4] == SetQuotaLimit(projid, path, kbytes)


def assert_update_plan(ops, path, projid, kbytes):
    assert kinds(ops) == UPDATE_ORDER
    assert ops[0] == SetQuotaLimit(projid, path, kbytes)
