from typing import NamedTuple


class MakeDirectory(NamedTuple):
    path: str


class SetOwnership(NamedTuple):
    path: str
    uid: int
    gid: int


class SetPermissions(NamedTuple):
    path: str
    mode: str


class AssignIdentifier(NamedTuple):
    path: str
    projid: int


class SetQuotaLimit(NamedTuple):
    projid: int
    path: str
    kbytes: int


class AppendAuditRecord(NamedTuple):
    text: str


Operation = (
    MakeDirectory
    | SetOwnership
    | SetPermissions
    | AssignIdentifier
    | SetQuotaLimit
    | AppendAuditRecord
)


def audit_text(*fields: object) -> str:
    """Audit record body: the original spec fields, tab separated."""
    return "\t".join(str(f) for f in fields)
