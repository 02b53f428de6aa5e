"""Provisioning use cases: new projects, quota updates and re-runs of a spec."""
from lprojquota import (
    KB_PER_TB,
    AppendAuditRecord,
    AssignIdentifier,
    MakeDirectory,
    Planner,
    ProjidAllocator,
    SetOwnership,
    SetPermissions,
    SetQuotaLimit,
    iter_spec_lines,
    parse_line,
    reconcile,
)
from tests.helpers.asserts import kinds


def test_new_project_on_filesystem_with_max_projid_10(planner):
    """A new directory gets max + 1 and a quota of 250 TB in KB."""
    ops = planner.plan(parse_line("/mnt/fs/p1 250 grpA userA 0775", 1))

    assert kinds(ops) == [
        MakeDirectory,
        SetOwnership,
        SetPermissions,
        AssignIdentifier,
        SetQuotaLimit,
        AppendAuditRecord,
    ]
    assert ops[3] == AssignIdentifier("/mnt/fs/p1", 11)
    assert ops[4] == SetQuotaLimit(11, "/mnt/fs/p1", 250 * 1024 * 1024 * 1024)


def test_relative_update_of_existing_project(planner, lustre):
    """An update only touches the quota, never the directory itself."""
    lustre.add_project("/mnt/fs/p2", projid=7, quota_kb=100 * KB_PER_TB)

    ops = planner.plan(parse_line("/mnt/fs/p2 +2", 1))

    assert ops == [
        SetQuotaLimit(7, "/mnt/fs/p2", 102 * KB_PER_TB),
        AppendAuditRecord("/mnt/fs/p2\t+2"),
    ]


def test_rerun_keeps_project_ids(lustre):
    """Running the same spec twice never mints or changes a project id."""
    spec = [
        "/mnt/fs/p1 250 grpA userA 0775",
        "/mnt/fs/p2 50 grpB userB 0555",
    ]

    first = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(spec), first, lustre)
    ids = {p: lustre.projid_of(p) for p in ("/mnt/fs/p1", "/mnt/fs/p2")}
    assert ids == {"/mnt/fs/p1": 11, "/mnt/fs/p2": 12}

    second = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(spec), second, lustre)
    assert second.allocator.allocated == ()
    assert {p: lustre.projid_of(p) for p in ids} == ids


def test_rerun_resets_quota_to_create_line_value(lustre):
    """Create lines set the quota absolutely, undoing earlier relative updates."""
    planner = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(["/mnt/fs/p1 10 grpA userA 0775"]), planner, lustre)
    reconcile(iter_spec_lines(["/mnt/fs/p1 +5"]), planner, lustre)
    assert lustre.quota_of("/mnt/fs/p1") == 15 * KB_PER_TB

    planner = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(["/mnt/fs/p1 10 grpA userA 0775"]), planner, lustre)
    assert lustre.quota_of("/mnt/fs/p1") == 10 * KB_PER_TB


def test_rerun_reapplies_ownership_and_mode(lustre):
    planner = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(["/mnt/fs/p1 1 grpA userA 0775"]), planner, lustre)
    reconcile(iter_spec_lines(["/mnt/fs/p1 1 grpB userB 0700"]), planner, lustre)
    assert lustre.dirs["/mnt/fs/p1"] == {"uid": 1002, "gid": 2002, "mode": "0700", "projid": 11}


def test_mixed_spec(lustre):
    """Creates and updates can be mixed; ids follow file order."""
    lustre.add_project("/mnt/fs/old", projid=3, quota_kb=20 * KB_PER_TB)
    spec = [
        "# Mountpoint  Quota(TB)  Group  User  Mode(Octal)",
        "/mnt/fs/a 1 grpA userA 0775",
        "/mnt/fs/old -5",
        "/mnt/fs/b 2 grpA userA 0775",
        "/mnt/fs/old 40",
        "/mnt/fs/c 3 grpB userB 0555",
    ]
    planner = Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))
    reconcile(iter_spec_lines(spec), planner, lustre)

    assert [lustre.projid_of(f"/mnt/fs/{d}") for d in "abc"] == [11, 12, 13]
    assert lustre.projid_of("/mnt/fs/old") == 3
    assert lustre.quota_of("/mnt/fs/old") == 40 * KB_PER_TB
    assert len(lustre.audit) == 5
