import grp
import os
import pwd

import pytest
from lprojquota._exceptions import LPQUnknownGroupError, LPQUnknownUserError
from lprojquota._identity import SystemIdentityResolver


def test_resolve_current_user_by_name():
    name = pwd.getpwuid(os.getuid()).pw_name
    assert SystemIdentityResolver().resolve_user(name) == os.getuid()


def test_resolve_current_group_by_name():
    name = grp.getgrgid(os.getgid()).gr_name
    assert SystemIdentityResolver().resolve_group(name) == os.getgid()


def test_resolve_numeric_ids():
    resolver = SystemIdentityResolver()
    assert resolver.resolve_user(str(os.getuid())) == os.getuid()
    assert resolver.resolve_group(str(os.getgid())) == os.getgid()


def test_unknown_user():
    with pytest.raises(LPQUnknownUserError, match="no-such-user-lpq"):
        SystemIdentityResolver().resolve_user("no-such-user-lpq")


def test_unknown_group():
    with pytest.raises(LPQUnknownGroupError, match="no-such-group-lpq"):
        SystemIdentityResolver().resolve_group("no-such-group-lpq")


def test_unknown_numeric_user():
    with pytest.raises(LPQUnknownUserError):
        SystemIdentityResolver().resolve_user("4000000000")
