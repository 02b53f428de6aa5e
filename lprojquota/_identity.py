import grp
import pwd

from ._exceptions import LPQUnknownGroupError, LPQUnknownUserError


class SystemIdentityResolver:
    """Resolves names through the system databases, like ``getent``.

    Numeric names are accepted when they match an existing uid or gid.
    """

    def resolve_user(self, name: str) -> int:
        try:
            return pwd.getpwnam(name).pw_uid
        except KeyError:
            pass
        if name.isascii() and name.isdigit():
            try:
                return pwd.getpwuid(int(name)).pw_uid
            except (KeyError, OverflowError):
                pass
        raise LPQUnknownUserError(name)

    def resolve_group(self, name: str) -> int:
        try:
            return grp.getgrnam(name).gr_gid
        except KeyError:
            pass
        if name.isascii() and name.isdigit():
            try:
                return grp.getgrgid(int(name)).gr_gid
            except (KeyError, OverflowError):
                pass
        raise LPQUnknownGroupError(name)
