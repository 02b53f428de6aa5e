import posixpath


def normalize_path(path: str) -> str:
    if not path:
        raise ValueError("Empty path")
    normalized = posixpath.normpath(path)
    # normpath keeps a leading "//"
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def is_under(path: str, mountpoint: str) -> bool:
    """True if ``path`` is ``mountpoint`` itself or lies below it.

    Both paths are normalized first, so ``..`` components cannot escape
    the mountpoint and ``/mnt/fs2`` is not considered to be under
    ``/mnt/fs``.  Relative paths are never under a mountpoint.
    """
    npath = normalize_path(path)
    nmount = normalize_path(mountpoint)
    if not npath.startswith("/") or not nmount.startswith("/"):
        return False
    if nmount == "/":
        return True
    return npath == nmount or npath.startswith(nmount + "/")
