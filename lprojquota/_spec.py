"""Quota spec reader.

One record per line, whitespace separated::

    # Mountpoint                  Quota(TB)  Group  User       Mode(Octal)
    /lustre/testfs/client/mount1  250        grp1   admin-usr  0775
    /lustre/testfs/client/mount2  +2

Five fields create (or re-apply) a project, two fields update the quota of
an existing one.  The record type is decided by the field count alone.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import NamedTuple

from ._exceptions import LPQMalformedLineError
from ._quota import is_quota_expr

_MODE = re.compile(r"^[0-7]{3,4}$")
_ABSOLUTE = re.compile(r"^[0-9]+$")


class CreateOrUpdate(NamedTuple):
    path: str
    quota_tb: int
    group: str
    user: str
    mode: str
    source: str | None = None
    lineno: int | None = None


class Update(NamedTuple):
    path: str
    quota_expr: str
    source: str | None = None
    lineno: int | None = None


SpecLine = CreateOrUpdate | Update


def parse_line(raw: str, lineno: int, source: str | None = None) -> SpecLine | None:
    """Parse one spec line; comments give None."""
    if raw.lstrip().startswith("#"):
        return None

    fields = raw.split()
    if len(fields) == 5:
        path, quota, group, user, mode = fields
        if not _ABSOLUTE.match(quota):
            raise LPQMalformedLineError(
                f"quota must be a whole number of TB, got {quota!r}", source, lineno
            )
        if not _MODE.match(mode):
            raise LPQMalformedLineError(
                f"mode must be an octal string, got {mode!r}", source, lineno
            )
        return CreateOrUpdate(path, int(quota), group, user, mode, source, lineno)
    if len(fields) == 2:
        path, quota = fields
        if not is_quota_expr(quota):
            raise LPQMalformedLineError(
                f"quota must be N, +N or -N TB, got {quota!r}", source, lineno
            )
        return Update(path, quota, source, lineno)
    raise LPQMalformedLineError(
        f"expected 5 or 2 fields, got {len(fields)}", source, lineno
    )


def iter_spec_lines(lines: Iterable[str], source: str | None = None) -> Iterator[SpecLine]:
    """Parse ``lines`` lazily, in order, skipping comments.

    Parsing is lazy so that a malformed line only stops the run once every
    line before it has been handled.
    """
    for lineno, raw in enumerate(lines, start=1):
        parsed = parse_line(raw.rstrip("\r\n"), lineno, source)
        if parsed is not None:
            yield parsed


def iter_spec(path: str) -> Iterator[SpecLine]:
    with open(path, encoding="utf-8") as f:
        yield from iter_spec_lines(f, source=path)
