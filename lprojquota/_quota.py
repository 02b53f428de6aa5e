import re

from ._exceptions import LPQNegativeQuotaError

#: Kilobytes in one terabyte (1024 ** 3)
KB_PER_TB = 1024 * 1024 * 1024

_QUOTA_EXPR = re.compile(r"^[+-]?[0-9]+$")


def tb_to_kb(tb: int) -> int:
    return tb * KB_PER_TB


def is_quota_expr(expr: str) -> bool:
    return bool(_QUOTA_EXPR.match(expr))


def is_relative(expr: str) -> bool:
    return expr[:1] in ("+", "-")


def resolve_quota(current_kb: int, expr: str) -> int:
    """Compute the new absolute quota, in KB, for a quota expression.

    ``expr`` is a number of terabytes.  With a ``+`` or ``-`` prefix it is a
    delta applied to ``current_kb``; a bare number replaces the quota
    outright, so ``"0"`` sets the quota to zero.

    Raises :class:`LPQNegativeQuotaError` if a decrease would go below zero
    and :class:`ValueError` if ``expr`` is not an integer expression.
    """
    if not is_quota_expr(expr):
        raise ValueError(f"Invalid quota expression: {expr!r}")
    delta_kb = tb_to_kb(int(expr))
    if not is_relative(expr):
        return delta_kb
    new_kb = current_kb + delta_kb
    if new_kb < 0:
        raise LPQNegativeQuotaError(current_kb=current_kb, result_kb=new_kb)
    return new_kb
