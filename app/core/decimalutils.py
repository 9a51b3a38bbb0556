from __future__ import annotations

from decimal import Decimal, getcontext, ROUND_HALF_UP
from typing import Union

getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP

NumberLike = Union[str, float, int, Decimal]


def D(value: NumberLike) -> Decimal:
    """Safe Decimal constructor using string conversion to avoid float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def q_rate(value: NumberLike) -> Decimal:
    return D(value).quantize(Decimal("0.0001"))


def per_match(total: NumberLike, matches: int) -> Decimal:
    """Rate over matches; zero matches divides by one so the rate is 0, never an error."""
    return q_rate(D(total) / D(matches or 1))
