from __future__ import annotations

import operator
import time
from typing import Any, Callable, Mapping

from idleeconomy.bignum import ExtendedDecimal, DecimalSource, D

Clock = Callable[[], int]
"""Returns the current time in epoch milliseconds."""

_OPS: dict[str, Callable[[ExtendedDecimal, ExtendedDecimal], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "==": operator.eq,
    "!=": operator.ne,
}


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def compare(left: DecimalSource, op: str, right: DecimalSource) -> bool:
    """Compare two values using a string operator."""
    fn = _OPS.get(op)
    if fn is None:
        raise ValueError(f"Unknown operator: {op!r}. Expected one of {list(_OPS)}")
    return fn(D(left), D(right))


def as_level(value: Any) -> int | None:
    """Interpret persisted or caller data as a non-negative whole level.

    Accepts ints and integral floats / numeric strings; anything else
    (bools, negatives, fractions, garbage) returns None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, (float, str, ExtendedDecimal)):
        number = D(value)
        if not number.is_finite() or number.is_negative() or not number.floor().eq(number):
            return None
        return number.to_int()
    return None


def mapping_field(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    """Return ``data[key]`` if it is a dict keyed by strings, else empty."""
    value = data.get(key)
    if not isinstance(value, Mapping):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str)}
