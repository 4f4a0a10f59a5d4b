from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from idleeconomy.bignum import ONE, ZERO, D, DecimalSource, ExtendedDecimal

logger = logging.getLogger(__name__)

# Below this distance from 1 the geometric-series inverse divides by a
# vanishing (r - 1) and the search path is used instead.
CLOSED_FORM_MIN_GROWTH = ExtendedDecimal("1e-12")
MAX_CORRECTION_STEPS = 4
CUSTOM_SEARCH_LIMIT = 1000
_MAX_PROBE_DOUBLINGS = 256


def _level(value: Any) -> int:
    """Coerce a level argument to a non-negative int."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(0, value)
    try:
        return max(0, D(value).to_int())
    except TypeError:
        return 0


def _valid_params(base: ExtendedDecimal, mult: ExtendedDecimal) -> bool:
    return (
        base.is_finite()
        and not base.is_negative()
        and mult.is_finite()
        and mult.is_positive()
    )


def calculate_exponential_cost(
    base_cost: DecimalSource, cost_multiplier: DecimalSource, level: int
) -> ExtendedDecimal:
    """Cost of the next level: base * multiplier^level."""
    base, mult = D(base_cost), D(cost_multiplier)
    if not _valid_params(base, mult):
        return ZERO
    return base.mul(mult.pow(_level(level)))


def calculate_bulk_cost(
    base_cost: DecimalSource,
    cost_multiplier: DecimalSource,
    level: int,
    amount: int,
) -> ExtendedDecimal:
    """Total cost of *amount* consecutive levels starting at *level*."""
    base, mult = D(base_cost), D(cost_multiplier)
    n = _level(amount)
    if n <= 0 or not _valid_params(base, mult):
        return ZERO
    if mult.eq(ONE):
        return base.mul(n)
    first = base.mul(mult.pow(_level(level)))
    return first.mul(mult.pow(n).sub(ONE)).div(mult.sub(ONE))


def calculate_max_affordable(
    budget: DecimalSource,
    base_cost: DecimalSource,
    cost_multiplier: DecimalSource,
    level: int,
    max_level: int | None = None,
) -> int:
    """Largest k with bulk_cost(level, k) <= budget, capped at the max level."""
    budget = D(budget)
    base, mult = D(base_cost), D(cost_multiplier)
    start = _level(level)
    remaining = None if max_level is None else max(0, max_level - start)

    if remaining == 0:
        return 0
    if not budget.is_finite() or not budget.is_positive():
        return 0
    if not _valid_params(base, mult) or base.is_zero():
        return 0

    first = base.mul(mult.pow(start))
    if budget.lt(first):
        return 0

    def fits(n: int) -> bool:
        total = calculate_bulk_cost(base, mult, start, n)
        return total.is_finite() and total.lte(budget)

    def capped(n: int) -> int:
        return n if remaining is None else min(n, remaining)

    if mult.eq(ONE):
        return capped(budget.div(base).to_int())

    if mult.sub(ONE).abs().gte(CLOSED_FORM_MIN_GROWTH):
        k = _closed_form(budget, first, mult, fits, remaining)
        if k is not None:
            return k
        logger.warning(
            "Closed-form max affordable did not converge (base=%s, r=%s, level=%d); searching",
            base, mult, start,
        )

    return _search(fits, remaining)


def _closed_form(
    budget: ExtendedDecimal,
    first: ExtendedDecimal,
    mult: ExtendedDecimal,
    fits: Callable[[int], bool],
    remaining: int | None,
) -> int | None:
    ratio = budget.mul(mult.sub(ONE)).div(first).add(ONE)
    if not ratio.is_finite() or not ratio.is_positive():
        return None
    estimate = ratio.log(mult).floor()
    if not estimate.is_finite():
        return None
    k = max(0, estimate.to_int())
    if remaining is not None:
        k = min(k, remaining)

    for _ in range(MAX_CORRECTION_STEPS + 1):
        if not fits(k):
            if k == 0:
                return None
            k -= 1
            continue
        if remaining is not None and k >= remaining:
            return k
        if fits(k + 1):
            k += 1
            continue
        return k
    return None


def _search(fits: Callable[[int], bool], remaining: int | None) -> int:
    """Exponential probe then binary search over a monotone predicate."""
    if remaining is not None:
        hi = remaining
        if fits(hi):
            return hi
    else:
        hi = 1
        for _ in range(_MAX_PROBE_DOUBLINGS):
            if not fits(hi):
                break
            hi *= 2
        else:
            return hi
    lo = 0
    # invariant: fits(lo) and not fits(hi)
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if fits(mid):
            lo = mid
        else:
            hi = mid
    return lo


@dataclass(frozen=True)
class CostCurve:
    """Price schedule for a levelled item.

    Exponential by default: ``cost(level) = base_cost * cost_multiplier**level``.
    A ``cost_fn`` replaces the formula with arbitrary per-level prices.
    """

    base_cost: ExtendedDecimal = ONE
    cost_multiplier: ExtendedDecimal = ExtendedDecimal("1.15")
    max_level: int | None = None
    cost_fn: Callable[[int], DecimalSource] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_cost", D(self.base_cost))
        object.__setattr__(self, "cost_multiplier", D(self.cost_multiplier))

    @classmethod
    def fixed(cls, base_cost: DecimalSource, max_level: int | None = None) -> CostCurve:
        """Every level costs the same."""
        return cls(D(base_cost), ONE, max_level)

    @classmethod
    def exponential(
        cls,
        base_cost: DecimalSource,
        growth_rate: DecimalSource = "1.15",
        max_level: int | None = None,
    ) -> CostCurve:
        """Cost = base * growth_rate^level."""
        return cls(D(base_cost), D(growth_rate), max_level)

    @classmethod
    def one_time(cls, base_cost: DecimalSource) -> CostCurve:
        """A single purchase."""
        return cls(D(base_cost), ONE, 1)

    @classmethod
    def linear(
        cls,
        base_cost: DecimalSource,
        increment_pct: DecimalSource = "0.10",
        max_level: int | None = None,
    ) -> CostCurve:
        """Cost = base * (1 + increment_pct * level)."""
        base, pct = D(base_cost), D(increment_pct)
        return cls(base, ONE, max_level, lambda level: base.mul(pct.mul(level).add(ONE)))

    @classmethod
    def custom(
        cls, fn: Callable[[int], DecimalSource], max_level: int | None = None
    ) -> CostCurve:
        """Arbitrary per-level cost function."""
        return cls(D(fn(0)), ONE, max_level, fn)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def one_time_purchase(self) -> bool:
        return self.max_level == 1

    def remaining_levels(self, level: int) -> int | None:
        """Levels still purchasable from *level*; None when unbounded."""
        if self.max_level is None:
            return None
        return max(0, self.max_level - _level(level))

    def is_maxed(self, level: int) -> bool:
        return self.max_level is not None and _level(level) >= self.max_level

    def cost(self, level: int) -> ExtendedDecimal:
        """Price of the next level when currently at *level*."""
        if self.cost_fn is not None:
            value = D(self.cost_fn(_level(level)))
            if not value.is_finite() or value.is_negative():
                return ZERO
            return value
        return calculate_exponential_cost(self.base_cost, self.cost_multiplier, level)

    def bulk_cost(self, level: int, amount: int) -> ExtendedDecimal:
        """Total price of *amount* consecutive levels from *level*."""
        n = _level(amount)
        if n <= 0:
            return ZERO
        if self.cost_fn is not None:
            start = _level(level)
            total = ZERO
            for i in range(n):
                total = total.add(self.cost(start + i))
            return total
        return calculate_bulk_cost(self.base_cost, self.cost_multiplier, level, n)

    def max_affordable(self, budget: DecimalSource, level: int) -> int:
        """Largest number of levels *budget* pays for, starting at *level*."""
        if self.cost_fn is None:
            return calculate_max_affordable(
                budget, self.base_cost, self.cost_multiplier, level, self.max_level
            )

        budget = D(budget)
        if not budget.is_finite() or not budget.is_positive():
            return 0
        start = _level(level)
        limit = CUSTOM_SEARCH_LIMIT
        remaining = self.remaining_levels(start)
        if remaining is not None:
            limit = min(limit, remaining)
        spent = ZERO
        count = 0
        while count < limit:
            spent = spent.add(self.cost(start + count))
            if spent.gt(budget):
                break
            count += 1
        return count
