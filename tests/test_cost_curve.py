"""Tests for cost curves and bulk purchase math."""
import pytest

from idleeconomy.bignum import ZERO, D
from idleeconomy.cost_curve import (
    CostCurve,
    calculate_bulk_cost,
    calculate_exponential_cost,
    calculate_max_affordable,
)


def _naive_bulk(base, mult, level, amount):
    total = ZERO
    for i in range(amount):
        total = total + calculate_exponential_cost(base, mult, level + i)
    return total


# ── Single level ─────────────────────────────────────────────────────


def test_exponential_cost():
    assert calculate_exponential_cost(10, "1.5", 0) == 10
    assert calculate_exponential_cost(10, "1.5", 2) == D("22.5")


def test_negative_level_treated_as_zero():
    assert calculate_exponential_cost(10, 2, -3) == 10


def test_malformed_params_cost_nothing():
    assert calculate_exponential_cost("abc", 2, 1) == 0
    assert calculate_exponential_cost(10, 0, 1) == 0
    assert calculate_exponential_cost(-5, 2, 1) == 0


# ── Bulk ─────────────────────────────────────────────────────────────


def test_bulk_cost_known_value():
    assert calculate_bulk_cost(10, 1.5, 0, 5) == D("131.875")


@pytest.mark.parametrize(
    "base, mult, level, amount",
    [(10, "1.15", 0, 10), (100, 2, 3, 7), ("2.5", "1.07", 12, 25)],
)
def test_bulk_cost_matches_sum_of_levels(base, mult, level, amount):
    bulk = calculate_bulk_cost(base, mult, level, amount)
    assert bulk.approx_eq(_naive_bulk(base, mult, level, amount))


def test_bulk_cost_flat_curve():
    assert calculate_bulk_cost(25, 1, 4, 8) == 200


def test_bulk_cost_non_positive_amount():
    assert calculate_bulk_cost(10, 2, 0, 0) == ZERO
    assert calculate_bulk_cost(10, 2, 0, -4) == ZERO


# ── Max affordable ───────────────────────────────────────────────────


def test_max_affordable_exact_boundary():
    assert calculate_max_affordable(700, 100, 2, 0) == 3
    assert calculate_max_affordable(699, 100, 2, 0) == 2
    assert calculate_max_affordable(100, 100, 2, 0) == 1


def test_budget_below_next_cost():
    assert calculate_max_affordable(99, 100, 2, 0) == 0
    assert calculate_max_affordable(150, 100, 2, 1) == 0


def test_bad_budget_affords_nothing():
    assert calculate_max_affordable("nan", 100, 2, 0) == 0
    assert calculate_max_affordable(-50, 100, 2, 0) == 0
    assert calculate_max_affordable(1000, 0, 2, 0) == 0


def test_max_level_caps_result():
    assert calculate_max_affordable(10**6, 100, 2, 0, max_level=3) == 3
    assert calculate_max_affordable(10**6, 100, 2, 2, max_level=3) == 1
    assert calculate_max_affordable(10**6, 100, 2, 3, max_level=3) == 0


def test_flat_curve_divides_budget():
    assert calculate_max_affordable(1000, 100, 1, 0) == 10
    assert calculate_max_affordable(1050, 100, 1, 7) == 10


def test_multiplier_near_one_uses_search():
    assert calculate_max_affordable(1000, 1, "1.0000000000001", 0) == 999


def test_budget_far_beyond_float_range():
    assert calculate_max_affordable("1e500", 1, 2, 0) == 1660


@pytest.mark.parametrize(
    "budget, base, mult, level",
    [(12345, 10, "1.15", 0), ("1e40", 3, "1.07", 50), (987654, 15, "1.3", 4)],
)
def test_max_affordable_is_tight(budget, base, mult, level):
    k = calculate_max_affordable(budget, base, mult, level)
    assert calculate_bulk_cost(base, mult, level, k) <= D(budget)
    assert calculate_bulk_cost(base, mult, level, k + 1) > D(budget)


# ── CostCurve ────────────────────────────────────────────────────────


class TestCostCurve:
    def test_exponential_default_growth(self):
        curve = CostCurve.exponential(10)
        assert curve.cost_multiplier == D("1.15")
        assert curve.cost(1) == D("11.5")

    def test_one_time(self):
        curve = CostCurve.one_time(100)
        assert curve.one_time_purchase
        assert curve.remaining_levels(0) == 1
        assert curve.is_maxed(1)
        assert curve.max_affordable(10**9, 0) == 1

    def test_fixed(self):
        curve = CostCurve.fixed(50, max_level=4)
        assert curve.cost(3) == 50
        assert curve.bulk_cost(0, 4) == 200
        assert curve.max_affordable(10**6, 1) == 3

    def test_unbounded_remaining_levels(self):
        assert CostCurve.exponential(10).remaining_levels(99) is None
        assert not CostCurve.exponential(10).is_maxed(10**6)

    def test_linear(self):
        curve = CostCurve.linear(100, "0.1")
        assert curve.cost(0) == 100
        assert curve.cost(5) == 150
        assert curve.bulk_cost(0, 3) == D("330")

    def test_custom(self):
        curve = CostCurve.custom(lambda level: 10 * (level + 1))
        assert curve.base_cost == 10
        assert curve.bulk_cost(0, 3) == 60
        assert curve.max_affordable(60, 0) == 3
        assert curve.max_affordable(59, 0) == 2
        assert curve.max_affordable(30, 1) == 1

    def test_custom_respects_max_level(self):
        curve = CostCurve.custom(lambda level: 1, max_level=5)
        assert curve.max_affordable(10**6, 2) == 3

    def test_custom_search_is_bounded(self):
        curve = CostCurve.custom(lambda level: 1)
        assert curve.max_affordable(10**9, 0) == 1000

    def test_custom_bad_cost_is_zero(self):
        curve = CostCurve.custom(lambda level: "oops")
        assert curve.cost(0) == ZERO
