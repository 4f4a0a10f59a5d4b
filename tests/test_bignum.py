"""Tests for the extended-precision number type."""
from decimal import Decimal

import pytest

from idleeconomy.bignum import (
    INFINITY,
    NAN,
    NEG_INFINITY,
    ONE,
    ZERO,
    D,
    ExtendedDecimal,
    apply_multiplier,
    apply_percent_bonus,
    calculate_production,
    maximum,
    minimum,
)


# ── Construction ─────────────────────────────────────────────────────


def test_construct_from_supported_types():
    assert D(5) == 5
    assert D("12345.67") == Decimal("12345.67")
    assert D(Decimal("2.5")) == D("2.5")
    assert D(None) == ZERO
    assert D(True) == ONE


def test_float_uses_shortest_repr():
    assert D(0.1).serialize() == "0.1"
    assert D(0.1) + D(0.2) == D("0.3")


def test_d_returns_same_instance():
    x = ExtendedDecimal(7)
    assert D(x) is x


def test_malformed_string_is_not_finite():
    bad = D("not a number")
    assert bad.is_nan()
    assert not bad.is_finite()


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        ExtendedDecimal([1, 2])


def test_exponent_range_far_beyond_float():
    huge = D("1e999999")
    assert huge.is_finite()
    assert huge > D("1e999998")
    assert D("1e-999999").is_positive()


def test_overflow_becomes_infinity():
    top = D("9e999999999")
    assert not top.mul(10).is_finite()
    assert top.mul(10) == INFINITY


# ── Arithmetic ───────────────────────────────────────────────────────


def test_operators():
    a, b = D(6), D(4)
    assert a + b == 10
    assert a - b == 2
    assert a * b == 24
    assert a / b == D("1.5")
    assert a ** 2 == 36
    assert -a == -6
    assert abs(D(-3)) == 3


def test_reflected_operators():
    assert 10 - D(4) == 6
    assert 2 * D(4) == 8
    assert 1 / D(4) == D("0.25")
    assert 2 ** D(10) == 1024


def test_operator_with_str_is_type_error():
    with pytest.raises(TypeError):
        D(1) + "2"


def test_division_by_zero_is_zero():
    assert D(5).div(0) == ZERO
    assert D(5) / 0 == 0
    assert D(0).div(0) == 0


def test_pow_edge_cases():
    assert D(0).pow(-1) == ZERO
    assert D(5).pow(0) == ONE
    assert D(0).pow(0) == ONE
    assert D(-2).pow(3) == -8
    assert D(-8).pow("0.5").is_nan()


def test_nan_propagates():
    assert (NAN + 1).is_nan()
    assert (D(3) * NAN).is_nan()


def test_logs_and_roots():
    assert D("1e100").log10() == 100
    assert D(8).log(2).approx_eq(3)
    assert D(81).sqrt() == 9
    assert D(1).ln() == 0


# ── Comparison ───────────────────────────────────────────────────────


def test_total_order_with_nan_lowest():
    values = [D(1), D("junk"), INFINITY, D(-5), NEG_INFINITY]
    ordered = sorted(values)
    assert ordered[0].is_nan()
    assert ordered[1:] == [NEG_INFINITY, D(-5), D(1), INFINITY]


def test_nan_equals_nan():
    assert D("x") == D("y")
    assert D("x").eq(NAN)
    assert NAN.lt(D(-1e300))


def test_mixed_type_comparisons():
    assert D(5) > 3
    assert 3 < D(5)
    assert D("2.50") == 2.5
    assert D(1).neq(2)


def test_hash_consistent_with_equality():
    assert hash(D(5)) == hash(5)
    assert {D(5): "five"}[D("5.0")] == "five"
    assert hash(D("a")) == hash(D("b"))


def test_approx_eq():
    third = D(1).div(3)
    assert third.mul(3).approx_eq(1)
    assert not D(1).approx_eq("1.1")


# ── Rounding & conversion ────────────────────────────────────────────


def test_rounding():
    assert D("2.5").round() == 3
    assert D("-2.5").round() == -3
    assert D("-1.5").floor() == -2
    assert D("-1.5").ceil() == -1


def test_clamp_max_min():
    assert D(15).clamp(0, 10) == 10
    assert D(-3).clamp(0, 10) == 0
    assert maximum(2, 9) == 9
    assert minimum(2, 9) == 2


def test_to_int_and_float():
    assert D("7.9").to_int() == 7
    assert D("1e30").to_int() == 10**30
    assert INFINITY.to_int() == 0
    assert NAN.to_int(default=-1) == -1
    assert D("0.25").to_float() == pytest.approx(0.25)


def test_predicates():
    assert D(0).is_zero()
    assert D(1).is_positive()
    assert D(-1).is_negative()
    assert not NAN.is_positive()
    assert not NAN.is_negative()


def test_to_fixed_rounds_half_up():
    assert D("1.005").to_fixed(2) == "1.01"
    assert D("999.999").to_fixed(2) == "1000.00"
    assert D(3).to_fixed(0) == "3"


def test_to_exponential():
    assert D("1e50").to_exponential(2) == "1.00e50"
    assert D(1234567).to_exponential(2) == "1.23e6"
    assert D("9.999e5").to_exponential(2) == "1.00e6"
    assert D("1.5e-7").to_exponential(1) == "1.5e-7"


# ── Serialization ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "text", ["12345.67", "1e100", "1e-20", "0", "-42.5", "Infinity", "-Infinity"]
)
def test_serialize_round_trip(text):
    value = D(text)
    assert ExtendedDecimal.deserialize(value.serialize()).eq(value)


def test_nan_round_trip():
    assert ExtendedDecimal.deserialize(NAN.serialize()).is_nan()


def test_serialize_forms():
    assert D("12345.67").serialize() == "12345.67"
    assert D(100).serialize() == "100"
    assert D("1.500").serialize() == "1.5"
    assert D("1e100").serialize() == "1e+100"
    assert D("1e-20").serialize() == "1e-20"
    assert str(D("0.001")) == "0.001"


def test_deserialize_bad_input_is_zero():
    assert ExtendedDecimal.deserialize(None) == ZERO
    assert ExtendedDecimal.deserialize("") == ZERO
    assert ExtendedDecimal.deserialize("abc") == ZERO
    assert ExtendedDecimal.deserialize({"x": 1}) == ZERO
    assert ExtendedDecimal.deserialize(42) == 42


# ── Helpers ──────────────────────────────────────────────────────────


def test_idle_helpers():
    assert calculate_production(10, 2.5) == 25
    assert apply_multiplier(10, 3) == 30
    assert apply_percent_bonus(100, 50) == 150
