"""Extended-precision numbers for idle-game economies.

``ExtendedDecimal`` wraps :class:`decimal.Decimal` evaluated in a private
context (50 significant digits, exponents up to +/-999,999,999, no traps), so
values stay meaningful far beyond the float range and serialize exactly.

All operations are total: dividing by zero yields zero, invalid operations
yield a NaN value ("not finite") that propagates instead of raising.
"""

from __future__ import annotations

from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_DOWN,
    Context,
    Decimal,
    InvalidOperation,
)
from typing import Union

PRECISION = 50
MAX_EXPONENT = 999_999_999

_CTX = Context(
    prec=PRECISION,
    rounding=ROUND_HALF_EVEN,
    Emax=MAX_EXPONENT,
    Emin=-MAX_EXPONENT,
    traps=[],
)

_D_ZERO = Decimal(0)
_D_ONE = Decimal(1)
_D_NAN = Decimal("NaN")

# Plain (non-scientific) serialization range for the adjusted exponent.
_PLAIN_MIN_EXP = -7
_PLAIN_MAX_EXP = 20

_NAN_SPELLINGS = frozenset({"nan", "snan"})


def _finalize(value: Decimal) -> Decimal:
    if value.is_nan():
        return _D_NAN
    if value.is_zero():
        return _D_ZERO
    return value


def _from_str(text: str) -> Decimal:
    try:
        return _finalize(_CTX.create_decimal(text.strip()))
    except (InvalidOperation, ValueError):
        return _D_NAN


def _coerce(value: object) -> Decimal:
    """Convert any supported source into a context-rounded Decimal."""
    if isinstance(value, ExtendedDecimal):
        return value._value
    if value is None:
        return _D_ZERO
    if isinstance(value, bool):
        return _D_ONE if value else _D_ZERO
    if isinstance(value, int):
        return _finalize(_CTX.create_decimal(value))
    if isinstance(value, float):
        # repr keeps 0.1 as 0.1 instead of its binary expansion
        return _from_str(repr(value))
    if isinstance(value, Decimal):
        return _finalize(_CTX.create_decimal(value))
    if isinstance(value, str):
        return _from_str(value)
    raise TypeError(
        f"Cannot convert {type(value).__name__!r} to ExtendedDecimal"
    )


def _operand(value: object) -> Decimal | None:
    """Coerce an operator operand, or None when the type is not numeric."""
    if isinstance(value, (ExtendedDecimal, int, float, Decimal)):
        return _coerce(value)
    return None


class ExtendedDecimal:
    """Immutable signed number with a very wide exponent range."""

    __slots__ = ("_value",)

    def __init__(self, value: DecimalSource | None = 0) -> None:
        self._value: Decimal = _coerce(value)

    @classmethod
    def _wrap(cls, value: Decimal) -> ExtendedDecimal:
        obj = cls.__new__(cls)
        obj._value = _finalize(value)
        return obj

    # ── Arithmetic ───────────────────────────────────────────────────

    def add(self, other: DecimalSource) -> ExtendedDecimal:
        return self._wrap(_CTX.add(self._value, _coerce(other)))

    def sub(self, other: DecimalSource) -> ExtendedDecimal:
        return self._wrap(_CTX.subtract(self._value, _coerce(other)))

    def mul(self, other: DecimalSource) -> ExtendedDecimal:
        return self._wrap(_CTX.multiply(self._value, _coerce(other)))

    def div(self, other: DecimalSource) -> ExtendedDecimal:
        """Divide; a zero divisor returns ZERO."""
        divisor = _coerce(other)
        if divisor.is_zero():
            return ZERO
        return self._wrap(_CTX.divide(self._value, divisor))

    def pow(self, exponent: DecimalSource) -> ExtendedDecimal:
        """Raise to a power.

        Signs are exact for integer exponents. A negative base with a
        fractional exponent gives NaN. ``x ** 0`` is ONE (including 0 ** 0)
        and ``0 ** negative`` is ZERO, matching the division contract.
        """
        exp = _coerce(exponent)
        base = self._value
        if base.is_nan() or exp.is_nan():
            return NAN
        if exp.is_zero():
            return ONE
        if base.is_zero():
            return ZERO
        return self._wrap(_CTX.power(base, exp))

    def neg(self) -> ExtendedDecimal:
        return self._wrap(_CTX.minus(self._value))

    def abs(self) -> ExtendedDecimal:
        return self._wrap(_CTX.abs(self._value))

    def sqrt(self) -> ExtendedDecimal:
        return self._wrap(_CTX.sqrt(self._value))

    def ln(self) -> ExtendedDecimal:
        return self._wrap(_CTX.ln(self._value))

    def log10(self) -> ExtendedDecimal:
        return self._wrap(_CTX.log10(self._value))

    def log(self, base: DecimalSource) -> ExtendedDecimal:
        return self.ln().div(ExtendedDecimal(base).ln())

    # ── Comparison ───────────────────────────────────────────────────

    def cmp(self, other: DecimalSource) -> int:
        """Total order: NaN == NaN, NaN sorts below everything else."""
        a = self._value
        b = _coerce(other)
        a_nan = a.is_nan()
        b_nan = b.is_nan()
        if a_nan or b_nan:
            if a_nan and b_nan:
                return 0
            return -1 if a_nan else 1
        if a < b:
            return -1
        if a > b:
            return 1
        return 0

    def eq(self, other: DecimalSource) -> bool:
        return self.cmp(other) == 0

    def neq(self, other: DecimalSource) -> bool:
        return self.cmp(other) != 0

    def gt(self, other: DecimalSource) -> bool:
        return self.cmp(other) > 0

    def gte(self, other: DecimalSource) -> bool:
        return self.cmp(other) >= 0

    def lt(self, other: DecimalSource) -> bool:
        return self.cmp(other) < 0

    def lte(self, other: DecimalSource) -> bool:
        return self.cmp(other) <= 0

    def approx_eq(
        self, other: DecimalSource, rel: float = 1e-9, abs_tol: float = 0.0
    ) -> bool:
        """Relative-tolerance equality, for comparing float-ish results."""
        b = ExtendedDecimal(other)
        if not (self.is_finite() and b.is_finite()):
            return self.eq(b)
        diff = self.sub(b).abs()
        scale = maximum(self.abs(), b.abs()).mul(rel)
        return diff.lte(maximum(scale, abs_tol))

    # ── Rounding & clamping ──────────────────────────────────────────

    def floor(self) -> ExtendedDecimal:
        return self._wrap(self._value.to_integral_value(ROUND_FLOOR, _CTX))

    def ceil(self) -> ExtendedDecimal:
        return self._wrap(self._value.to_integral_value(ROUND_CEILING, _CTX))

    def round(self) -> ExtendedDecimal:
        """Round to the nearest integer, halves away from zero."""
        return self._wrap(self._value.to_integral_value(ROUND_HALF_UP, _CTX))

    def clamp(self, low: DecimalSource, high: DecimalSource) -> ExtendedDecimal:
        return maximum(low, minimum(self, high))

    # ── Predicates ───────────────────────────────────────────────────

    def is_finite(self) -> bool:
        return self._value.is_finite()

    def is_nan(self) -> bool:
        return self._value.is_nan()

    def is_zero(self) -> bool:
        return self._value.is_zero()

    def is_positive(self) -> bool:
        return not self._value.is_nan() and self._value > 0

    def is_negative(self) -> bool:
        return not self._value.is_nan() and self._value < 0

    # ── Conversion ───────────────────────────────────────────────────

    def to_decimal(self) -> Decimal:
        return self._value

    def to_float(self) -> float:
        return float(self._value)

    def to_int(self, default: int = 0) -> int:
        """Floor to a Python int; *default* for NaN and infinities."""
        if not self._value.is_finite():
            return default
        return int(self._value.to_integral_value(ROUND_FLOOR, _CTX))

    def to_fixed(self, places: int = 2) -> str:
        """Plain notation with exactly *places* decimals, halves rounded up."""
        if not self._value.is_finite():
            return self.serialize()
        quantum = _D_ONE.scaleb(-places)
        rounded = self._value.quantize(quantum, rounding=ROUND_HALF_UP, context=_CTX)
        if rounded.is_nan():
            return format(self._value, "f")
        return format(rounded, "f")

    def to_exponential(self, places: int = 2) -> str:
        """Scientific notation like ``1.23e45`` with *places* mantissa decimals."""
        if not self._value.is_finite():
            return self.serialize()
        if self._value.is_zero():
            return f"{ZERO.to_fixed(places)}e0"
        exponent = self._value.adjusted()
        mantissa = self._wrap(self._value.scaleb(-exponent, _CTX))
        text = mantissa.to_fixed(places)
        if text.lstrip("-").startswith("10"):
            exponent += 1
            text = self._wrap(self._value.scaleb(-exponent, _CTX)).to_fixed(places)
        return f"{text}e{exponent}"

    def serialize(self) -> str:
        """Compact exact text form accepted by :meth:`deserialize`."""
        value = self._value
        if value.is_nan():
            return "NaN"
        if value.is_infinite():
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_zero():
            return "0"
        normalised = value.normalize(_CTX)
        if _PLAIN_MIN_EXP <= normalised.adjusted() <= _PLAIN_MAX_EXP:
            return format(normalised, "f")
        return str(normalised).replace("E", "e")

    @classmethod
    def deserialize(cls, value: object) -> ExtendedDecimal:
        """Parse persisted text; None, empty or unparsable input gives ZERO."""
        if value is None or isinstance(value, bool):
            return ZERO
        if isinstance(value, ExtendedDecimal):
            return value
        if isinstance(value, (int, float)):
            return cls(value)
        if not isinstance(value, str) or not value.strip():
            return ZERO
        parsed = cls(value)
        if parsed.is_nan() and value.strip().lstrip("+-").lower() not in _NAN_SPELLINGS:
            return ZERO
        return parsed

    # ── Python protocol ──────────────────────────────────────────────

    def __add__(self, other: object) -> ExtendedDecimal:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._wrap(_CTX.add(self._value, rhs))

    def __radd__(self, other: object) -> ExtendedDecimal:
        return self.__add__(other)

    def __sub__(self, other: object) -> ExtendedDecimal:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._wrap(_CTX.subtract(self._value, rhs))

    def __rsub__(self, other: object) -> ExtendedDecimal:
        lhs = _operand(other)
        if lhs is None:
            return NotImplemented
        return self._wrap(_CTX.subtract(lhs, self._value))

    def __mul__(self, other: object) -> ExtendedDecimal:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self._wrap(_CTX.multiply(self._value, rhs))

    def __rmul__(self, other: object) -> ExtendedDecimal:
        return self.__mul__(other)

    def __truediv__(self, other: object) -> ExtendedDecimal:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.div(self._wrap(rhs))

    def __rtruediv__(self, other: object) -> ExtendedDecimal:
        lhs = _operand(other)
        if lhs is None:
            return NotImplemented
        return self._wrap(lhs).div(self)

    def __pow__(self, other: object) -> ExtendedDecimal:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.pow(self._wrap(rhs))

    def __rpow__(self, other: object) -> ExtendedDecimal:
        lhs = _operand(other)
        if lhs is None:
            return NotImplemented
        return self._wrap(lhs).pow(self)

    def __neg__(self) -> ExtendedDecimal:
        return self.neg()

    def __pos__(self) -> ExtendedDecimal:
        return self

    def __abs__(self) -> ExtendedDecimal:
        return self.abs()

    def __eq__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.cmp(self._wrap(rhs)) == 0

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __lt__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.cmp(self._wrap(rhs)) < 0

    def __le__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.cmp(self._wrap(rhs)) <= 0

    def __gt__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.cmp(self._wrap(rhs)) > 0

    def __ge__(self, other: object) -> bool:
        rhs = _operand(other)
        if rhs is None:
            return NotImplemented
        return self.cmp(self._wrap(rhs)) >= 0

    def __hash__(self) -> int:
        if self._value.is_nan():
            return hash("NaN")
        return hash(self._value)

    def __bool__(self) -> bool:
        return not self._value.is_zero()

    def __float__(self) -> float:
        return self.to_float()

    def __int__(self) -> int:
        if not self._value.is_finite():
            return 0
        return int(self._value.to_integral_value(ROUND_DOWN, _CTX))

    def __format__(self, format_spec: str) -> str:
        if not format_spec:
            return self.serialize()
        return format(self._value, format_spec)

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"ExtendedDecimal({self.serialize()!r})"

    def __reduce__(self):
        return (ExtendedDecimal, (self.serialize(),))


DecimalSource = Union[int, float, str, Decimal, ExtendedDecimal]


def D(value: DecimalSource | None) -> ExtendedDecimal:
    """Primary factory; returns *value* unchanged if already extended."""
    if isinstance(value, ExtendedDecimal):
        return value
    return ExtendedDecimal(value)


ZERO = ExtendedDecimal._wrap(_D_ZERO)
ONE = ExtendedDecimal._wrap(_D_ONE)
TWO = ExtendedDecimal(2)
TEN = ExtendedDecimal(10)
HUNDRED = ExtendedDecimal(100)
THOUSAND = ExtendedDecimal(1000)
MILLION = ExtendedDecimal("1e6")
BILLION = ExtendedDecimal("1e9")
TRILLION = ExtendedDecimal("1e12")
INFINITY = ExtendedDecimal("Infinity")
NEG_INFINITY = ExtendedDecimal("-Infinity")
NAN = ExtendedDecimal._wrap(_D_NAN)


def maximum(a: DecimalSource, b: DecimalSource) -> ExtendedDecimal:
    a, b = D(a), D(b)
    return a if a.gte(b) else b


def minimum(a: DecimalSource, b: DecimalSource) -> ExtendedDecimal:
    a, b = D(a), D(b)
    return a if a.lte(b) else b


# ── Idle-game helpers ────────────────────────────────────────────────


def calculate_production(rate: DecimalSource, delta: float) -> ExtendedDecimal:
    """Resources gained at *rate* per second over *delta* seconds."""
    return D(rate).mul(delta)


def apply_multiplier(base: DecimalSource, multiplier: DecimalSource) -> ExtendedDecimal:
    return D(base).mul(multiplier)


def apply_percent_bonus(base: DecimalSource, bonus_percent: DecimalSource) -> ExtendedDecimal:
    """Apply a percentage bonus, e.g. 50 for +50%."""
    return D(base).mul(D(bonus_percent).div(100).add(ONE))
