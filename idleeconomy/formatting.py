from __future__ import annotations

from idleeconomy.bignum import D, DecimalSource, ExtendedDecimal

LETTER_SUFFIXES = (
    "", "K", "M", "B", "T", "Qa", "Qi", "Sx", "Sp", "Oc", "No",
    "Dc", "UDc", "DDc", "TDc", "QaDc", "QiDc", "SxDc", "SpDc", "OcDc", "NoDc",
    "Vg",
)

SCIENTIFIC_THRESHOLD = D("1e33")
NOTATIONS = ("mixed", "scientific", "engineering", "letters")

_SMALL = D(1000)
_TINY = D("1e-6")


def format_number(
    value: DecimalSource,
    notation: str = "mixed",
    precision: int = 2,
    threshold: DecimalSource = SCIENTIFIC_THRESHOLD,
    show_positive_sign: bool = False,
) -> str:
    """Human-readable text for a (possibly enormous) number.

    ``mixed`` prints plain decimals below 1000, letter suffixes (K, M, B, ...)
    below *threshold* and scientific notation above it.
    """
    if notation not in NOTATIONS:
        raise ValueError(f"Unknown notation: {notation!r}. Expected one of {list(NOTATIONS)}")
    number = D(value)
    if number.is_nan():
        return "NaN"
    if not number.is_finite():
        return "Infinity" if number.is_positive() else "-Infinity"
    if number.is_zero():
        return "0"

    magnitude = number.abs()
    if notation == "scientific":
        text = _scientific(magnitude, precision)
    elif notation == "engineering":
        text = _engineering(magnitude, precision)
    elif notation == "letters":
        text = _letters(magnitude, precision)
    else:
        text = _mixed(magnitude, precision, D(threshold))

    if number.is_negative():
        return "-" + text
    if show_positive_sign:
        return "+" + text
    return text


def _scientific(value: ExtendedDecimal, precision: int) -> str:
    if value.gte(_TINY) and value.lt(_SMALL):
        return value.to_fixed(precision)
    return value.to_exponential(precision)


def _engineering(value: ExtendedDecimal, precision: int) -> str:
    if value.lt(_SMALL):
        return value.to_fixed(precision)
    exponent = value.to_decimal().adjusted() // 3 * 3
    mantissa = value.div(D(10).pow(exponent))
    return f"{mantissa.to_fixed(precision)}e{exponent}"


def _letters(value: ExtendedDecimal, precision: int) -> str:
    if value.lt(_SMALL):
        return value.to_fixed(precision)
    index = value.to_decimal().adjusted() // 3
    if index >= len(LETTER_SUFFIXES):
        return value.to_exponential(precision)
    mantissa = value.div(D(10).pow(index * 3))
    return f"{mantissa.to_fixed(precision)}{LETTER_SUFFIXES[index]}"


def _mixed(value: ExtendedDecimal, precision: int, threshold: ExtendedDecimal) -> str:
    if value.lt(_SMALL):
        return value.to_fixed(precision)
    if value.lt(threshold):
        return _letters(value, precision)
    return value.to_exponential(precision)


def format_percent(value: DecimalSource, precision: int = 2) -> str:
    """0.5 -> ``"50.00%"``."""
    return f"{D(value).mul(100).to_fixed(precision)}%"


def format_multiplier(value: DecimalSource, precision: int = 2) -> str:
    """2 -> ``"x2.00"``; large values use suffixes."""
    number = D(value)
    if number.gte(_SMALL):
        return f"x{format_number(number, precision=precision)}"
    return f"x{number.to_fixed(precision)}"


def format_rate(value: DecimalSource, unit: str = "s", precision: int = 2) -> str:
    return f"{format_number(value, precision=precision)}/{unit}"


def format_duration(seconds: float) -> str:
    """Seconds as ``"1d 1h 1m 1s"``, omitting zero parts."""
    if seconds < 0:
        return "0s"
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts: list[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_duration_compact(seconds: float) -> str:
    """Clock style: ``"2:05"`` or ``"1:02:05"``."""
    if seconds < 0:
        return "0:00"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_hours_minutes(seconds: int) -> str:
    """Coarse absence text: ``"2h 30m"``, ``"3h"``, ``"45m"`` or ``"30s"``."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes = rest // 60
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    if minutes:
        return f"{minutes}m"
    return f"{max(0, int(seconds))}s"
