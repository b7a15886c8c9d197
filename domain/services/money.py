"""Money helpers shared by every calculator.

Values arrive from stored documents and user input as ints, floats,
strings ("1.234,50") or Decimals; everything is normalized to Decimal and
rounded to cents.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from config.constants import MONEY_QUANTUM, MONEY_TOLERANCE

ZERO = Decimal("0")


def parse_user_number(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = str(value).strip()
    if not text:
        return None

    cleaned = text.replace(" ", "").replace("$", "")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "")
        cleaned = cleaned.replace(",", ".")

    try:
        return Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Parse a finite number, falling back to ``default``."""
    number = parse_user_number(value)
    if number is None or not number.is_finite():
        return default
    return number


def round_money(value: Any) -> Decimal:
    """Round to cents; non-finite or unparseable input becomes 0."""
    number = to_decimal(value)
    with localcontext() as ctx:
        # Enough digits for the integer part plus cents
        ctx.prec = max(ctx.prec, number.adjusted() + 4)
        return number.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP) + ZERO


def round_optional(value: Any) -> Optional[Decimal]:
    """Like :func:`round_money` but keeps "no value" as ``None``."""
    number = to_decimal(value, default=None)
    if number is None:
        return None
    return round_money(number)


def clamp_non_negative(value: Any) -> Decimal:
    rounded = round_money(value)
    return rounded if rounded > 0 else ZERO


def approx_equal(a: Any, b: Any, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    return abs(to_decimal(a) - to_decimal(b)) < tolerance


def parse_money_or_none(value: Any) -> Optional[Decimal]:
    """Parse an optional money field: blank/non-finite -> None."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return round_optional(value)


def is_blank(value: Any) -> bool:
    """True for values a stored record uses to mean "not set"."""
    return value is None or (isinstance(value, str) and not value.strip())
