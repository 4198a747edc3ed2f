"""
Currency helpers.

All amounts are Decimals quantized to cents. Imported and typed
amounts arrive as strings like "$1,250.00"; anything that does
not parse is treated as zero, which the transaction builder then
rejects as a non-positive amount.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

_STRIP = re.compile(r"[$,\s]")


def to_money(value) -> Decimal:
    """Quantize a number (Decimal, int, float or numeric string) to cents."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def sanitize_amount(raw) -> Decimal:
    """
    Parse a user or import supplied amount.

    Dollar signs, thousands separators and spaces are removed.
    Empty or unparseable input gives zero.
    """
    if raw is None or raw == "":
        return ZERO
    if isinstance(raw, bool):
        return ZERO
    if isinstance(raw, (int, float, Decimal)):
        try:
            result = to_money(raw)
        except InvalidOperation:
            return ZERO
        return result if result.is_finite() else ZERO

    cleaned = _STRIP.sub("", str(raw))
    try:
        result = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result.quantize(CENTS, rounding=ROUND_HALF_UP)
