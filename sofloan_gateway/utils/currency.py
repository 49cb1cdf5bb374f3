"""Currency rounding and presentation helpers"""

import math
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_currency(amount: float) -> float:
    """Round to cents, half-up on the decimal representation (123.455 -> 123.46)"""
    if not math.isfinite(amount):
        return amount
    return float(Decimal(repr(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def format_currency(amount: float, currency: str = "CAD") -> str:
    """
    Format an amount for display in en-CA style.

    CAD and USD render with a bare "$" ("$1,234.56", "-$12.00"); other
    currencies are suffixed with their code.
    """
    rounded = Decimal(repr(round_currency(amount))).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    body = f"{abs(rounded):,.2f}"
    if currency in ("CAD", "USD"):
        return f"{sign}${body}"
    return f"{sign}{body} {currency}"
