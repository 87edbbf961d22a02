from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "AUD": "A$",
    "CAD": "CA$",
}

# Currencies quoted without minor units
ZERO_DECIMAL = {"JPY", "KRW", "VND"}


def format_money(amount: Optional[Decimal], currency: str) -> Optional[str]:
    if amount is None:
        return None
    code = (currency or "").upper()
    exponent = Decimal("1") if code in ZERO_DECIMAL else Decimal("0.01")
    value = Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)
    digits = f"{abs(value):,}"
    sign = "-" if value < 0 else ""
    symbol = SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{code} {digits}"
