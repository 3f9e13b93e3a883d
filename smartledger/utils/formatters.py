from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}


def format_currency(amount: Union[float, Decimal, int, str], currency: str = "USD") -> str:
    """Whole-unit amount with thousands separators: $1,235 or 1,235 SEK."""

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        value = Decimal("0")

    whole = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if whole < 0 else ""
    digits = f"{abs(whole):,.0f}"

    code = str(currency).upper()
    symbol = _SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{digits} {code}"
