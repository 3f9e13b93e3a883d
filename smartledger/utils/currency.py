"""Currency code normalization with symbol and name aliases."""

from typing import Optional

# Aliases and symbols -> ISO 4217 code
_CURRENCY_ALIASES: dict[str, str] = {
    "$": "USD", "us$": "USD", "dollar": "USD", "dollars": "USD",
    "€": "EUR", "euro": "EUR", "euros": "EUR",
    "£": "GBP", "pound": "GBP", "pounds": "GBP", "sterling": "GBP",
    "¥": "JPY", "yen": "JPY",
    "c$": "CAD", "a$": "AUD",
    "₹": "INR", "rupee": "INR", "rupees": "INR",
    "fr": "CHF", "franc": "CHF",
}

SUPPORTED_CURRENCIES = {
    "USD", "EUR", "GBP", "CAD", "AUD", "NZD", "CHF", "JPY", "CNY", "INR",
    "SEK", "NOK", "DKK", "PLN", "CZK", "ZAR", "BRL", "MXN", "SGD", "HKD",
    "AED", "SAR", "NGN", "KES", "TRY",
}


def normalize_currency(raw: str) -> Optional[str]:
    """Normalize a currency string to a supported ISO code.

    Handles common symbols and English names.
    Returns None if no match found.
    """
    cleaned = raw.strip().lower()
    if cleaned in _CURRENCY_ALIASES:
        return _CURRENCY_ALIASES[cleaned]
    upper = cleaned.upper()
    if upper in SUPPORTED_CURRENCIES:
        return upper
    return None
