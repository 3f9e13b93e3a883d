"""Decimal helpers for money arithmetic."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their shortest repr instead of binary noise
    return Decimal(str(value))


def round_money(value: Optional[Number]) -> Decimal:
    """Round half-up to cents."""

    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Optional[Number]]) -> Decimal:
    """Sum values, rounding each one to cents first."""

    total = ZERO
    for value in values:
        total += round_money(value)
    return round_money(total)


def percentage(part: Number, whole: Number, places: str = "0.01") -> Decimal:
    """part / whole * 100, or 0 when whole is not positive."""

    whole_dec = to_decimal(whole)
    if whole_dec <= 0:
        return ZERO
    return (to_decimal(part) / whole_dec * 100).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def base_amount(amount: Number, exchange_rate: Optional[Number]) -> Decimal:
    """Convert an amount to the account base currency."""

    rate = to_decimal(exchange_rate) if exchange_rate else Decimal("1")
    return round_money(to_decimal(amount) * rate)


def tax_amount(amount: Number, tax_rate: Optional[Number]) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(tax_rate) / 100)
