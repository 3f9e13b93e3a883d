"""Income and expense schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from smartledger.schemas.common import ORMBaseSchema
from smartledger.utils.currency import normalize_currency

MAX_AMOUNT = Decimal("1000000000")


def _currency(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    result = normalize_currency(value)
    if result is None:
        raise ValueError(f"unsupported currency: {value}")
    return result


class EntryCreate(BaseModel):
    """Fields shared by incomes and expenses.

    ``currency`` defaults to the account base currency; ``exchange_rate`` is
    required for any other currency.
    """

    amount: Decimal = Field(gt=0, lt=MAX_AMOUNT)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    category_id: Optional[int] = None
    project_id: Optional[int] = None
    description: str = Field(min_length=1, max_length=512)
    date: dt.date

    @field_validator("currency")
    @classmethod
    def normalize_currency_code(cls, value: Optional[str]) -> Optional[str]:
        return _currency(value)

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("description must not be blank")
        return trimmed


class IncomeCreate(EntryCreate):
    client_id: Optional[int] = None
    reference_number: Optional[str] = Field(default=None, max_length=64)


class ExpenseCreate(EntryCreate):
    vendor_id: Optional[int] = None
    vendor: Optional[str] = Field(default=None, max_length=128)
    receipt_url: Optional[str] = Field(default=None, max_length=1024)


class EntryUpdate(BaseModel):
    """Partial update; omitted fields stay unchanged."""

    amount: Optional[Decimal] = Field(default=None, gt=0, lt=MAX_AMOUNT)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    category_id: Optional[int] = None
    project_id: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=512)
    date: Optional[dt.date] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency_code(cls, value: Optional[str]) -> Optional[str]:
        return _currency(value)


class IncomeUpdate(EntryUpdate):
    client_id: Optional[int] = None
    reference_number: Optional[str] = Field(default=None, max_length=64)


class ExpenseUpdate(EntryUpdate):
    vendor_id: Optional[int] = None
    vendor: Optional[str] = Field(default=None, max_length=128)
    receipt_url: Optional[str] = Field(default=None, max_length=1024)


class EntryRead(ORMBaseSchema):
    id: int
    amount: Decimal
    currency: str
    exchange_rate: Decimal
    base_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    category_id: Optional[int]
    project_id: Optional[int]
    description: str
    date: dt.date
    created_at: dt.datetime


class IncomeRead(EntryRead):
    client_id: Optional[int]
    reference_number: Optional[str]


class ExpenseRead(EntryRead):
    vendor_id: Optional[int]
    vendor: Optional[str]
    receipt_url: Optional[str]


class IncomeListResponse(BaseModel):
    total: int
    items: list[IncomeRead]


class ExpenseListResponse(BaseModel):
    total: int
    items: list[ExpenseRead]
