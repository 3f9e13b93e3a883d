"""Invoice schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from smartledger.database.models import InvoiceStatus
from smartledger.schemas.common import ORMBaseSchema
from smartledger.utils.currency import normalize_currency


class InvoiceItemCreate(BaseModel):
    description: str = Field(min_length=1, max_length=512)
    quantity: Decimal = Field(gt=0, lt=Decimal("1000000"))
    rate: Decimal = Field(ge=0, lt=Decimal("1000000000"))


class InvoiceCreate(BaseModel):
    """Create payload; totals are computed from the items."""

    invoice_number: Optional[str] = Field(default=None, min_length=1, max_length=32)
    client_id: Optional[int] = None
    date: dt.date
    due_date: dt.date
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    notes: Optional[str] = Field(default=None, max_length=1024)
    income_category_id: Optional[int] = None
    items: list[InvoiceItemCreate] = Field(min_length=1)

    @field_validator("currency")
    @classmethod
    def normalize_currency_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        result = normalize_currency(value)
        if result is None:
            raise ValueError(f"unsupported currency: {value}")
        return result

    @model_validator(mode="after")
    def check_dates(self) -> "InvoiceCreate":
        if self.due_date < self.date:
            raise ValueError("due_date must not be before date")
        return self


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus
    paid_date: Optional[dt.date] = None
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)


class InvoiceItemRead(ORMBaseSchema):
    id: int
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal


class InvoiceSummary(ORMBaseSchema):
    """Invoice header without line items, used in listings."""

    id: int
    invoice_number: str
    client_id: Optional[int]
    date: dt.date
    due_date: dt.date
    status: InvoiceStatus
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    notes: Optional[str]
    sent_date: Optional[dt.date]
    paid_date: Optional[dt.date]
    income_category_id: Optional[int]
    created_at: dt.datetime


class InvoiceRead(InvoiceSummary):
    items: list[InvoiceItemRead]


class MarkOverdueResult(BaseModel):
    updated: int
    invoice_ids: list[int]
