"""Recurring invoice template schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from smartledger.database.models import RecurringFrequency
from smartledger.schemas.common import ORMBaseSchema
from smartledger.schemas.invoice import InvoiceItemCreate
from smartledger.utils.currency import normalize_currency


def _currency(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    result = normalize_currency(value)
    if result is None:
        raise ValueError(f"unsupported currency: {value}")
    return result


class RecurringInvoiceCreate(BaseModel):
    """Template; ``next_date`` is the date of the first generated invoice."""

    client_id: Optional[int] = None
    frequency: RecurringFrequency = RecurringFrequency.MONTHLY
    next_date: dt.date
    end_date: Optional[dt.date] = None
    payment_terms_days: int = Field(default=30, ge=0, le=365)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    notes: Optional[str] = Field(default=None, max_length=1024)
    income_category_id: Optional[int] = None
    items: list[InvoiceItemCreate] = Field(min_length=1)

    @field_validator("currency")
    @classmethod
    def normalize_currency_code(cls, value: Optional[str]) -> Optional[str]:
        return _currency(value)

    @model_validator(mode="after")
    def check_dates(self) -> "RecurringInvoiceCreate":
        if self.end_date is not None and self.end_date < self.next_date:
            raise ValueError("end_date must not be before next_date")
        return self


class RecurringInvoiceUpdate(BaseModel):
    """Partial update; ``is_active`` pauses or resumes the template."""

    client_id: Optional[int] = None
    frequency: Optional[RecurringFrequency] = None
    next_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_active: Optional[bool] = None
    payment_terms_days: Optional[int] = Field(default=None, ge=0, le=365)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=8)
    notes: Optional[str] = Field(default=None, max_length=1024)
    income_category_id: Optional[int] = None
    items: Optional[list[InvoiceItemCreate]] = Field(default=None, min_length=1)

    @field_validator("currency")
    @classmethod
    def normalize_currency_code(cls, value: Optional[str]) -> Optional[str]:
        return _currency(value)


class RecurringInvoiceRead(ORMBaseSchema):
    id: int
    client_id: Optional[int]
    frequency: RecurringFrequency
    next_date: dt.date
    end_date: Optional[dt.date]
    last_generated: Optional[dt.date]
    is_active: bool
    payment_terms_days: int
    tax_rate: Decimal
    currency: str
    notes: Optional[str]
    income_category_id: Optional[int]
    items: list[InvoiceItemCreate]
    created_at: dt.datetime


class GenerateResult(BaseModel):
    generated: int
    invoice_ids: list[int]
