"""Vendor schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from smartledger.schemas.common import ORMBaseSchema


class VendorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    tax_id: Optional[str] = Field(default=None, max_length=64)


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    tax_id: Optional[str] = Field(default=None, max_length=64)


class VendorRead(ORMBaseSchema):
    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    tax_id: Optional[str]
    created_at: datetime
