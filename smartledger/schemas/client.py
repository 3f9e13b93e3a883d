"""Client schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from smartledger.schemas.common import ORMBaseSchema, blank_to_none


class ClientCreate(BaseModel):
    """Create payload for a client."""

    name: str = Field(min_length=1, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=512)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be blank")
        return trimmed

    @field_validator("email", "phone", "address")
    @classmethod
    def normalize_optional(cls, value: Optional[str]) -> Optional[str]:
        return blank_to_none(value)


class ClientUpdate(BaseModel):
    """Partial update; omitted fields stay unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=512)

    @field_validator("email", "phone", "address")
    @classmethod
    def normalize_optional(cls, value: Optional[str]) -> Optional[str]:
        return blank_to_none(value)


class ClientRead(ORMBaseSchema):
    """Read model for clients."""

    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    created_at: datetime
