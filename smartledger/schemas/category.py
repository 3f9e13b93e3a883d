"""Category schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from smartledger.database.models import CategoryType
from smartledger.schemas.common import ORMBaseSchema

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    type: CategoryType
    color: str = Field(default="#6366F1", pattern=HEX_COLOR)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class CategoryRead(ORMBaseSchema):
    id: int
    name: str
    type: CategoryType
    color: str
    created_at: datetime
