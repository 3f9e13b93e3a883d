"""Project schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from smartledger.database.models import ProjectStatus
from smartledger.schemas.common import ORMBaseSchema, blank_to_none

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=1024)
    client_id: Optional[int] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    budget_amount: Optional[Decimal] = Field(default=None, ge=0, lt=Decimal("1000000000"))
    color: str = Field(default="#6366F1", pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be blank")
        return trimmed

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: Optional[str]) -> Optional[str]:
        return blank_to_none(value)

    @model_validator(mode="after")
    def check_dates(self) -> "ProjectCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ProjectUpdate(BaseModel):
    """Partial update; omitted fields stay unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=1024)
    client_id: Optional[int] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    budget_amount: Optional[Decimal] = Field(default=None, ge=0, lt=Decimal("1000000000"))
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: Optional[str]) -> Optional[str]:
        return blank_to_none(value)


class ProjectRead(ORMBaseSchema):
    id: int
    name: str
    description: Optional[str]
    client_id: Optional[int]
    status: ProjectStatus
    start_date: Optional[dt.date]
    end_date: Optional[dt.date]
    budget_amount: Optional[Decimal]
    color: str
    created_at: dt.datetime


class ProjectStats(BaseModel):
    """Money booked against a project, in the base currency."""

    total_income: Decimal
    total_expenses: Decimal
    profit: Decimal
    profit_margin: Decimal
    budget_used: Optional[Decimal]
    income_count: int
    expense_count: int


class ProjectDetail(ProjectRead):
    stats: ProjectStats
