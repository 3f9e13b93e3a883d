"""Common schema helpers."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, model_validator


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class ORMBaseSchema(BaseModel):
    """Base schema with ORM compatibility enabled."""

    model_config = {"from_attributes": True}


class DateRange(BaseModel):
    """Reusable inclusive date-range payload."""

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class DeleteResult(BaseModel):
    """Acknowledgement for delete endpoints."""

    id: int
    deleted: bool = True
    detail: Optional[str] = None
