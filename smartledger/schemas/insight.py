"""Insight schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

InsightType = Literal["warning", "success", "info", "action", "urgent"]
InsightSource = Literal["cache", "smart_logic", "ai"]


class InsightAction(BaseModel):
    label: str
    link: str


class Insight(BaseModel):
    """One prioritized suggestion; priority runs 1-10, higher first."""

    id: str
    type: InsightType
    title: str
    message: str
    category: Optional[str] = None
    action: Optional[InsightAction] = None
    priority: int = Field(ge=1, le=10)


class InsightsResponse(BaseModel):
    insights: list[Insight]
    generated_at: datetime
    source: InsightSource
