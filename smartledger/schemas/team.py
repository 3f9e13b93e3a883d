"""Team membership schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from smartledger.database.models import MemberStatus, TeamRole
from smartledger.schemas.common import ORMBaseSchema


class TeamMemberCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: TeamRole = TeamRole.MEMBER

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
            raise ValueError("email must be a valid address")
        return normalized


class InviteAccept(BaseModel):
    invite_code: str = Field(min_length=1, max_length=64)


class TeamMemberRead(ORMBaseSchema):
    """Membership row; the invite code is shown until the invite is claimed."""

    id: int
    team_id: str
    user_id: Optional[str]
    email: str
    role: TeamRole
    status: MemberStatus
    invite_code: Optional[str]
    invite_expires_at: Optional[datetime]
    created_at: datetime


class AccountRead(BaseModel):
    user_id: str
    account_id: str
    role: TeamRole
    can_manage_team: bool
