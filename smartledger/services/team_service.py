"""Account resolution and team membership management."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ConflictError, NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import MemberStatus, TeamMember, TeamRole
from smartledger.subscriptions.service import SubscriptionState

logger = structlog.get_logger(__name__)

INVITE_TTL = timedelta(days=7)


@dataclass(frozen=True)
class AccountContext:
    """Who is calling and whose books they act on."""

    user_id: str
    account_id: str
    role: TeamRole

    @property
    def can_manage_team(self) -> bool:
        return self.role in (TeamRole.OWNER, TeamRole.ADMIN)


class TeamService:
    """Map users onto team accounts and manage memberships."""

    async def resolve_account(self, session: AsyncSession, user_id: str) -> AccountContext:
        """Active members act on the owner's account; everyone else owns their own."""

        result = await session.execute(
            select(TeamMember)
            .where(TeamMember.user_id == user_id, TeamMember.status == MemberStatus.ACTIVE.value)
            .order_by(TeamMember.id.asc())
            .limit(1)
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            return AccountContext(user_id=user_id, account_id=user_id, role=TeamRole.OWNER)
        return AccountContext(user_id=user_id, account_id=membership.team_id, role=TeamRole(membership.role))

    async def list_members(self, session: AsyncSession, account: AccountContext) -> list[TeamMember]:
        if not account.can_manage_team:
            raise PlanLimitError("Only team owners and admins can manage members")

        result = await session.execute(
            select(TeamMember)
            .where(TeamMember.team_id == account.account_id, TeamMember.status != MemberStatus.REMOVED.value)
            .order_by(TeamMember.id.asc())
        )
        return list(result.scalars().all())

    async def add_member(
        self,
        session: AsyncSession,
        account: AccountContext,
        state: SubscriptionState,
        *,
        email: str,
        role: TeamRole,
        now: Optional[datetime] = None,
    ) -> TeamMember:
        """Invite a member if the plan has a seat left.

        The member stays ``invited`` until the invitee claims the invite code
        with :meth:`accept_invite`; only then does it act on this account.
        """

        if not account.can_manage_team:
            raise PlanLimitError("Only team owners and admins can manage members")
        if role == TeamRole.OWNER:
            raise ConflictError("A team has exactly one owner")
        state.require_active()
        if not state.can_add_users():
            logger.info("team_limit_reached", account_id=account.account_id, users=state.usage.users)
            raise PlanLimitError(f"Your plan allows {state.limits.users} user(s). Upgrade to add more team members.")

        normalized = email.strip().lower()
        existing = await session.execute(
            select(TeamMember.id).where(
                TeamMember.team_id == account.account_id,
                TeamMember.email == normalized,
                TeamMember.status != MemberStatus.REMOVED.value,
            )
        )
        if existing.first() is not None:
            raise ConflictError(f"{normalized} is already a team member")

        now = now or datetime.now(timezone.utc)
        member = TeamMember(
            team_id=account.account_id,
            email=normalized,
            role=role.value,
            status=MemberStatus.INVITED.value,
            invite_code=uuid.uuid4().hex,
            invite_expires_at=now + INVITE_TTL,
        )
        session.add(member)
        await session.flush()
        await session.refresh(member)
        await session.commit()
        logger.info("team_member_invited", account_id=account.account_id, member_id=member.id, role=member.role)
        return member

    async def accept_invite(
        self,
        session: AsyncSession,
        user_id: str,
        invite_code: str,
        now: Optional[datetime] = None,
    ) -> TeamMember:
        """Bind the calling user to a pending invite and activate the membership."""

        result = await session.execute(
            select(TeamMember).where(
                TeamMember.invite_code == invite_code.strip(),
                TeamMember.status == MemberStatus.INVITED.value,
            )
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError("Invitation not found")

        now = now or datetime.now(timezone.utc)
        expires_at = member.invite_expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Invitation has expired")
        if member.team_id == user_id:
            raise ConflictError("You already own this team")

        current = await session.scalar(
            select(TeamMember.id).where(
                TeamMember.user_id == user_id,
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
        )
        if current is not None:
            raise ConflictError("Leave your current team before joining another one")

        member.user_id = user_id
        member.status = MemberStatus.ACTIVE.value
        member.invite_code = None
        member.invite_expires_at = None
        await session.flush()
        await session.commit()
        logger.info("team_invite_accepted", account_id=member.team_id, member_id=member.id)
        return member

    async def remove_member(self, session: AsyncSession, account: AccountContext, member_id: int) -> TeamMember:
        if not account.can_manage_team:
            raise PlanLimitError("Only team owners and admins can manage members")

        result = await session.execute(
            select(TeamMember).where(TeamMember.id == member_id, TeamMember.team_id == account.account_id)
        )
        member = result.scalar_one_or_none()
        if member is None or member.status == MemberStatus.REMOVED.value:
            raise NotFoundError(f"Team member not found: {member_id}")
        if member.role == TeamRole.OWNER.value:
            raise ConflictError("The team owner cannot be removed")

        member.status = MemberStatus.REMOVED.value
        member.invite_code = None
        await session.flush()
        await session.commit()
        logger.info("team_member_removed", account_id=account.account_id, member_id=member_id)
        return member
