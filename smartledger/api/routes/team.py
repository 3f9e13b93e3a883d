"""Account and team membership endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_session, get_subscription_state, get_team_service
from smartledger.schemas.team import AccountRead, InviteAccept, TeamMemberCreate, TeamMemberRead
from smartledger.security.auth import require_api_auth
from smartledger.services.team_service import AccountContext, TeamService
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(tags=["team"])


def _account_read(account: AccountContext) -> AccountRead:
    return AccountRead(
        user_id=account.user_id,
        account_id=account.account_id,
        role=account.role,
        can_manage_team=account.can_manage_team,
    )


@router.get("/account", response_model=AccountRead)
async def get_current_account(account: AccountContext = Depends(get_account)) -> AccountRead:
    """Which account the caller acts on and with what role."""

    return _account_read(account)


@router.get("/team/members", response_model=list[TeamMemberRead])
async def list_team_members(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service),
) -> list[TeamMemberRead]:
    rows = await service.list_members(session, account)
    return [TeamMemberRead.model_validate(row) for row in rows]


@router.post("/team/members", response_model=TeamMemberRead, status_code=201)
async def add_team_member(
    payload: TeamMemberCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service),
) -> TeamMemberRead:
    """Invite a member; counts against the plan's user seats."""

    member = await service.add_member(session, account, state, email=payload.email, role=payload.role)
    return TeamMemberRead.model_validate(member)


@router.post("/team/invites/accept", response_model=AccountRead)
async def accept_team_invite(
    payload: InviteAccept,
    user_id: str = Depends(require_api_auth),
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service),
) -> AccountRead:
    """Join the team that issued ``invite_code``."""

    await service.accept_invite(session, user_id, payload.invite_code)
    return _account_read(await service.resolve_account(session, user_id))


@router.delete("/team/members/{member_id}", response_model=TeamMemberRead)
async def remove_team_member(
    member_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service),
) -> TeamMemberRead:
    member = await service.remove_member(session, account, member_id)
    return TeamMemberRead.model_validate(member)
