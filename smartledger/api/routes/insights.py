"""Business insight endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_insights_service, get_session
from smartledger.insights.service import InsightsService
from smartledger.schemas.insight import InsightsResponse
from smartledger.services.team_service import AccountContext

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("", response_model=InsightsResponse)
async def get_insights(
    refresh: bool = Query(default=False),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: InsightsService = Depends(get_insights_service),
) -> InsightsResponse:
    """Prioritised suggestions; cached per account unless ``refresh`` is set."""

    return await service.get_insights(session, account.account_id, force_refresh=refresh)
