"""Income endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_income_service, get_session, get_subscription_state
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.transaction import IncomeCreate, IncomeListResponse, IncomeRead, IncomeUpdate
from smartledger.services.team_service import AccountContext
from smartledger.services.transaction_service import IncomeService
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/incomes", tags=["incomes"])


@router.get("", response_model=IncomeListResponse)
async def list_incomes(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    category_id: Optional[int] = Query(default=None),
    project_id: Optional[int] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: IncomeService = Depends(get_income_service),
) -> IncomeListResponse:
    """Money received, newest first."""

    total, items = await service.list_entries(
        session,
        account.account_id,
        offset=offset,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
        category_id=category_id,
        project_id=project_id,
    )
    return IncomeListResponse(total=total, items=[IncomeRead.model_validate(row) for row in items])


@router.post("", response_model=IncomeRead, status_code=201)
async def create_income(
    payload: IncomeCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: IncomeService = Depends(get_income_service),
) -> IncomeRead:
    entry = await service.create_income(session, account.account_id, state, payload)
    return IncomeRead.model_validate(entry)


@router.get("/{entry_id}", response_model=IncomeRead)
async def get_income(
    entry_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: IncomeService = Depends(get_income_service),
) -> IncomeRead:
    entry = await service.get_entry(session, account.account_id, entry_id)
    return IncomeRead.model_validate(entry)


@router.patch("/{entry_id}", response_model=IncomeRead)
async def update_income(
    entry_id: int,
    payload: IncomeUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: IncomeService = Depends(get_income_service),
) -> IncomeRead:
    entry = await service.update_income(session, account.account_id, state, entry_id, payload)
    return IncomeRead.model_validate(entry)


@router.delete("/{entry_id}", response_model=DeleteResult)
async def delete_income(
    entry_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: IncomeService = Depends(get_income_service),
) -> DeleteResult:
    await service.delete_entry(session, account.account_id, state, entry_id)
    return DeleteResult(id=entry_id)
