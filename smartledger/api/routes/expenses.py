"""Expense endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_expense_service, get_session, get_subscription_state
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.transaction import ExpenseCreate, ExpenseListResponse, ExpenseRead, ExpenseUpdate
from smartledger.services.team_service import AccountContext
from smartledger.services.transaction_service import ExpenseService
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    category_id: Optional[int] = Query(default=None),
    project_id: Optional[int] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseListResponse:
    """Money spent, newest first."""

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
    return ExpenseListResponse(total=total, items=[ExpenseRead.model_validate(row) for row in items])


@router.post("", response_model=ExpenseRead, status_code=201)
async def create_expense(
    payload: ExpenseCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    entry = await service.create_expense(session, account.account_id, state, payload)
    return ExpenseRead.model_validate(entry)


@router.get("/{entry_id}", response_model=ExpenseRead)
async def get_expense(
    entry_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    entry = await service.get_entry(session, account.account_id, entry_id)
    return ExpenseRead.model_validate(entry)


@router.patch("/{entry_id}", response_model=ExpenseRead)
async def update_expense(
    entry_id: int,
    payload: ExpenseUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    entry = await service.update_expense(session, account.account_id, state, entry_id, payload)
    return ExpenseRead.model_validate(entry)


@router.delete("/{entry_id}", response_model=DeleteResult)
async def delete_expense(
    entry_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> DeleteResult:
    await service.delete_entry(session, account.account_id, state, entry_id)
    return DeleteResult(id=entry_id)
