"""Recurring invoice endpoints; every route needs the recurring_invoices feature."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_recurring_service, get_session, require_feature
from smartledger.reports.service import local_today
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.recurring import (
    GenerateResult,
    RecurringInvoiceCreate,
    RecurringInvoiceRead,
    RecurringInvoiceUpdate,
)
from smartledger.services.recurring_service import FEATURE, RecurringInvoiceService
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/recurring-invoices", tags=["recurring-invoices"])

feature_state = require_feature(FEATURE)


@router.get("", response_model=list[RecurringInvoiceRead])
async def list_recurring_invoices(
    active: Optional[bool] = Query(default=None),
    account: AccountContext = Depends(get_account),
    _state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> list[RecurringInvoiceRead]:
    rows = await service.list_templates(session, account.account_id, active=active)
    return [RecurringInvoiceRead.model_validate(row) for row in rows]


@router.post("", response_model=RecurringInvoiceRead, status_code=201)
async def create_recurring_invoice(
    payload: RecurringInvoiceCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> RecurringInvoiceRead:
    template = await service.create_template(session, account.account_id, state, payload)
    return RecurringInvoiceRead.model_validate(template)


@router.post("/generate", response_model=GenerateResult)
async def generate_recurring_invoices(
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> GenerateResult:
    """Issue draft invoices for every template due today or earlier."""

    invoice_ids = await service.generate_due(session, account.account_id, state, local_today())
    return GenerateResult(generated=len(invoice_ids), invoice_ids=invoice_ids)


@router.get("/{template_id}", response_model=RecurringInvoiceRead)
async def get_recurring_invoice(
    template_id: int,
    account: AccountContext = Depends(get_account),
    _state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> RecurringInvoiceRead:
    template = await service.get_template(session, account.account_id, template_id)
    return RecurringInvoiceRead.model_validate(template)


@router.patch("/{template_id}", response_model=RecurringInvoiceRead)
async def update_recurring_invoice(
    template_id: int,
    payload: RecurringInvoiceUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> RecurringInvoiceRead:
    template = await service.update_template(session, account.account_id, state, template_id, payload)
    return RecurringInvoiceRead.model_validate(template)


@router.delete("/{template_id}", response_model=DeleteResult)
async def delete_recurring_invoice(
    template_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(feature_state),
    session: AsyncSession = Depends(get_session),
    service: RecurringInvoiceService = Depends(get_recurring_service),
) -> DeleteResult:
    await service.delete_template(session, account.account_id, state, template_id)
    return DeleteResult(id=template_id)
