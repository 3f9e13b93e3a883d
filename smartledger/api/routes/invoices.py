"""Invoice endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_invoice_service, get_session, get_subscription_state
from smartledger.database.models import InvoiceStatus
from smartledger.reports.service import local_today
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.invoice import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceStatusUpdate,
    InvoiceSummary,
    MarkOverdueResult,
)
from smartledger.services.invoice_service import InvoiceService
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=list[InvoiceSummary])
async def list_invoices(
    status: Optional[InvoiceStatus] = Query(default=None),
    client_id: Optional[int] = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[InvoiceSummary]:
    """List invoice headers, newest first."""

    rows = await service.list_invoices(
        session, account.account_id, status=status, client_id=client_id, offset=offset, limit=limit
    )
    return [InvoiceSummary.model_validate(row) for row in rows]


@router.post("", response_model=InvoiceRead, status_code=201)
async def create_invoice(
    payload: InvoiceCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """Create a draft invoice with its line items."""

    invoice = await service.create_invoice(session, account.account_id, state, payload)
    return InvoiceRead.model_validate(invoice)


@router.post("/mark-overdue", response_model=MarkOverdueResult)
async def mark_overdue_invoices(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> MarkOverdueResult:
    """Flag sent invoices past their due date as overdue."""

    invoice_ids = await service.mark_overdue(session, account.account_id, local_today())
    return MarkOverdueResult(updated=len(invoice_ids), invoice_ids=invoice_ids)


@router.get("/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_invoice(session, account.account_id, invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post("/{invoice_id}/status", response_model=InvoiceRead)
async def update_invoice_status(
    invoice_id: int,
    payload: InvoiceStatusUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """Send, pay, flag or cancel an invoice."""

    invoice = await service.update_status(
        session,
        account.account_id,
        state,
        invoice_id,
        payload.status,
        today=local_today(),
        paid_date=payload.paid_date,
        exchange_rate=payload.exchange_rate,
    )
    return InvoiceRead.model_validate(invoice)


@router.delete("/{invoice_id}", response_model=DeleteResult)
async def delete_invoice(
    invoice_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: InvoiceService = Depends(get_invoice_service),
) -> DeleteResult:
    await service.delete_invoice(session, account.account_id, state, invoice_id)
    return DeleteResult(id=invoice_id)
