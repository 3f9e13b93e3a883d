"""Invoice creation, status transitions and payment booking."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smartledger.api.errors import ConflictError, NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import CategoryType, Client, Income, Invoice, InvoiceItem, InvoiceStatus
from smartledger.schemas.invoice import InvoiceCreate, InvoiceItemCreate
from smartledger.services.ownership import ChangeHook, check_category, check_reference, no_change_hook
from smartledger.subscriptions.service import SubscriptionState
from smartledger.utils.money import ZERO, base_amount, round_money, tax_amount

logger = structlog.get_logger(__name__)

INVOICE_NUMBER_PREFIX = "INV-"

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELED: frozenset(),
}

DELETABLE_STATUSES = (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELED.value)


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def line_amount(item: InvoiceItemCreate) -> Decimal:
    return round_money(item.quantity * item.rate)


def compute_totals(items: list[InvoiceItemCreate], tax_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """Subtotal, tax and total for a set of lines."""

    subtotal = round_money(sum((line_amount(item) for item in items), ZERO))
    tax = tax_amount(subtotal, tax_rate)
    return subtotal, tax, subtotal + tax


def build_invoice(
    account_id: str,
    number: str,
    *,
    client_id: Optional[int],
    invoice_date: date,
    due_date: date,
    tax_rate: Decimal,
    currency: str,
    notes: Optional[str],
    income_category_id: Optional[int],
    items: list[InvoiceItemCreate],
) -> Invoice:
    """Unsaved draft invoice with its lines and computed totals."""

    subtotal, tax, total = compute_totals(items, tax_rate)
    return Invoice(
        user_id=account_id,
        invoice_number=number,
        client_id=client_id,
        date=invoice_date,
        due_date=due_date,
        status=InvoiceStatus.DRAFT.value,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax,
        total=total,
        currency=currency,
        notes=notes,
        income_category_id=income_category_id,
        items=[
            InvoiceItem(
                description=item.description.strip(),
                quantity=item.quantity,
                rate=item.rate,
                amount=line_amount(item),
            )
            for item in items
        ],
    )


async def next_invoice_number(session: AsyncSession, account_id: str) -> str:
    """First free INV-NNNN number after the account's invoice count."""

    count = await session.scalar(select(func.count(Invoice.id)).where(Invoice.user_id == account_id))
    sequence = int(count or 0) + 1
    while True:
        candidate = f"{INVOICE_NUMBER_PREFIX}{sequence:04d}"
        taken = await session.scalar(
            select(Invoice.id).where(Invoice.user_id == account_id, Invoice.invoice_number == candidate)
        )
        if taken is None:
            return candidate
        sequence += 1


class InvoiceService:
    """Invoices of an account and their lifecycle."""

    def __init__(self, base_currency: str, on_change: ChangeHook = no_change_hook) -> None:
        self.base_currency = base_currency.upper()
        self._on_change = on_change

    async def _load(self, session: AsyncSession, account_id: str, invoice_id: int) -> Invoice:
        result = await session.execute(
            select(Invoice)
            .options(selectinload(Invoice.items))
            .where(Invoice.id == invoice_id, Invoice.user_id == account_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return invoice

    async def list_invoices(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[Invoice]:
        stmt = select(Invoice).where(Invoice.user_id == account_id)
        if status is not None:
            stmt = stmt.where(Invoice.status == status.value)
        if client_id is not None:
            stmt = stmt.where(Invoice.client_id == client_id)
        result = await session.execute(
            stmt.order_by(Invoice.date.desc(), Invoice.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def get_invoice(self, session: AsyncSession, account_id: str, invoice_id: int) -> Invoice:
        return await self._load(session, account_id, invoice_id)

    async def create_invoice(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        payload: InvoiceCreate,
    ) -> Invoice:
        """Create a draft invoice with its lines if the monthly quota allows."""

        state.require_active()
        if not state.can_create_invoice():
            logger.info("invoice_limit_reached", account_id=account_id, monthly=state.usage.monthly_invoices)
            raise PlanLimitError(
                f"Your plan allows {state.limits.monthly_invoices} invoices per month. "
                "Upgrade to create more invoices."
            )

        currency = payload.currency or self.base_currency
        if currency != self.base_currency:
            state.require_feature("multi_currency")
        await check_reference(session, Client, payload.client_id, account_id, "client_id")
        await check_category(session, payload.income_category_id, account_id, CategoryType.INCOME, "income_category_id")

        number = payload.invoice_number.strip() if payload.invoice_number else None
        if number:
            taken = await session.scalar(
                select(Invoice.id).where(Invoice.user_id == account_id, Invoice.invoice_number == number)
            )
            if taken is not None:
                raise ConflictError(f"Invoice number {number} already exists")
        else:
            number = await next_invoice_number(session, account_id)

        invoice = build_invoice(
            account_id,
            number,
            client_id=payload.client_id,
            invoice_date=payload.date,
            due_date=payload.due_date,
            tax_rate=payload.tax_rate,
            currency=currency,
            notes=payload.notes,
            income_category_id=payload.income_category_id,
            items=payload.items,
        )
        session.add(invoice)
        await session.flush()
        invoice_id = invoice.id
        await session.commit()
        self._on_change(account_id)
        logger.info(
            "invoice_created", account_id=account_id, invoice_id=invoice_id, number=number, total=str(invoice.total)
        )
        return await self._load(session, account_id, invoice_id)

    async def update_status(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        invoice_id: int,
        target: InvoiceStatus,
        *,
        today: date,
        paid_date: Optional[date] = None,
        exchange_rate: Optional[Decimal] = None,
    ) -> Invoice:
        """Move an invoice along its lifecycle.

        Sending stamps ``sent_date``. Paying stamps ``paid_date`` and books an
        Income whose reference number is the invoice id.
        """

        state.require_active()
        invoice = await self._load(session, account_id, invoice_id)
        current = InvoiceStatus(invoice.status)
        if not can_transition(current, target):
            raise ConflictError(f"Cannot change invoice status from {current.value} to {target.value}")

        if target == InvoiceStatus.SENT:
            invoice.sent_date = today
        elif target == InvoiceStatus.PAID:
            invoice.paid_date = paid_date or today
            session.add(self._payment_income(invoice, exchange_rate))
        invoice.status = target.value

        await session.flush()
        await session.commit()
        self._on_change(account_id)
        logger.info("invoice_status_changed", account_id=account_id, invoice_id=invoice_id, status=target.value)
        return await self._load(session, account_id, invoice_id)

    def _payment_income(self, invoice: Invoice, exchange_rate: Optional[Decimal]) -> Income:
        if invoice.currency == self.base_currency:
            rate = Decimal("1")
        elif exchange_rate is None:
            raise ValidationError(f"exchange_rate is required to record a {invoice.currency} payment")
        else:
            rate = exchange_rate

        return Income(
            user_id=invoice.user_id,
            amount=invoice.total,
            currency=invoice.currency,
            exchange_rate=rate,
            base_amount=base_amount(invoice.total, rate),
            tax_rate=invoice.tax_rate,
            tax_amount=invoice.tax_amount,
            category_id=invoice.income_category_id,
            client_id=invoice.client_id,
            description=f"Payment for invoice {invoice.invoice_number}",
            date=invoice.paid_date,
            reference_number=str(invoice.id),
        )

    async def mark_overdue(self, session: AsyncSession, account_id: str, today: date) -> list[int]:
        """Flag sent invoices whose due date has passed."""

        result = await session.execute(
            select(Invoice).where(
                Invoice.user_id == account_id,
                Invoice.status == InvoiceStatus.SENT.value,
                Invoice.due_date < today,
            )
        )
        invoices = list(result.scalars().all())
        for invoice in invoices:
            invoice.status = InvoiceStatus.OVERDUE.value
        if invoices:
            await session.flush()
            await session.commit()
            self._on_change(account_id)
            logger.info("invoices_marked_overdue", account_id=account_id, count=len(invoices))
        return [invoice.id for invoice in invoices]

    async def delete_invoice(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        invoice_id: int,
    ) -> None:
        """Only drafts and canceled invoices can be deleted."""

        state.require_active()
        invoice = await self._load(session, account_id, invoice_id)
        if invoice.status not in DELETABLE_STATUSES:
            raise ConflictError(f"Cannot delete a {invoice.status} invoice; cancel it first")
        await session.delete(invoice)
        await session.commit()
        self._on_change(account_id)
