from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import ConflictError, PlanLimitError, ValidationError
from smartledger.database.models import Category, Client, Income, InvoiceStatus, PlanType
from smartledger.schemas.invoice import InvoiceCreate, InvoiceItemCreate
from smartledger.services.invoice_service import InvoiceService, can_transition, compute_totals
from smartledger.subscriptions.service import Usage

ACCOUNT = "owner-1"
TODAY = date(2024, 3, 15)


def _payload(**overrides) -> InvoiceCreate:
    data = {
        "date": date(2024, 3, 1),
        "due_date": date(2024, 3, 31),
        "tax_rate": Decimal("10"),
        "items": [
            InvoiceItemCreate(description="Design", quantity=Decimal("3"), rate=Decimal("33.335")),
            InvoiceItemCreate(description="Hosting", quantity=Decimal("1"), rate=Decimal("50")),
        ],
    }
    data.update(overrides)
    return InvoiceCreate(**data)


def test_totals_round_each_line() -> None:
    subtotal, tax, total = compute_totals(_payload().items, Decimal("10"))

    assert subtotal == Decimal("150.01")
    assert tax == Decimal("15.00")
    assert total == Decimal("165.01")


def test_transition_table() -> None:
    assert can_transition(InvoiceStatus.DRAFT, InvoiceStatus.SENT) is True
    assert can_transition(InvoiceStatus.DRAFT, InvoiceStatus.PAID) is False
    assert can_transition(InvoiceStatus.SENT, InvoiceStatus.OVERDUE) is True
    assert can_transition(InvoiceStatus.OVERDUE, InvoiceStatus.PAID) is True
    assert can_transition(InvoiceStatus.PAID, InvoiceStatus.CANCELED) is False


@pytest.mark.asyncio
async def test_create_numbers_invoices_sequentially(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    changes: list[str] = []
    service = InvoiceService("USD", on_change=changes.append)
    state = make_state()

    async with session_factory() as session:
        first = await service.create_invoice(session, ACCOUNT, state, _payload())
        second = await service.create_invoice(session, ACCOUNT, state, _payload())
        with pytest.raises(ConflictError):
            await service.create_invoice(session, ACCOUNT, state, _payload(invoice_number="INV-0001"))

    assert first.invoice_number == "INV-0001"
    assert second.invoice_number == "INV-0002"
    assert first.status == InvoiceStatus.DRAFT.value
    assert first.total == Decimal("165.01")
    assert [item.amount for item in first.items] == [Decimal("100.01"), Decimal("50.00")]
    assert changes == [ACCOUNT, ACCOUNT]


@pytest.mark.asyncio
async def test_monthly_invoice_limit(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")
    state = make_state(PlanType.SIMPLE_START, usage=Usage(monthly_invoices=50))

    async with session_factory() as session:
        with pytest.raises(PlanLimitError):
            await service.create_invoice(session, ACCOUNT, state, _payload())


@pytest.mark.asyncio
async def test_foreign_currency_needs_multi_currency(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")

    async with session_factory() as session:
        with pytest.raises(PlanLimitError):
            await service.create_invoice(session, ACCOUNT, make_state(PlanType.SIMPLE_START), _payload(currency="EUR"))
        invoice = await service.create_invoice(session, ACCOUNT, make_state(PlanType.ESSENTIALS), _payload(currency="eur"))

    assert invoice.currency == "EUR"


@pytest.mark.asyncio
async def test_references_must_belong_to_account(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")
    state = make_state()

    async with session_factory() as session:
        foreign = Client(user_id="other", name="Foreign")
        expense_category = Category(user_id=ACCOUNT, name="Rent", type="expense")
        session.add_all([foreign, expense_category])
        await session.commit()

        with pytest.raises(ValidationError):
            await service.create_invoice(session, ACCOUNT, state, _payload(client_id=foreign.id))
        with pytest.raises(ValidationError):
            await service.create_invoice(session, ACCOUNT, state, _payload(income_category_id=expense_category.id))


@pytest.mark.asyncio
async def test_send_then_pay_books_income(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")
    state = make_state()

    async with session_factory() as session:
        client = Client(user_id=ACCOUNT, name="Acme")
        category = Category(user_id=ACCOUNT, name="Consulting", type="income")
        session.add_all([client, category])
        await session.commit()

        invoice = await service.create_invoice(
            session, ACCOUNT, state, _payload(client_id=client.id, income_category_id=category.id)
        )
        sent = await service.update_status(session, ACCOUNT, state, invoice.id, InvoiceStatus.SENT, today=TODAY)
        assert sent.sent_date == TODAY

        with pytest.raises(ConflictError):
            await service.update_status(session, ACCOUNT, state, invoice.id, InvoiceStatus.SENT, today=TODAY)

        paid = await service.update_status(
            session, ACCOUNT, state, invoice.id, InvoiceStatus.PAID, today=TODAY, paid_date=date(2024, 3, 20)
        )
        incomes = (await session.execute(select(Income).where(Income.user_id == ACCOUNT))).scalars().all()

        with pytest.raises(ConflictError):
            await service.delete_invoice(session, ACCOUNT, state, invoice.id)

    assert paid.status == InvoiceStatus.PAID.value
    assert paid.paid_date == date(2024, 3, 20)
    assert len(incomes) == 1
    income = incomes[0]
    assert income.reference_number == str(invoice.id)
    assert income.amount == Decimal("165.01")
    assert income.base_amount == Decimal("165.01")
    assert income.client_id == client.id
    assert income.category_id == category.id
    assert income.description == "Payment for invoice INV-0001"
    assert income.date == date(2024, 3, 20)


@pytest.mark.asyncio
async def test_foreign_payment_needs_exchange_rate(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")
    state = make_state()

    async with session_factory() as session:
        invoice = await service.create_invoice(session, ACCOUNT, state, _payload(currency="EUR"))
        await service.update_status(session, ACCOUNT, state, invoice.id, InvoiceStatus.SENT, today=TODAY)
        with pytest.raises(ValidationError):
            await service.update_status(session, ACCOUNT, state, invoice.id, InvoiceStatus.PAID, today=TODAY)
        await session.rollback()

        await service.update_status(
            session, ACCOUNT, state, invoice.id, InvoiceStatus.PAID, today=TODAY, exchange_rate=Decimal("1.1")
        )
        income = (await session.execute(select(Income))).scalar_one()

    assert income.currency == "EUR"
    assert income.base_amount == Decimal("181.51")


@pytest.mark.asyncio
async def test_mark_overdue_and_delete_rules(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = InvoiceService("USD")
    state = make_state()

    async with session_factory() as session:
        late = await service.create_invoice(session, ACCOUNT, state, _payload(due_date=date(2024, 3, 10)))
        on_time = await service.create_invoice(session, ACCOUNT, state, _payload(due_date=date(2024, 4, 10)))
        draft = await service.create_invoice(session, ACCOUNT, state, _payload(due_date=date(2024, 3, 5)))
        for invoice in (late, on_time):
            await service.update_status(session, ACCOUNT, state, invoice.id, InvoiceStatus.SENT, today=date(2024, 3, 2))

        flagged = await service.mark_overdue(session, ACCOUNT, TODAY)
        overdue = await service.list_invoices(session, ACCOUNT, status=InvoiceStatus.OVERDUE)

        await service.delete_invoice(session, ACCOUNT, state, draft.id)
        remaining = await service.list_invoices(session, ACCOUNT)

    assert flagged == [late.id]
    assert [inv.id for inv in overdue] == [late.id]
    assert sorted(inv.id for inv in remaining) == sorted([late.id, on_time.id])
