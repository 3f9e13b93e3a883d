from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import ValidationError
from smartledger.database.models import Category, Client, Invoice, InvoiceStatus
from smartledger.reports.cache import ReportCache
from smartledger.reports.service import ReportService, expected_income, is_overdue, overdue_amount, resolve_range
from smartledger.schemas.transaction import ExpenseCreate, IncomeCreate
from smartledger.services.transaction_service import ExpenseService, IncomeService

ACCOUNT = "owner-1"


def _invoice(number: str, status: InvoiceStatus, total: str, issued: date, due: date, **extra) -> Invoice:
    amount = Decimal(total)
    return Invoice(
        user_id=ACCOUNT,
        invoice_number=number,
        date=issued,
        due_date=due,
        status=status.value,
        subtotal=amount,
        tax_rate=Decimal("0"),
        tax_amount=Decimal("0"),
        total=amount,
        currency="USD",
        **extra,
    )


async def _seed(session_factory: async_sessionmaker[AsyncSession], state) -> None:
    incomes = IncomeService("USD")
    expenses = ExpenseService("USD")

    async with session_factory() as session:
        consulting = Category(user_id=ACCOUNT, name="Consulting", type="income")
        software = Category(user_id=ACCOUNT, name="Software", type="expense")
        meals = Category(user_id=ACCOUNT, name="Meals", type="expense")
        acme = Client(user_id=ACCOUNT, name="Acme")
        other_account = Client(user_id="someone-else", name="Hidden")
        session.add_all([consulting, software, meals, acme, other_account])
        await session.commit()

        session.add_all(
            [
                _invoice("INV-0001", InvoiceStatus.PAID, "500", date(2024, 1, 1), date(2024, 1, 31),
                         client_id=acme.id, paid_date=date(2024, 1, 11)),
                _invoice("INV-0002", InvoiceStatus.SENT, "300", date(2024, 1, 20), date(2024, 2, 20),
                         client_id=acme.id),
                _invoice("INV-0003", InvoiceStatus.CANCELED, "100", date(2024, 1, 25), date(2024, 2, 25)),
            ]
        )
        await session.commit()

        await incomes.create_income(
            session,
            ACCOUNT,
            state,
            IncomeCreate(
                amount=Decimal("1000"),
                category_id=consulting.id,
                client_id=acme.id,
                description="January retainer",
                date=date(2024, 1, 10),
            ),
        )
        await incomes.create_income(
            session,
            ACCOUNT,
            state,
            IncomeCreate(
                amount=Decimal("100"),
                currency="EUR",
                exchange_rate=Decimal("1.1"),
                description="Workshop",
                date=date(2024, 1, 20),
            ),
        )
        await expenses.create_expense(
            session,
            ACCOUNT,
            state,
            ExpenseCreate(
                amount=Decimal("200"),
                tax_rate=Decimal("10"),
                category_id=software.id,
                description="IDE licences",
                date=date(2024, 1, 5),
            ),
        )
        await expenses.create_expense(
            session,
            ACCOUNT,
            state,
            ExpenseCreate(amount=Decimal("50"), category_id=meals.id, description="Client lunch", date=date(2024, 1, 15)),
        )


@pytest.mark.asyncio
async def test_summary_report(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    await _seed(session_factory, make_state())
    service = ReportService("USD")

    async with session_factory() as session:
        report = await service.summary(session, ACCOUNT, date(2024, 1, 1), date(2024, 1, 31))

    assert report.total_revenue == Decimal("1110.00")
    assert report.total_expenses == Decimal("250.00")
    assert report.net_profit == Decimal("860.00")
    assert report.profit_margin == Decimal("77.48")
    assert report.total_outstanding == Decimal("300.00")
    assert report.collection_rate == Decimal("33.33")
    assert report.avg_days_to_payment == Decimal("10.0")
    assert [(c.name, c.value, c.percentage) for c in report.income_categories] == [
        ("Consulting", Decimal("1000.00"), Decimal("90.09")),
        ("Uncategorized", Decimal("110.00"), Decimal("9.91")),
    ]
    assert [c.name for c in report.expense_categories] == ["Software", "Meals"]
    assert len(report.monthly) == 1
    assert report.monthly[0].month == "Jan 2024"
    assert report.monthly[0].profit == Decimal("860.00")


@pytest.mark.asyncio
async def test_tax_summary_report(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    await _seed(session_factory, make_state())
    service = ReportService("USD")

    async with session_factory() as session:
        report = await service.tax_summary(session, ACCOUNT, 2024)

    assert report.total_income == Decimal("1110.00")
    assert report.deductible_expenses == Decimal("200.00")
    assert report.net_income == Decimal("910.00")
    assert report.tax_paid == Decimal("20.00")
    assert report.tax_collected == Decimal("0.00")

    by_category = {row.category: row for row in report.expenses_by_tax_category}
    assert by_category["Software"].tax_category == "Software and Subscriptions"
    assert by_category["Software"].deductible is True
    assert by_category["Meals"].deductible is False
    assert {row.tax_category for row in report.income_by_tax_category} == {"Gross Receipts or Sales"}

    q1 = report.quarterly[0]
    assert q1.quarter == "Q1 2024"
    assert q1.net_income == Decimal("860.00")
    assert q1.estimated_tax == Decimal("215.00")
    assert report.quarterly[1].income == Decimal("0.00")


@pytest.mark.asyncio
async def test_cash_flow_uses_opening_balance_and_open_invoices(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    await _seed(session_factory, make_state())
    service = ReportService("USD")

    async with session_factory() as session:
        february = await service.cash_flow(
            session, ACCOUNT, date(2024, 2, 1), date(2024, 2, 29), today=date(2024, 2, 10)
        )

    assert february.opening_balance == Decimal("860.00")
    assert [(m.month, m.net, m.balance) for m in february.months] == [("Feb 2024", Decimal("0.00"), Decimal("860.00"))]
    assert february.closing_balance == Decimal("860.00")
    assert february.expected_income_30_days == Decimal("300.00")
    assert february.overdue_amount == Decimal("0.00")


@pytest.mark.asyncio
async def test_client_profitability_is_scoped_to_account(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    await _seed(session_factory, make_state())
    service = ReportService("USD")

    async with session_factory() as session:
        report = await service.client_profitability(session, ACCOUNT, date(2024, 1, 1), date(2024, 1, 31))

    assert [row.client_name for row in report.clients] == ["Acme"]
    acme = report.clients[0]
    assert acme.revenue == Decimal("1000.00")
    assert acme.outstanding == Decimal("300.00")
    assert acme.invoice_count == 2
    assert acme.paid_invoice_count == 1
    assert acme.avg_payment_days == Decimal("10.0")


@pytest.mark.asyncio
async def test_reports_are_cached_until_invalidated(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    cache = ReportCache(ttl_seconds=300)
    service = ReportService("USD", cache=cache)
    state = make_state()
    incomes = IncomeService("USD", on_change=cache.invalidate)

    async with session_factory() as session:
        first = await service.summary(session, ACCOUNT, date(2024, 1, 1), date(2024, 1, 31))
        await incomes.create_income(
            session,
            ACCOUNT,
            state,
            IncomeCreate(amount=Decimal("10"), description="Tip", date=date(2024, 1, 3)),
        )
        assert len(cache) == 0

        second = await service.summary(session, ACCOUNT, date(2024, 1, 1), date(2024, 1, 31))
        third = await service.summary(session, ACCOUNT, date(2024, 1, 1), date(2024, 1, 31))

    assert first.total_revenue == Decimal("0.00")
    assert second.total_revenue == Decimal("10.00")
    assert third is second


@pytest.mark.asyncio
async def test_cash_flow_cache_is_keyed_by_today(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    await _seed(session_factory, make_state())
    service = ReportService("USD", cache=ReportCache(ttl_seconds=300))

    async with session_factory() as session:
        early = await service.cash_flow(session, ACCOUNT, date(2024, 2, 1), date(2024, 2, 29), today=date(2024, 2, 10))
        again = await service.cash_flow(session, ACCOUNT, date(2024, 2, 1), date(2024, 2, 29), today=date(2024, 2, 10))
        later = await service.cash_flow(session, ACCOUNT, date(2024, 2, 1), date(2024, 2, 29), today=date(2024, 6, 1))

    assert again is early
    assert later is not early
    assert early.overdue_amount == Decimal("0.00")
    assert later.overdue_amount == Decimal("300.00")


def test_resolve_range_fills_and_checks_bounds() -> None:
    today = date(2024, 3, 15)

    assert resolve_range(None, None, today) == (date(2024, 3, 1), date(2024, 3, 31))
    assert resolve_range(None, date(2024, 3, 10), today) == (date(2024, 3, 1), date(2024, 3, 10))
    assert resolve_range(date(2024, 1, 1), None, today) == (date(2024, 1, 1), date(2024, 3, 31))
    with pytest.raises(ValidationError):
        resolve_range(date(2099, 3, 1), None, today)
    with pytest.raises(ValidationError):
        resolve_range(None, date(2024, 2, 1), today)
    with pytest.raises(ValidationError):
        resolve_range(date(2024, 2, 1), date(2024, 1, 1), today)


@pytest.mark.asyncio
async def test_reports_reject_start_after_the_filled_end(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    service = ReportService("USD")

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await service.summary(session, ACCOUNT, start=date(2099, 3, 1))
        with pytest.raises(ValidationError):
            await service.cash_flow(session, ACCOUNT, start=date(2099, 3, 1), today=date(2024, 3, 15))
        with pytest.raises(ValidationError):
            await service.client_profitability(session, ACCOUNT, start=date(2099, 3, 1))


def test_overdue_and_expected_income_helpers() -> None:
    today = date(2024, 3, 1)
    sent_late = _invoice("A", InvoiceStatus.SENT, "100", date(2024, 1, 1), date(2024, 2, 1))
    flagged = _invoice("B", InvoiceStatus.OVERDUE, "50", date(2024, 1, 1), date(2024, 2, 15))
    upcoming = _invoice("C", InvoiceStatus.SENT, "70", date(2024, 2, 20), date(2024, 3, 20))
    far = _invoice("D", InvoiceStatus.SENT, "90", date(2024, 2, 20), date(2024, 4, 30))
    paid = _invoice("E", InvoiceStatus.PAID, "500", date(2024, 1, 1), date(2024, 1, 2))

    invoices = [sent_late, flagged, upcoming, far, paid]

    assert is_overdue(sent_late, today) is True
    assert is_overdue(upcoming, today) is False
    assert overdue_amount(invoices, today) == Decimal("150.00")
    assert expected_income(invoices, today) == Decimal("70.00")
