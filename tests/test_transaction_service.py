from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import Category, PlanType, SubscriptionStatus, Vendor
from smartledger.schemas.transaction import ExpenseCreate, IncomeCreate, IncomeUpdate
from smartledger.services.transaction_service import ExpenseService, IncomeService

ACCOUNT = "owner-1"


def _income(**overrides) -> IncomeCreate:
    data = {"amount": Decimal("100.005"), "tax_rate": Decimal("10"), "description": "Consulting", "date": date(2024, 1, 5)}
    data.update(overrides)
    return IncomeCreate(**data)


@pytest.mark.asyncio
async def test_create_income_in_base_currency(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    changes: list[str] = []
    service = IncomeService("usd", on_change=changes.append)

    async with session_factory() as session:
        income = await service.create_income(session, ACCOUNT, make_state(), _income())

    assert income.currency == "USD"
    assert income.amount == Decimal("100.01")
    assert income.exchange_rate == Decimal("1")
    assert income.base_amount == Decimal("100.01")
    assert income.tax_amount == Decimal("10.00")
    assert changes == [ACCOUNT]


@pytest.mark.asyncio
async def test_foreign_currency_rules(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = IncomeService("USD")

    async with session_factory() as session:
        with pytest.raises(PlanLimitError):
            await service.create_income(
                session, ACCOUNT, make_state(PlanType.SIMPLE_START), _income(currency="EUR", exchange_rate=Decimal("1.2"))
            )
        with pytest.raises(ValidationError):
            await service.create_income(session, ACCOUNT, make_state(PlanType.ESSENTIALS), _income(currency="EUR"))

        income = await service.create_income(
            session,
            ACCOUNT,
            make_state(PlanType.ESSENTIALS),
            _income(amount=Decimal("100"), currency="EUR", exchange_rate=Decimal("1.2")),
        )
        assert income.base_amount == Decimal("120.00")

        updated = await service.update_income(
            session, ACCOUNT, make_state(PlanType.ESSENTIALS), income.id, IncomeUpdate(amount=Decimal("200"))
        )
        assert updated.base_amount == Decimal("240.00")

        back_to_base = await service.update_income(
            session, ACCOUNT, make_state(PlanType.SIMPLE_START), income.id, IncomeUpdate(currency="USD")
        )

    assert back_to_base.currency == "USD"
    assert back_to_base.exchange_rate == Decimal("1")
    assert back_to_base.base_amount == Decimal("200.00")


@pytest.mark.asyncio
async def test_links_are_validated(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    incomes = IncomeService("USD")
    expenses = ExpenseService("USD")
    state = make_state()

    async with session_factory() as session:
        rent = Category(user_id=ACCOUNT, name="Rent", type="expense")
        foreign_vendor = Vendor(user_id="other", name="Landlord")
        session.add_all([rent, foreign_vendor])
        await session.commit()

        with pytest.raises(ValidationError):
            await incomes.create_income(session, ACCOUNT, state, _income(category_id=rent.id))
        with pytest.raises(ValidationError):
            await incomes.create_income(session, ACCOUNT, state, _income(client_id=999))
        with pytest.raises(ValidationError):
            await expenses.create_expense(
                session,
                ACCOUNT,
                state,
                ExpenseCreate(amount=Decimal("50"), description="May rent", date=date(2024, 5, 1), vendor_id=foreign_vendor.id),
            )

        expense = await expenses.create_expense(
            session,
            ACCOUNT,
            state,
            ExpenseCreate(amount=Decimal("50"), description="May rent", date=date(2024, 5, 1), category_id=rent.id),
        )

    assert expense.category_id == rent.id


@pytest.mark.asyncio
async def test_list_filters_and_delete(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = IncomeService("USD")
    state = make_state()

    async with session_factory() as session:
        for day in (date(2024, 1, 5), date(2024, 2, 5), date(2024, 3, 5)):
            await service.create_income(session, ACCOUNT, state, _income(date=day))
        total, rows = await service.list_entries(session, ACCOUNT, date_from=date(2024, 2, 1), limit=1)
        await service.delete_entry(session, ACCOUNT, state, rows[0].id)
        remaining, _ = await service.list_entries(session, ACCOUNT)
        with pytest.raises(NotFoundError):
            await service.get_entry(session, "other", rows[0].id)

    assert total == 2
    assert rows[0].date == date(2024, 3, 5)
    assert remaining == 2


@pytest.mark.asyncio
async def test_expired_trial_blocks_writes(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    expired = make_state(
        PlanType.SIMPLE_START,
        status=SubscriptionStatus.TRIALING,
        trial_end=datetime.now(timezone.utc) - timedelta(days=1),
    )

    async with session_factory() as session:
        with pytest.raises(PlanLimitError):
            await IncomeService("USD").create_income(session, ACCOUNT, expired, _income())
