from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import ConflictError, NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import Client, Income, ProjectStatus, SubscriptionStatus
from smartledger.schemas.project import ProjectCreate, ProjectUpdate
from smartledger.schemas.transaction import ExpenseCreate, IncomeCreate, IncomeUpdate
from smartledger.services.project_service import ProjectService
from smartledger.services.transaction_service import ExpenseService, IncomeService

ACCOUNT = "owner-1"


def _entry(amount: str, **overrides) -> dict:
    data = {"amount": Decimal(amount), "description": "Work", "date": date(2024, 1, 5)}
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_project_crud_and_unique_names(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = ProjectService()

    async with session_factory() as session:
        client = Client(user_id=ACCOUNT, name="Acme")
        session.add(client)
        await session.commit()

        created = await service.create_project(
            session, ACCOUNT, make_state(), ProjectCreate(name="  Website  ", client_id=client.id)
        )
        with pytest.raises(ConflictError):
            await service.create_project(session, ACCOUNT, make_state(), ProjectCreate(name="website"))
        other = await service.create_project(
            session, "owner-2", make_state(account_id="owner-2"), ProjectCreate(name="Website")
        )

        updated = await service.update_project(
            session, ACCOUNT, make_state(), created.id, ProjectUpdate(status=ProjectStatus.ON_HOLD, name=None)
        )
        active = await service.list_projects(session, ACCOUNT, status=ProjectStatus.ACTIVE)
        on_hold = await service.list_projects(session, ACCOUNT, status=ProjectStatus.ON_HOLD)

        with pytest.raises(NotFoundError):
            await service.get_project(session, ACCOUNT, other.id)
        await service.delete_project(session, ACCOUNT, make_state(), created.id)
        with pytest.raises(NotFoundError):
            await service.get_project(session, ACCOUNT, created.id)

    assert created.name == "Website"
    assert created.color == "#6366F1"
    assert updated.name == "Website"
    assert updated.status == ProjectStatus.ON_HOLD.value
    assert active == []
    assert [row.id for row in on_hold] == [created.id]


@pytest.mark.asyncio
async def test_project_references_are_checked(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    service = ProjectService()

    async with session_factory() as session:
        foreign_client = Client(user_id="owner-2", name="Theirs")
        session.add(foreign_client)
        await session.commit()

        with pytest.raises(ValidationError):
            await service.create_project(
                session, ACCOUNT, make_state(), ProjectCreate(name="P", client_id=foreign_client.id)
            )
        project = await service.create_project(
            session, ACCOUNT, make_state(), ProjectCreate(name="P", start_date=date(2024, 3, 1))
        )
        with pytest.raises(ValidationError):
            await service.update_project(
                session, ACCOUNT, make_state(), project.id, ProjectUpdate(end_date=date(2024, 2, 1))
            )
        with pytest.raises(PlanLimitError):
            await service.create_project(
                session, ACCOUNT, make_state(status=SubscriptionStatus.CANCELED), ProjectCreate(name="Q")
            )

    with pytest.raises(PydanticValidationError):
        ProjectCreate(name="R", start_date=date(2024, 3, 1), end_date=date(2024, 2, 1))
    with pytest.raises(PydanticValidationError):
        ProjectCreate(name="R", color="red")


@pytest.mark.asyncio
async def test_entries_link_only_to_owned_projects(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    projects = ProjectService()
    incomes = IncomeService("USD")

    async with session_factory() as session:
        mine = await projects.create_project(session, ACCOUNT, make_state(), ProjectCreate(name="Mine"))
        theirs = await projects.create_project(
            session, "owner-2", make_state(account_id="owner-2"), ProjectCreate(name="Theirs")
        )

        with pytest.raises(ValidationError):
            await incomes.create_income(session, ACCOUNT, make_state(), IncomeCreate(**_entry("10", project_id=theirs.id)))
        linked = await incomes.create_income(session, ACCOUNT, make_state(), IncomeCreate(**_entry("10", project_id=mine.id)))
        await incomes.create_income(session, ACCOUNT, make_state(), IncomeCreate(**_entry("20")))
        with pytest.raises(ValidationError):
            await incomes.update_income(session, ACCOUNT, make_state(), linked.id, IncomeUpdate(project_id=theirs.id))

        total, rows = await incomes.list_entries(session, ACCOUNT, project_id=mine.id)

    assert linked.project_id == mine.id
    assert total == 1
    assert [row.id for row in rows] == [linked.id]


@pytest.mark.asyncio
async def test_project_stats_and_unlink_on_delete(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    projects = ProjectService()
    incomes = IncomeService("USD")
    expenses = ExpenseService("USD")

    async with session_factory() as session:
        project = await projects.create_project(
            session, ACCOUNT, make_state(), ProjectCreate(name="Build", budget_amount=Decimal("200"))
        )
        empty = await projects.create_project(session, ACCOUNT, make_state(), ProjectCreate(name="Empty"))
        income = await incomes.create_income(
            session, ACCOUNT, make_state(), IncomeCreate(**_entry("400", project_id=project.id))
        )
        await expenses.create_expense(session, ACCOUNT, make_state(), ExpenseCreate(**_entry("100", project_id=project.id)))
        await expenses.create_expense(session, ACCOUNT, make_state(), ExpenseCreate(**_entry("50")))

        stats = await projects.stats(session, project)
        empty_stats = await projects.stats(session, empty)

        await projects.delete_project(session, ACCOUNT, make_state(), project.id)
        session.expire_all()
        remaining = (await session.execute(select(Income).where(Income.id == income.id))).scalar_one()

    assert stats.total_income == Decimal("400.00")
    assert stats.total_expenses == Decimal("100.00")
    assert stats.profit == Decimal("300.00")
    assert stats.profit_margin == Decimal("75.00")
    assert stats.budget_used == Decimal("50.00")
    assert (stats.income_count, stats.expense_count) == (1, 1)
    assert empty_stats.budget_used is None
    assert empty_stats.profit_margin == Decimal("0")
    assert remaining.project_id is None
