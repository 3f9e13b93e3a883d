from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import ConflictError, NotFoundError
from smartledger.config import get_settings
from smartledger.database.models import CategoryType, Expense
from smartledger.schemas.category import CategoryCreate, CategoryUpdate
from smartledger.schemas.vendor import VendorCreate, VendorUpdate
from smartledger.services.category_service import DEFAULT_CATEGORIES, CategoryService
from smartledger.services.vendor_service import VendorService

ACCOUNT = "owner-1"


@pytest.mark.asyncio
async def test_category_names_unique_per_type(session_factory: async_sessionmaker[AsyncSession]) -> None:
    service = CategoryService()

    async with session_factory() as session:
        rent = await service.create_category(session, ACCOUNT, CategoryCreate(name=" Rent ", type=CategoryType.EXPENSE))
        with pytest.raises(ConflictError):
            await service.create_category(session, ACCOUNT, CategoryCreate(name="rent", type=CategoryType.EXPENSE))
        same_name_income = await service.create_category(
            session, ACCOUNT, CategoryCreate(name="Rent", type=CategoryType.INCOME)
        )
        other_account = await service.create_category(session, "other", CategoryCreate(name="Rent", type=CategoryType.EXPENSE))

        travel = await service.create_category(session, ACCOUNT, CategoryCreate(name="Travel", type=CategoryType.EXPENSE))
        with pytest.raises(ConflictError):
            await service.update_category(session, ACCOUNT, travel.id, CategoryUpdate(name="RENT"))
        recolored = await service.update_category(session, ACCOUNT, rent.id, CategoryUpdate(color="#FF0000"))

        expenses_only = await service.list_categories(session, ACCOUNT, CategoryType.EXPENSE)

    assert rent.name == "Rent"
    assert same_name_income.type == "income"
    assert other_account.user_id == "other"
    assert recolored.color == "#FF0000"
    assert recolored.name == "Rent"
    assert [c.name for c in expenses_only] == ["Rent", "Travel"]


@pytest.mark.asyncio
async def test_seed_defaults_once(session_factory: async_sessionmaker[AsyncSession]) -> None:
    service = CategoryService()
    expected = sum(len(names) for names in DEFAULT_CATEGORIES.values())

    async with session_factory() as session:
        first = await service.seed_defaults(session, ACCOUNT)
        second = await service.seed_defaults(session, ACCOUNT)

    assert len(first) == expected
    assert [c.id for c in second] == [c.id for c in first]
    assert "Meals" in {c.name for c in first if c.type == "expense"}


@pytest.mark.asyncio
async def test_deleting_category_unlinks_expenses(session_factory: async_sessionmaker[AsyncSession]) -> None:
    changes: list[str] = []
    service = CategoryService(on_change=changes.append)

    async with session_factory() as session:
        rent = await service.create_category(session, ACCOUNT, CategoryCreate(name="Rent", type=CategoryType.EXPENSE))
        expense = Expense(
            user_id=ACCOUNT,
            amount=Decimal("100"),
            currency="USD",
            base_amount=Decimal("100"),
            description="March rent",
            date=date(2024, 3, 1),
            category_id=rent.id,
        )
        session.add(expense)
        await session.commit()
        expense_id = expense.id

        await service.delete_category(session, ACCOUNT, rent.id)
        with pytest.raises(NotFoundError):
            await service.get_category(session, ACCOUNT, rent.id)

    async with session_factory() as session:
        reloaded = await session.get(Expense, expense_id)

    assert reloaded is not None
    assert reloaded.category_id is None
    assert changes == [ACCOUNT]


@pytest.mark.asyncio
async def test_vendor_crud(session_factory: async_sessionmaker[AsyncSession]) -> None:
    changes: list[str] = []
    service = VendorService(on_change=changes.append)

    async with session_factory() as session:
        acme = await service.create_vendor(session, ACCOUNT, VendorCreate(name=" Acme Supplies ", tax_id="12-345"))
        await service.create_vendor(session, ACCOUNT, VendorCreate(name="Bolt Hosting"))
        await service.create_vendor(session, "other", VendorCreate(name="Acme Elsewhere"))

        found = await service.list_vendors(session, ACCOUNT, search="ACME")
        updated = await service.update_vendor(session, ACCOUNT, acme.id, VendorUpdate(name=None, email="ap@acme.test"))
        with pytest.raises(NotFoundError):
            await service.get_vendor(session, "other", acme.id)
        await service.delete_vendor(session, ACCOUNT, acme.id)
        remaining = await service.list_vendors(session, ACCOUNT)

    assert [v.name for v in found] == ["Acme Supplies"]
    assert updated.name == "Acme Supplies"
    assert updated.email == "ap@acme.test"
    assert [v.name for v in remaining] == ["Bolt Hosting"]
    assert changes == [ACCOUNT, ACCOUNT]


@pytest.mark.asyncio
async def test_lapsed_trial_blocks_writes_not_reads(
    api_client, owner_headers: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TRIAL_DAYS", "0")
    get_settings.cache_clear()

    create = await api_client.post("/api/v1/vendors", headers=owner_headers, json={"name": "Acme"})
    seed = await api_client.post("/api/v1/categories/defaults", headers=owner_headers)
    listing = await api_client.get("/api/v1/vendors", headers=owner_headers)

    assert create.status_code == 403
    assert seed.status_code == 403
    assert listing.status_code == 200
    assert listing.json() == []
