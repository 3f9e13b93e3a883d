"""Category CRUD service."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ConflictError
from smartledger.database.models import Category, CategoryType
from smartledger.schemas.category import CategoryCreate, CategoryUpdate
from smartledger.services.ownership import ChangeHook, get_owned, no_change_hook

DEFAULT_CATEGORIES: dict[CategoryType, tuple[str, ...]] = {
    CategoryType.INCOME: ("Sales", "Services", "Consulting", "Other Income"),
    CategoryType.EXPENSE: (
        "Office Supplies",
        "Travel",
        "Meals",
        "Rent",
        "Software",
        "Marketing",
        "Bank Fees",
        "Insurance",
    ),
}


class CategoryService:
    """Income and expense categories of an account."""

    def __init__(self, on_change: ChangeHook = no_change_hook) -> None:
        self._on_change = on_change

    async def list_categories(
        self,
        session: AsyncSession,
        account_id: str,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        stmt = select(Category).where(Category.user_id == account_id)
        if category_type is not None:
            stmt = stmt.where(Category.type == category_type.value)
        result = await session.execute(stmt.order_by(Category.type.asc(), Category.name.asc()))
        return list(result.scalars().all())

    async def get_category(self, session: AsyncSession, account_id: str, category_id: int) -> Category:
        return await get_owned(session, Category, category_id, account_id)

    async def _ensure_unique(
        self,
        session: AsyncSession,
        account_id: str,
        name: str,
        category_type: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        stmt = select(Category.id).where(
            Category.user_id == account_id,
            Category.type == category_type,
            func.lower(Category.name) == name.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if await session.scalar(stmt) is not None:
            raise ConflictError(f"{category_type} category '{name}' already exists")

    async def create_category(self, session: AsyncSession, account_id: str, payload: CategoryCreate) -> Category:
        name = payload.name.strip()
        await self._ensure_unique(session, account_id, name, payload.type.value)
        category = Category(user_id=account_id, name=name, type=payload.type.value, color=payload.color)
        session.add(category)
        await session.flush()
        await session.refresh(category)
        await session.commit()
        return category

    async def update_category(
        self,
        session: AsyncSession,
        account_id: str,
        category_id: int,
        payload: CategoryUpdate,
    ) -> Category:
        category = await get_owned(session, Category, category_id, account_id)
        if payload.name is not None:
            name = payload.name.strip()
            await self._ensure_unique(session, account_id, name, category.type, exclude_id=category.id)
            category.name = name
        if payload.color is not None:
            category.color = payload.color
        await session.flush()
        await session.commit()
        # Category names appear in grouped reports.
        self._on_change(account_id)
        return category

    async def delete_category(self, session: AsyncSession, account_id: str, category_id: int) -> None:
        category = await get_owned(session, Category, category_id, account_id)
        await session.delete(category)
        await session.commit()
        self._on_change(account_id)

    async def seed_defaults(self, session: AsyncSession, account_id: str) -> list[Category]:
        """Create the default category set for an account that has none."""

        existing = await self.list_categories(session, account_id)
        if existing:
            return existing

        for category_type, names in DEFAULT_CATEGORIES.items():
            for name in names:
                session.add(Category(user_id=account_id, name=name, type=category_type.value))
        await session.flush()
        await session.commit()
        return await self.list_categories(session, account_id)
