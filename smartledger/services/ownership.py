"""Account scoping helpers shared by the record services."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import NotFoundError, ValidationError
from smartledger.database.models import Category, CategoryType

ModelT = TypeVar("ModelT")

ChangeHook = Callable[[str], None]


def no_change_hook(_account_id: str) -> None:
    return None


async def get_owned(session: AsyncSession, model: type[ModelT], record_id: int, account_id: str) -> ModelT:
    """Load a row of the account or raise 404."""

    result = await session.execute(
        select(model).where(model.id == record_id, model.user_id == account_id)  # type: ignore[attr-defined]
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(f"{model.__name__} not found: {record_id}")
    return record


async def check_reference(
    session: AsyncSession,
    model: type,
    record_id: Optional[int],
    account_id: str,
    field: str,
) -> None:
    """Reject a foreign id that does not belong to the account."""

    if record_id is None:
        return
    found = await session.scalar(select(model.id).where(model.id == record_id, model.user_id == account_id))
    if found is None:
        raise ValidationError(f"{field} {record_id} does not exist")


async def check_category(
    session: AsyncSession,
    category_id: Optional[int],
    account_id: str,
    expected: CategoryType,
    field: str = "category_id",
) -> None:
    """Category must belong to the account and be on the expected side of the books."""

    if category_id is None:
        return
    category_type = await session.scalar(
        select(Category.type).where(Category.id == category_id, Category.user_id == account_id)
    )
    if category_type is None:
        raise ValidationError(f"{field} {category_id} does not exist")
    if category_type != expected.value:
        raise ValidationError(f"{field} {category_id} is not an {expected.value} category")
