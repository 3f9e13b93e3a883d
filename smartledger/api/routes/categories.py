"""Category endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_category_service, get_session, require_active_subscription
from smartledger.database.models import CategoryType
from smartledger.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from smartledger.schemas.common import DeleteResult
from smartledger.services.category_service import CategoryService
from smartledger.services.team_service import AccountContext

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryRead])
async def list_categories(
    category_type: Optional[CategoryType] = Query(default=None, alias="type"),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryRead]:
    """List income and expense categories, optionally one type only."""

    rows = await service.list_categories(session, account.account_id, category_type)
    return [CategoryRead.model_validate(row) for row in rows]


@router.post(
    "",
    response_model=CategoryRead,
    status_code=201,
    dependencies=[Depends(require_active_subscription)],
)
async def create_category(
    payload: CategoryCreate,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    category = await service.create_category(session, account.account_id, payload)
    return CategoryRead.model_validate(category)


@router.post(
    "/defaults",
    response_model=list[CategoryRead],
    dependencies=[Depends(require_active_subscription)],
)
async def seed_default_categories(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryRead]:
    """Create the starter category set when the account has none."""

    rows = await service.seed_defaults(session, account.account_id)
    return [CategoryRead.model_validate(row) for row in rows]


@router.get("/{category_id}", response_model=CategoryRead)
async def get_category(
    category_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    category = await service.get_category(session, account.account_id, category_id)
    return CategoryRead.model_validate(category)


@router.patch(
    "/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_active_subscription)],
)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> CategoryRead:
    category = await service.update_category(session, account.account_id, category_id, payload)
    return CategoryRead.model_validate(category)


@router.delete(
    "/{category_id}",
    response_model=DeleteResult,
    dependencies=[Depends(require_active_subscription)],
)
async def delete_category(
    category_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
) -> DeleteResult:
    await service.delete_category(session, account.account_id, category_id)
    return DeleteResult(id=category_id)
