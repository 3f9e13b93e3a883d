"""Vendor endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_session, get_vendor_service, require_active_subscription
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.vendor import VendorCreate, VendorRead, VendorUpdate
from smartledger.services.team_service import AccountContext
from smartledger.services.vendor_service import VendorService

router = APIRouter(prefix="/vendors", tags=["vendors"])


@router.get("", response_model=list[VendorRead])
async def list_vendors(
    search: Optional[str] = Query(default=None, max_length=128),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: VendorService = Depends(get_vendor_service),
) -> list[VendorRead]:
    rows = await service.list_vendors(session, account.account_id, search=search, offset=offset, limit=limit)
    return [VendorRead.model_validate(row) for row in rows]


@router.post(
    "",
    response_model=VendorRead,
    status_code=201,
    dependencies=[Depends(require_active_subscription)],
)
async def create_vendor(
    payload: VendorCreate,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: VendorService = Depends(get_vendor_service),
) -> VendorRead:
    vendor = await service.create_vendor(session, account.account_id, payload)
    return VendorRead.model_validate(vendor)


@router.get("/{vendor_id}", response_model=VendorRead)
async def get_vendor(
    vendor_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: VendorService = Depends(get_vendor_service),
) -> VendorRead:
    vendor = await service.get_vendor(session, account.account_id, vendor_id)
    return VendorRead.model_validate(vendor)


@router.patch(
    "/{vendor_id}",
    response_model=VendorRead,
    dependencies=[Depends(require_active_subscription)],
)
async def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: VendorService = Depends(get_vendor_service),
) -> VendorRead:
    vendor = await service.update_vendor(session, account.account_id, vendor_id, payload)
    return VendorRead.model_validate(vendor)


@router.delete(
    "/{vendor_id}",
    response_model=DeleteResult,
    dependencies=[Depends(require_active_subscription)],
)
async def delete_vendor(
    vendor_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: VendorService = Depends(get_vendor_service),
) -> DeleteResult:
    await service.delete_vendor(session, account.account_id, vendor_id)
    return DeleteResult(id=vendor_id)
