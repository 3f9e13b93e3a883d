"""Vendor CRUD service."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.database.models import Vendor
from smartledger.schemas.vendor import VendorCreate, VendorUpdate
from smartledger.services.ownership import ChangeHook, get_owned, no_change_hook


class VendorService:
    """Suppliers that expenses can be linked to."""

    def __init__(self, on_change: ChangeHook = no_change_hook) -> None:
        self._on_change = on_change

    async def list_vendors(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Vendor]:
        stmt = select(Vendor).where(Vendor.user_id == account_id)
        if search:
            stmt = stmt.where(func.lower(Vendor.name).contains(search.strip().lower()))
        result = await session.execute(stmt.order_by(Vendor.name.asc(), Vendor.id.asc()).offset(offset).limit(limit))
        return list(result.scalars().all())

    async def get_vendor(self, session: AsyncSession, account_id: str, vendor_id: int) -> Vendor:
        return await get_owned(session, Vendor, vendor_id, account_id)

    async def create_vendor(self, session: AsyncSession, account_id: str, payload: VendorCreate) -> Vendor:
        vendor = Vendor(user_id=account_id, **payload.model_dump())
        vendor.name = vendor.name.strip()
        session.add(vendor)
        await session.flush()
        await session.refresh(vendor)
        await session.commit()
        return vendor

    async def update_vendor(
        self,
        session: AsyncSession,
        account_id: str,
        vendor_id: int,
        payload: VendorUpdate,
    ) -> Vendor:
        vendor = await get_owned(session, Vendor, vendor_id, account_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(vendor, field, value)
        await session.flush()
        await session.commit()
        self._on_change(account_id)
        return vendor

    async def delete_vendor(self, session: AsyncSession, account_id: str, vendor_id: int) -> None:
        vendor = await get_owned(session, Vendor, vendor_id, account_id)
        await session.delete(vendor)
        await session.commit()
        self._on_change(account_id)
