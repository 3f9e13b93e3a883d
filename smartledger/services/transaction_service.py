"""Income and expense bookkeeping."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Generic, Optional, TypeVar, Union

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ValidationError
from smartledger.database.models import CategoryType, Client, Expense, Income, Project, Vendor
from smartledger.schemas.transaction import (
    ExpenseCreate,
    ExpenseUpdate,
    IncomeCreate,
    IncomeUpdate,
)
from smartledger.services.ownership import ChangeHook, check_category, check_reference, get_owned, no_change_hook
from smartledger.subscriptions.service import SubscriptionState
from smartledger.utils.money import base_amount, round_money, tax_amount

logger = structlog.get_logger(__name__)

EntryT = TypeVar("EntryT", Income, Expense)


def apply_amounts(entry: Union[Income, Expense], base_currency: str) -> None:
    """Recompute the derived money columns from amount, rate and tax rate."""

    if entry.currency == base_currency or entry.exchange_rate is None:
        entry.exchange_rate = Decimal("1")
    entry.amount = round_money(entry.amount)
    entry.base_amount = base_amount(entry.amount, entry.exchange_rate)
    entry.tax_amount = tax_amount(entry.amount, entry.tax_rate)


class _EntryService(Generic[EntryT]):
    model: type[EntryT]
    category_type: CategoryType

    def __init__(self, base_currency: str, on_change: ChangeHook = no_change_hook) -> None:
        self.base_currency = base_currency.upper()
        self._on_change = on_change

    def _check_currency(self, state: SubscriptionState, currency: str, exchange_rate) -> None:
        if currency == self.base_currency:
            return
        state.require_feature("multi_currency")
        if exchange_rate is None:
            raise ValidationError(f"exchange_rate is required for {currency} amounts")

    async def _check_links(self, session: AsyncSession, account_id: str, values: dict) -> None:
        if "category_id" in values:
            await check_category(session, values["category_id"], account_id, self.category_type)
        if "project_id" in values:
            await check_reference(session, Project, values["project_id"], account_id, "project_id")

    async def list_entries(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        offset: int = 0,
        limit: int = 50,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> tuple[int, list[EntryT]]:
        """Return filtered paginated entries, newest first, and the total."""

        model = self.model
        filters = [model.user_id == account_id]
        if date_from is not None:
            filters.append(model.date >= date_from)
        if date_to is not None:
            filters.append(model.date <= date_to)
        if category_id is not None:
            filters.append(model.category_id == category_id)
        if project_id is not None:
            filters.append(model.project_id == project_id)

        total = await session.scalar(select(func.count(model.id)).where(*filters))
        result = await session.execute(
            select(model).where(*filters).order_by(model.date.desc(), model.id.desc()).offset(offset).limit(limit)
        )
        return int(total or 0), list(result.scalars().all())

    async def get_entry(self, session: AsyncSession, account_id: str, entry_id: int) -> EntryT:
        return await get_owned(session, self.model, entry_id, account_id)

    async def _create(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        payload: Union[IncomeCreate, ExpenseCreate],
    ) -> EntryT:
        state.require_active()
        values = payload.model_dump()
        values["currency"] = values.get("currency") or self.base_currency
        self._check_currency(state, values["currency"], values.get("exchange_rate"))
        await self._check_links(session, account_id, values)

        entry = self.model(user_id=account_id, **values)
        apply_amounts(entry, self.base_currency)
        session.add(entry)
        await session.flush()
        await session.refresh(entry)
        await session.commit()
        self._on_change(account_id)
        logger.info(
            "entry_created",
            kind=self.model.__tablename__,
            account_id=account_id,
            entry_id=entry.id,
            currency=entry.currency,
        )
        return entry

    async def _update(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        entry_id: int,
        payload: Union[IncomeUpdate, ExpenseUpdate],
    ) -> EntryT:
        state.require_active()
        entry = await get_owned(session, self.model, entry_id, account_id)
        values = payload.model_dump(exclude_unset=True)
        for required in ("amount", "description", "date", "tax_rate"):
            if required in values and values[required] is None:
                del values[required]
        if "currency" in values and values["currency"] is None:
            values["currency"] = self.base_currency

        currency = values.get("currency", entry.currency)
        exchange_rate = values.get("exchange_rate", entry.exchange_rate if currency == entry.currency else None)
        self._check_currency(state, currency, exchange_rate)
        await self._check_links(session, account_id, values)

        for field, value in values.items():
            setattr(entry, field, value)
        entry.exchange_rate = exchange_rate
        apply_amounts(entry, self.base_currency)
        await session.flush()
        await session.commit()
        self._on_change(account_id)
        return entry

    async def delete_entry(self, session: AsyncSession, account_id: str, state: SubscriptionState, entry_id: int) -> None:
        state.require_active()
        entry = await get_owned(session, self.model, entry_id, account_id)
        await session.delete(entry)
        await session.commit()
        self._on_change(account_id)


class IncomeService(_EntryService[Income]):
    """Money received, optionally linked to a client."""

    model = Income
    category_type = CategoryType.INCOME

    async def _check_links(self, session: AsyncSession, account_id: str, values: dict) -> None:
        await super()._check_links(session, account_id, values)
        if "client_id" in values:
            await check_reference(session, Client, values["client_id"], account_id, "client_id")

    async def create_income(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, payload: IncomeCreate
    ) -> Income:
        return await self._create(session, account_id, state, payload)

    async def update_income(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, entry_id: int, payload: IncomeUpdate
    ) -> Income:
        return await self._update(session, account_id, state, entry_id, payload)


class ExpenseService(_EntryService[Expense]):
    """Money spent, optionally linked to a vendor."""

    model = Expense
    category_type = CategoryType.EXPENSE

    async def _check_links(self, session: AsyncSession, account_id: str, values: dict) -> None:
        await super()._check_links(session, account_id, values)
        if "vendor_id" in values:
            await check_reference(session, Vendor, values["vendor_id"], account_id, "vendor_id")

    async def create_expense(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, payload: ExpenseCreate
    ) -> Expense:
        return await self._create(session, account_id, state, payload)

    async def update_expense(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, entry_id: int, payload: ExpenseUpdate
    ) -> Expense:
        return await self._update(session, account_id, state, entry_id, payload)
