"""Account-scoped reads shared by reports, exports and insights."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smartledger.database.models import Client, Expense, Income, Invoice


async def load_incomes(
    session: AsyncSession,
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    client_id: Optional[int] = None,
) -> list[Income]:
    """Incomes in [start, end] with category and client loaded, oldest first."""

    stmt = (
        select(Income)
        .options(selectinload(Income.category), selectinload(Income.client))
        .where(Income.user_id == account_id)
    )
    if start is not None:
        stmt = stmt.where(Income.date >= start)
    if end is not None:
        stmt = stmt.where(Income.date <= end)
    if client_id is not None:
        stmt = stmt.where(Income.client_id == client_id)
    result = await session.execute(stmt.order_by(Income.date.asc(), Income.id.asc()))
    return list(result.scalars().all())


async def load_expenses(
    session: AsyncSession,
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Expense]:
    """Expenses in [start, end] with category and vendor loaded, oldest first."""

    stmt = (
        select(Expense)
        .options(selectinload(Expense.category), selectinload(Expense.vendor_detail))
        .where(Expense.user_id == account_id)
    )
    if start is not None:
        stmt = stmt.where(Expense.date >= start)
    if end is not None:
        stmt = stmt.where(Expense.date <= end)
    result = await session.execute(stmt.order_by(Expense.date.asc(), Expense.id.asc()))
    return list(result.scalars().all())


async def load_invoices(
    session: AsyncSession,
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    client_id: Optional[int] = None,
) -> list[Invoice]:
    stmt = select(Invoice).options(selectinload(Invoice.client)).where(Invoice.user_id == account_id)
    if start is not None:
        stmt = stmt.where(Invoice.date >= start)
    if end is not None:
        stmt = stmt.where(Invoice.date <= end)
    if client_id is not None:
        stmt = stmt.where(Invoice.client_id == client_id)
    result = await session.execute(stmt.order_by(Invoice.date.asc(), Invoice.id.asc()))
    return list(result.scalars().all())


async def load_clients(session: AsyncSession, account_id: str) -> list[Client]:
    result = await session.execute(select(Client).where(Client.user_id == account_id).order_by(Client.name.asc()))
    return list(result.scalars().all())
