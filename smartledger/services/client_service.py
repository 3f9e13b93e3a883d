"""Client CRUD/use-case service."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import PlanLimitError
from smartledger.database.models import Client
from smartledger.schemas.client import ClientCreate, ClientUpdate
from smartledger.services.ownership import ChangeHook, get_owned, no_change_hook
from smartledger.subscriptions.service import SubscriptionState

logger = structlog.get_logger(__name__)


class ClientService:
    """Service for creating and maintaining an account's clients."""

    def __init__(self, on_change: ChangeHook = no_change_hook) -> None:
        self._on_change = on_change

    async def list_clients(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Client]:
        """Return clients alphabetically, optionally filtered by name."""

        stmt = select(Client).where(Client.user_id == account_id)
        if search:
            stmt = stmt.where(func.lower(Client.name).contains(search.strip().lower()))
        result = await session.execute(stmt.order_by(Client.name.asc(), Client.id.asc()).offset(offset).limit(limit))
        return list(result.scalars().all())

    async def get_client(self, session: AsyncSession, account_id: str, client_id: int) -> Client:
        return await get_owned(session, Client, client_id, account_id)

    async def create_client(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        payload: ClientCreate,
    ) -> Client:
        """Create and persist a new client if the plan has room."""

        state.require_active()
        if not state.can_add_clients():
            logger.info("client_limit_reached", account_id=account_id, clients=state.usage.total_clients)
            raise PlanLimitError(
                f"Your plan allows {state.limits.total_clients} clients. Upgrade to add more clients."
            )

        client = Client(user_id=account_id, **payload.model_dump())
        session.add(client)
        await session.flush()
        await session.refresh(client)
        await session.commit()
        self._on_change(account_id)
        return client

    async def update_client(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        client_id: int,
        payload: ClientUpdate,
    ) -> Client:
        state.require_active()
        client = await get_owned(session, Client, client_id, account_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(client, field, value.strip() if field == "name" else value)
        await session.flush()
        await session.commit()
        self._on_change(account_id)
        return client

    async def delete_client(self, session: AsyncSession, account_id: str, state: SubscriptionState, client_id: int) -> None:
        """Delete a client; its incomes and invoices keep their amounts but lose the link."""

        state.require_active()
        client = await get_owned(session, Client, client_id, account_id)
        await session.delete(client)
        await session.commit()
        self._on_change(account_id)
