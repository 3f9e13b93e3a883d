"""Client endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_client_service, get_session, get_subscription_state
from smartledger.schemas.client import ClientCreate, ClientRead, ClientUpdate
from smartledger.schemas.common import DeleteResult
from smartledger.services.client_service import ClientService
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientRead])
async def list_clients(
    search: Optional[str] = Query(default=None, max_length=128),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ClientService = Depends(get_client_service),
) -> list[ClientRead]:
    """List the account's clients alphabetically."""

    rows = await service.list_clients(session, account.account_id, search=search, offset=offset, limit=limit)
    return [ClientRead.model_validate(row) for row in rows]


@router.post("", response_model=ClientRead, status_code=201)
async def create_client(
    payload: ClientCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """Create a new client profile."""

    client = await service.create_client(session, account.account_id, state, payload)
    return ClientRead.model_validate(client)


@router.get("/{client_id}", response_model=ClientRead)
async def get_client(
    client_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.get_client(session, account.account_id, client_id)
    return ClientRead.model_validate(client)


@router.patch("/{client_id}", response_model=ClientRead)
async def update_client(
    client_id: int,
    payload: ClientUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update_client(session, account.account_id, state, client_id, payload)
    return ClientRead.model_validate(client)


@router.delete("/{client_id}", response_model=DeleteResult)
async def delete_client(
    client_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ClientService = Depends(get_client_service),
) -> DeleteResult:
    await service.delete_client(session, account.account_id, state, client_id)
    return DeleteResult(id=client_id)
