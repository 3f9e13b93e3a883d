"""Project endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_project_service, get_session, require_active_subscription
from smartledger.database.models import ProjectStatus
from smartledger.schemas.common import DeleteResult
from smartledger.schemas.project import ProjectCreate, ProjectDetail, ProjectRead, ProjectUpdate
from smartledger.services.project_service import ProjectService
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    status: Optional[ProjectStatus] = Query(default=None),
    client_id: Optional[int] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectRead]:
    rows = await service.list_projects(session, account.account_id, status=status, client_id=client_id)
    return [ProjectRead.model_validate(row) for row in rows]


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    payload: ProjectCreate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(require_active_subscription),
    session: AsyncSession = Depends(get_session),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = await service.create_project(session, account.account_id, state, payload)
    return ProjectRead.model_validate(project)


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: int,
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ProjectService = Depends(get_project_service),
) -> ProjectDetail:
    """Project with its income, expense and budget totals."""

    project = await service.get_project(session, account.account_id, project_id)
    stats = await service.stats(session, project)
    return ProjectDetail(**ProjectRead.model_validate(project).model_dump(), stats=stats)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(require_active_subscription),
    session: AsyncSession = Depends(get_session),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = await service.update_project(session, account.account_id, state, project_id, payload)
    return ProjectRead.model_validate(project)


@router.delete("/{project_id}", response_model=DeleteResult)
async def delete_project(
    project_id: int,
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(require_active_subscription),
    session: AsyncSession = Depends(get_session),
    service: ProjectService = Depends(get_project_service),
) -> DeleteResult:
    await service.delete_project(session, account.account_id, state, project_id)
    return DeleteResult(id=project_id)
