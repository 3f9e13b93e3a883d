"""Project CRUD and per-project money totals."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ConflictError, ValidationError
from smartledger.database.models import Client, Expense, Income, Project, ProjectStatus
from smartledger.reports import calculations as calc
from smartledger.schemas.project import ProjectCreate, ProjectStats, ProjectUpdate
from smartledger.services.ownership import check_reference, get_owned
from smartledger.subscriptions.service import SubscriptionState
from smartledger.utils.money import percentage

logger = structlog.get_logger(__name__)


class ProjectService:
    """Projects of an account; incomes and expenses point at them by ``project_id``."""

    async def list_projects(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        status: Optional[ProjectStatus] = None,
        client_id: Optional[int] = None,
    ) -> list[Project]:
        stmt = select(Project).where(Project.user_id == account_id)
        if status is not None:
            stmt = stmt.where(Project.status == status.value)
        if client_id is not None:
            stmt = stmt.where(Project.client_id == client_id)
        result = await session.execute(stmt.order_by(Project.created_at.desc(), Project.id.desc()))
        return list(result.scalars().all())

    async def get_project(self, session: AsyncSession, account_id: str, project_id: int) -> Project:
        return await get_owned(session, Project, project_id, account_id)

    async def _ensure_unique(
        self,
        session: AsyncSession,
        account_id: str,
        name: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        stmt = select(Project.id).where(Project.user_id == account_id, func.lower(Project.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Project.id != exclude_id)
        if await session.scalar(stmt) is not None:
            raise ConflictError(f"A project named '{name}' already exists")

    async def create_project(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        payload: ProjectCreate,
    ) -> Project:
        state.require_active()
        await self._ensure_unique(session, account_id, payload.name)
        await check_reference(session, Client, payload.client_id, account_id, "client_id")

        values = payload.model_dump()
        values["status"] = payload.status.value
        project = Project(user_id=account_id, **values)
        session.add(project)
        await session.flush()
        await session.refresh(project)
        await session.commit()
        logger.info("project_created", account_id=account_id, project_id=project.id)
        return project

    async def update_project(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        project_id: int,
        payload: ProjectUpdate,
    ) -> Project:
        state.require_active()
        project = await get_owned(session, Project, project_id, account_id)
        values = payload.model_dump(exclude_unset=True)
        for required in ("name", "status", "color"):
            if required in values and values[required] is None:
                del values[required]

        if "name" in values:
            values["name"] = values["name"].strip()
            await self._ensure_unique(session, account_id, values["name"], exclude_id=project.id)
        if "client_id" in values:
            await check_reference(session, Client, values["client_id"], account_id, "client_id")
        if "status" in values:
            values["status"] = values["status"].value

        start = values.get("start_date", project.start_date)
        end = values.get("end_date", project.end_date)
        if start and end and end < start:
            raise ValidationError("end_date must not be before start_date")

        for field, value in values.items():
            setattr(project, field, value)
        await session.flush()
        await session.commit()
        return project

    async def delete_project(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        project_id: int,
    ) -> None:
        """Delete the project; its incomes and expenses stay, unlinked."""

        state.require_active()
        project = await get_owned(session, Project, project_id, account_id)
        await session.delete(project)
        await session.commit()

    async def stats(self, session: AsyncSession, project: Project) -> ProjectStats:
        incomes = (
            await session.execute(
                select(Income).where(Income.user_id == project.user_id, Income.project_id == project.id)
            )
        ).scalars().all()
        expenses = (
            await session.execute(
                select(Expense).where(Expense.user_id == project.user_id, Expense.project_id == project.id)
            )
        ).scalars().all()

        total_income = calc.total_in_base(incomes)
        total_expenses = calc.total_in_base(expenses)
        profit = total_income - total_expenses
        budget_used = percentage(total_expenses, project.budget_amount) if project.budget_amount else None
        return ProjectStats(
            total_income=total_income,
            total_expenses=total_expenses,
            profit=profit,
            profit_margin=percentage(profit, total_income),
            budget_used=budget_used,
            income_count=len(incomes),
            expense_count=len(expenses),
        )
