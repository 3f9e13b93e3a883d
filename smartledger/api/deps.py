"""Dependency helpers for API layer."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.ai.client import build_ai_client
from smartledger.config import Settings, get_settings
from smartledger.database.session import get_db_session
from smartledger.exports.service import ExportService
from smartledger.insights.service import InsightsService
from smartledger.reports.cache import ReportCache
from smartledger.reports.service import ReportService
from smartledger.security.auth import require_api_auth
from smartledger.services.category_service import CategoryService
from smartledger.services.client_service import ClientService
from smartledger.services.invoice_service import InvoiceService
from smartledger.services.project_service import ProjectService
from smartledger.services.recurring_service import RecurringInvoiceService
from smartledger.services.team_service import AccountContext, TeamService
from smartledger.services.transaction_service import ExpenseService, IncomeService
from smartledger.services.vendor_service import VendorService
from smartledger.subscriptions.service import SubscriptionService, SubscriptionState


async def get_session(session: AsyncSession = Depends(get_db_session)) -> AsyncSession:
    """Pass through DB session dependency for explicit typing."""

    return session


@lru_cache(maxsize=1)
def get_report_cache() -> ReportCache:
    """Process-wide report cache."""

    return ReportCache(ttl_seconds=get_settings().report_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_insights_service() -> InsightsService:
    """Process-wide insights service; it owns the per-account insight cache."""

    settings = get_settings()
    return InsightsService(
        base_currency=settings.base_currency,
        ai_client=build_ai_client(settings),
        cache_ttl_seconds=settings.insights_cache_ttl_seconds,
    )


def invalidate_account(account_id: str) -> None:
    """Drop cached reports and insights after the account's books change."""

    get_report_cache().invalidate(account_id)
    get_insights_service().invalidate(account_id)


def get_team_service() -> TeamService:
    return TeamService()


def get_subscription_service(settings: Settings = Depends(get_settings)) -> SubscriptionService:
    return SubscriptionService(trial_days=settings.trial_days)


async def get_account(
    user_id: str = Depends(require_api_auth),
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service),
) -> AccountContext:
    """Resolve the account the authenticated user acts on."""

    return await service.resolve_account(session, user_id)


async def get_subscription_state(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionState:
    """Subscription and usage of the calling account."""

    return await service.load_state(session, account.account_id)


async def require_active_subscription(
    state: SubscriptionState = Depends(get_subscription_state),
) -> SubscriptionState:
    """Reject writes once a trial has lapsed without a paid plan."""

    state.require_active()
    return state


def require_feature(feature: str):
    """Build a dependency that rejects plans without ``feature``."""

    async def dependency(state: SubscriptionState = Depends(get_subscription_state)) -> SubscriptionState:
        state.require_feature(feature)
        return state

    return dependency


def get_client_service() -> ClientService:
    return ClientService(on_change=invalidate_account)


def get_category_service() -> CategoryService:
    return CategoryService(on_change=invalidate_account)


def get_vendor_service() -> VendorService:
    return VendorService(on_change=invalidate_account)


def get_project_service() -> ProjectService:
    return ProjectService()


def get_income_service(settings: Settings = Depends(get_settings)) -> IncomeService:
    return IncomeService(base_currency=settings.base_currency, on_change=invalidate_account)


def get_expense_service(settings: Settings = Depends(get_settings)) -> ExpenseService:
    return ExpenseService(base_currency=settings.base_currency, on_change=invalidate_account)


def get_invoice_service(settings: Settings = Depends(get_settings)) -> InvoiceService:
    return InvoiceService(base_currency=settings.base_currency, on_change=invalidate_account)


def get_recurring_service(settings: Settings = Depends(get_settings)) -> RecurringInvoiceService:
    return RecurringInvoiceService(base_currency=settings.base_currency, on_change=invalidate_account)


def get_report_service(settings: Settings = Depends(get_settings)) -> ReportService:
    """Build report service dependency backed by the shared cache."""

    return ReportService(base_currency=settings.base_currency, cache=get_report_cache())


def get_export_service(
    settings: Settings = Depends(get_settings),
    reports: ReportService = Depends(get_report_service),
) -> ExportService:
    return ExportService(reports=reports, history_limit=settings.export_history_limit)
