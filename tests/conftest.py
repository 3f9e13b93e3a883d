from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.deps import get_insights_service, get_report_cache, get_session
from smartledger.api.errors import register_exception_handlers
from smartledger.api.router import api_router
from smartledger.config import get_settings
from smartledger.database.base import Base
from smartledger.database.models import BillingInterval, PlanType, Subscription, SubscriptionStatus
from smartledger.database.session import build_engine, build_session_factory
from smartledger.security.auth import require_api_auth
from smartledger.subscriptions.service import SubscriptionState, Usage

ACCOUNT = "owner-1"


def _clear_caches() -> None:
    get_settings.cache_clear()
    get_report_cache.cache_clear()
    get_insights_service.cache_clear()


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set deterministic test env and reset cached Settings."""

    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("API_TOKEN", "")
    monkeypatch.setenv("BASE_CURRENCY", "USD")
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("AI_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("TRIAL_DAYS", "30")
    _clear_caches()
    yield
    _clear_caches()


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> async_sessionmaker[AsyncSession]:
    """Provide isolated sqlite session factory per test."""

    db_path = tmp_path / "test.db"
    engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def make_state() -> Callable[..., SubscriptionState]:
    """Build an in-memory subscription state without touching the database."""

    def factory(
        plan: PlanType = PlanType.PLUS,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        usage: Optional[Usage] = None,
        trial_end: Optional[datetime] = None,
        account_id: str = ACCOUNT,
    ) -> SubscriptionState:
        now = datetime.now(timezone.utc)
        subscription = Subscription(
            user_id=account_id,
            plan=plan.value,
            interval=BillingInterval.MONTHLY.value,
            status=status.value,
            trial_end=trial_end,
            current_period_start=now,
            current_period_end=now + timedelta(days=30),
            cancel_at_period_end=False,
        )
        return SubscriptionState(subscription=subscription, usage=usage or Usage(), now=now)

    return factory


@pytest.fixture
def api_app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Build API app with test DB dependency override."""

    app = FastAPI()
    app.include_router(api_router, prefix="/api/v1", dependencies=[Depends(require_api_auth)])
    register_exception_handlers(app)

    async def override_get_session() -> AsyncSession:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def api_client(api_app: FastAPI) -> httpx.AsyncClient:
    """ASGI client for API integration tests."""

    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return {"X-User-Id": ACCOUNT}


@pytest.fixture
def member_headers() -> dict[str, str]:
    return {"X-User-Id": "member-1"}
