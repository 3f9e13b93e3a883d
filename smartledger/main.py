"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI

from smartledger.api.errors import register_exception_handlers
from smartledger.api.router import api_router
from smartledger.config import get_settings
from smartledger.database.migrations import head_revision, run_migrations, should_run_migrations
from smartledger.database.session import db_manager
from smartledger.logging_config import configure_logging
from smartledger.security.auth import require_api_auth

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown of shared resources."""

    settings = get_settings()
    configure_logging(settings.debug)
    if should_run_migrations():
        await run_migrations()
        logger.info("migrations_applied", revision=head_revision())

    logger.info("app_started", app_name=settings.app_name, base_currency=settings.base_currency)
    try:
        yield
    finally:
        await db_manager.dispose()


settings = get_settings()
app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.include_router(api_router, prefix=settings.api_v1_prefix, dependencies=[Depends(require_api_auth)])
register_exception_handlers(app)


@app.get("/health", tags=["system"])
async def health() -> dict[str, str]:
    """Liveness check for uptime monitors."""

    return {"status": "ok"}
