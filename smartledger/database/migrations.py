"""Schema upgrades through Alembic, callable from the app and from tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import structlog
from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from smartledger.config import get_settings

logger = structlog.get_logger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def alembic_config(database_url: Optional[str] = None) -> Config:
    """Alembic config pointed at ``database_url`` or the configured database."""

    cfg = Config(str(ALEMBIC_INI))
    url = database_url or get_settings().database_url
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def head_revision() -> Optional[str]:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def should_run_migrations() -> bool:
    return get_settings().run_migrations_on_startup


async def run_migrations(revision: str = "head", database_url: Optional[str] = None) -> None:
    """Upgrade the schema to ``revision``.

    Alembic is synchronous and its env starts its own event loop, so the
    upgrade runs in a worker thread.
    """

    cfg = alembic_config(database_url)
    logger.info("migrations_upgrading", revision=revision, head=head_revision())
    await asyncio.to_thread(command.upgrade, cfg, revision)
