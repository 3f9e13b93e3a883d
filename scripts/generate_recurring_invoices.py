"""Issue due recurring invoices for every account; meant to run once a day."""

from __future__ import annotations

import asyncio

import structlog
from sqlalchemy import select

from smartledger.api.errors import PlanLimitError
from smartledger.config import get_settings
from smartledger.database.models import RecurringInvoice
from smartledger.database.session import db_manager
from smartledger.logging_config import configure_logging
from smartledger.reports.service import local_today
from smartledger.services.recurring_service import RecurringInvoiceService
from smartledger.subscriptions.service import SubscriptionService

logger = structlog.get_logger(__name__)


async def generate() -> None:
    settings = get_settings()
    today = local_today()
    recurring = RecurringInvoiceService(base_currency=settings.base_currency)
    subscriptions = SubscriptionService(trial_days=settings.trial_days)
    issued = 0

    try:
        async with db_manager.session_scope() as session:
            account_ids = (
                await session.scalars(
                    select(RecurringInvoice.user_id)
                    .where(RecurringInvoice.is_active.is_(True), RecurringInvoice.next_date <= today)
                    .distinct()
                )
            ).all()
            for account_id in account_ids:
                state = await subscriptions.load_state(session, account_id)
                try:
                    invoice_ids = await recurring.generate_due(session, account_id, state, today)
                except PlanLimitError as exc:
                    logger.info("recurring_invoices_skipped", account_id=account_id, reason=exc.message)
                    continue
                issued += len(invoice_ids)
    finally:
        await db_manager.dispose()

    print(f"Recurring invoices issued: {issued} across {len(account_ids)} accounts")


if __name__ == "__main__":
    configure_logging(get_settings().debug)
    asyncio.run(generate())
