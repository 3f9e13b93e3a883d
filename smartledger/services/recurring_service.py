"""Recurring invoice templates and the job that issues their due invoices."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ValidationError
from smartledger.database.models import CategoryType, Client, RecurringFrequency, RecurringInvoice
from smartledger.schemas.invoice import InvoiceItemCreate
from smartledger.schemas.recurring import RecurringInvoiceCreate, RecurringInvoiceUpdate
from smartledger.services.invoice_service import build_invoice, next_invoice_number
from smartledger.services.ownership import ChangeHook, check_category, check_reference, get_owned, no_change_hook
from smartledger.subscriptions import plans
from smartledger.subscriptions.service import SubscriptionState

logger = structlog.get_logger(__name__)

FEATURE = "recurring_invoices"

_MONTH_STEPS = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.YEARLY: 12,
}


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""

    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def advance(day: date, frequency: RecurringFrequency) -> date:
    if frequency == RecurringFrequency.WEEKLY:
        return day + timedelta(days=7)
    if frequency == RecurringFrequency.BIWEEKLY:
        return day + timedelta(days=14)
    return add_months(day, _MONTH_STEPS[frequency])


class RecurringInvoiceService:
    """Templates are gated by the ``recurring_invoices`` plan feature."""

    def __init__(self, base_currency: str, on_change: ChangeHook = no_change_hook) -> None:
        self.base_currency = base_currency.upper()
        self._on_change = on_change

    async def _check_links(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, values: dict
    ) -> None:
        if "client_id" in values:
            await check_reference(session, Client, values["client_id"], account_id, "client_id")
        if "income_category_id" in values:
            await check_category(
                session, values["income_category_id"], account_id, CategoryType.INCOME, "income_category_id"
            )
        if values.get("currency") not in (None, self.base_currency):
            state.require_feature("multi_currency")

    async def list_templates(
        self, session: AsyncSession, account_id: str, *, active: Optional[bool] = None
    ) -> list[RecurringInvoice]:
        stmt = select(RecurringInvoice).where(RecurringInvoice.user_id == account_id)
        if active is not None:
            stmt = stmt.where(RecurringInvoice.is_active.is_(active))
        result = await session.execute(stmt.order_by(RecurringInvoice.next_date, RecurringInvoice.id))
        return list(result.scalars().all())

    async def get_template(self, session: AsyncSession, account_id: str, template_id: int) -> RecurringInvoice:
        return await get_owned(session, RecurringInvoice, template_id, account_id)

    async def create_template(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        payload: RecurringInvoiceCreate,
    ) -> RecurringInvoice:
        state.require_active()
        state.require_feature(FEATURE)
        values = payload.model_dump(mode="json", exclude={"next_date", "end_date", "tax_rate"})
        values["currency"] = payload.currency or self.base_currency
        await self._check_links(session, account_id, state, values)

        template = RecurringInvoice(
            user_id=account_id,
            client_id=payload.client_id,
            frequency=payload.frequency.value,
            next_date=payload.next_date,
            end_date=payload.end_date,
            is_active=True,
            payment_terms_days=payload.payment_terms_days,
            currency=values["currency"],
            tax_rate=payload.tax_rate,
            notes=payload.notes,
            income_category_id=payload.income_category_id,
            items=values["items"],
        )
        session.add(template)
        await session.flush()
        await session.refresh(template)
        await session.commit()
        logger.info(
            "recurring_invoice_created",
            account_id=account_id,
            template_id=template.id,
            frequency=template.frequency,
            next_date=str(template.next_date),
        )
        return template

    async def update_template(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        template_id: int,
        payload: RecurringInvoiceUpdate,
    ) -> RecurringInvoice:
        state.require_active()
        state.require_feature(FEATURE)
        template = await get_owned(session, RecurringInvoice, template_id, account_id)
        values = payload.model_dump(exclude_unset=True)
        for required in ("frequency", "next_date", "is_active", "payment_terms_days", "tax_rate", "items"):
            if required in values and values[required] is None:
                del values[required]
        if "currency" in values and values["currency"] is None:
            values["currency"] = self.base_currency
        await self._check_links(session, account_id, state, values)

        next_date = values.get("next_date", template.next_date)
        end_date = values.get("end_date", template.end_date)
        if end_date is not None and end_date < next_date:
            raise ValidationError("end_date must not be before next_date")

        if "frequency" in values:
            values["frequency"] = values["frequency"].value
        if "items" in values:
            values["items"] = [InvoiceItemCreate(**item).model_dump(mode="json") for item in values["items"]]
        for field, value in values.items():
            setattr(template, field, value)
        await session.flush()
        await session.commit()
        return template

    async def delete_template(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, template_id: int
    ) -> None:
        """Invoices already issued from the template are kept."""

        state.require_active()
        template = await get_owned(session, RecurringInvoice, template_id, account_id)
        await session.delete(template)
        await session.commit()

    async def generate_due(
        self, session: AsyncSession, account_id: str, state: SubscriptionState, today: date
    ) -> list[int]:
        """Issue a draft invoice for every occurrence on or before ``today``.

        Each template catches up on missed occurrences and moves ``next_date``
        past ``today``. Templates past their ``end_date`` are deactivated.
        Generation stops early once the monthly invoice quota is used up; the
        remaining occurrences are issued by a later run.
        """

        state.require_active()
        state.require_feature(FEATURE)
        result = await session.execute(
            select(RecurringInvoice)
            .where(
                RecurringInvoice.user_id == account_id,
                RecurringInvoice.is_active.is_(True),
                RecurringInvoice.next_date <= today,
            )
            .order_by(RecurringInvoice.next_date, RecurringInvoice.id)
        )
        templates = list(result.scalars().all())

        invoice_ids: list[int] = []
        quota_reached = False
        for template in templates:
            frequency = RecurringFrequency(template.frequency)
            items = [InvoiceItemCreate(**item) for item in template.items]
            while template.next_date <= today:
                if template.end_date is not None and template.next_date > template.end_date:
                    break
                if not plans.can_create_invoice(state.plan, state.usage.monthly_invoices + len(invoice_ids)):
                    quota_reached = True
                    break
                number = await next_invoice_number(session, account_id)
                invoice = build_invoice(
                    account_id,
                    number,
                    client_id=template.client_id,
                    invoice_date=template.next_date,
                    due_date=template.next_date + timedelta(days=template.payment_terms_days),
                    tax_rate=template.tax_rate,
                    currency=template.currency,
                    notes=template.notes,
                    income_category_id=template.income_category_id,
                    items=items,
                )
                session.add(invoice)
                await session.flush()
                invoice_ids.append(invoice.id)
                template.last_generated = template.next_date
                template.next_date = advance(template.next_date, frequency)

            if template.end_date is not None and template.next_date > template.end_date:
                template.is_active = False
            if quota_reached:
                logger.info("recurring_invoice_limit_reached", account_id=account_id, template_id=template.id)
                break

        if templates:
            await session.flush()
            await session.commit()
        if invoice_ids:
            self._on_change(account_id)
            logger.info("recurring_invoices_generated", account_id=account_id, count=len(invoice_ids))
        return invoice_ids
