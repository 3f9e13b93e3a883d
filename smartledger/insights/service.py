"""Insight generation: AI when configured, heuristic engine otherwise."""

from __future__ import annotations

import json
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.ai.client import BaseAIClient
from smartledger.insights.engine import MAX_INSIGHTS, CategorySpend, InsightData, InsightsEngine
from smartledger.reports import calculations as calc
from smartledger.reports.queries import load_clients, load_expenses, load_incomes, load_invoices
from smartledger.reports.service import expected_income, local_today, overdue_amount
from smartledger.schemas.insight import Insight, InsightsResponse
from smartledger.utils.money import ZERO, round_money

logger = structlog.get_logger(__name__)

REVENUE_AVERAGE_MONTHS = 6
EXPENSE_AVERAGE_MONTHS = 3

INSIGHTS_PROMPT = (
    "You are a financial analyst for a small business. "
    "You receive the business's aggregate figures as JSON, all amounts in {currency}. "
    "Reply ONLY with a JSON object of the form "
    '{{"insights": [{{"id": "kebab-case-id", "type": "warning|success|info|action|urgent", '
    '"category": "cash_flow|collections|spending|revenue|clients|strategy", '
    '"title": "short title", "message": "one or two sentences", "priority": 1-10, '
    '"action": {{"label": "button text", "link": "/path"}} or null}}]}}. '
    "Give at most {limit} insights, grounded only in the figures provided."
)


def _months_back(today: date, count: int) -> list[tuple[date, date]]:
    """The ``count`` complete calendar months before the current one, newest first."""

    months: list[tuple[date, date]] = []
    cursor = today
    for _ in range(count):
        first, last = calc.previous_month(cursor)
        months.append((first, last))
        cursor = first
    return months


def _average_of_active_months(rows: list, months: list[tuple[date, date]]) -> tuple[Decimal, int]:
    totals = [calc.total_in_base(calc.in_range(rows, first, last)) for first, last in months]
    active = [total for total in totals if total > 0]
    if not active:
        return ZERO, 0
    return round_money(sum(active, ZERO) / len(active)), len(active)


class InsightsService:
    """Produce insights per account and keep the last answer for an hour."""

    def __init__(
        self,
        base_currency: str,
        ai_client: Optional[BaseAIClient] = None,
        cache_ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_currency = base_currency.upper()
        self.ai_client = ai_client
        self._ttl = float(cache_ttl_seconds)
        self._clock = clock
        self._cache: dict[str, tuple[float, InsightsResponse]] = {}

    def invalidate(self, account_id: str) -> None:
        self._cache.pop(account_id, None)

    async def get_insights(
        self,
        session: AsyncSession,
        account_id: str,
        *,
        force_refresh: bool = False,
        today: Optional[date] = None,
    ) -> InsightsResponse:
        """Cached insights unless stale or a refresh is forced."""

        if not force_refresh:
            cached = self._cache.get(account_id)
            if cached is not None and self._clock() - cached[0] < self._ttl:
                logger.debug("insights_cache_hit", account_id=account_id)
                return cached[1].model_copy(update={"source": "cache"})

        today = today or local_today()
        data = await self.gather(session, account_id, today)
        engine = InsightsEngine(currency=self.base_currency, today=today)

        response: Optional[InsightsResponse] = None
        if self.ai_client is not None:
            response = await self._ai_insights(account_id, data, engine)
        if response is None:
            response = InsightsResponse(
                insights=engine.all_insights(data),
                generated_at=datetime.now(timezone.utc),
                source="smart_logic",
            )

        self._cache[account_id] = (self._clock(), response)
        return response

    async def _ai_insights(
        self,
        account_id: str,
        data: InsightData,
        engine: InsightsEngine,
    ) -> Optional[InsightsResponse]:
        prompt = INSIGHTS_PROMPT.format(currency=self.base_currency, limit=MAX_INSIGHTS)
        try:
            payload = await self.ai_client.complete_json(prompt=prompt, text=self._describe(data, engine))
            raw_items = payload.get("insights")
            if not isinstance(raw_items, list) or not raw_items:
                raise ValueError("AI returned no insights")
            insights = [Insight.model_validate(item) for item in raw_items]
        except ValueError as exc:
            logger.warning("ai_insights_invalid", account_id=account_id, error=str(exc))
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("ai_insights_fallback", account_id=account_id, error=str(exc))
            return None

        insights.sort(key=lambda insight: insight.priority, reverse=True)
        return InsightsResponse(
            insights=insights[:MAX_INSIGHTS],
            generated_at=datetime.now(timezone.utc),
            source="ai",
        )

    def _describe(self, data: InsightData, engine: InsightsEngine) -> str:
        """Figures sent to the model; no row-level data leaves the service."""

        statuses: dict[str, int] = {}
        for inv in data.invoices:
            statuses[inv.status] = statuses.get(inv.status, 0) + 1
        summary = {
            "today": engine.today.isoformat(),
            "revenue": {
                "current_month": str(data.revenue_current),
                "previous_month": str(data.revenue_previous),
                "monthly_average": str(data.revenue_average),
            },
            "expenses": {
                "current_month": str(data.expenses_current),
                "previous_month": str(data.expenses_previous),
                "by_category": [{"name": c.name, "amount": str(c.amount)} for c in data.expenses_by_category[:5]],
            },
            "cash_flow": {
                "balance": str(data.balance),
                "monthly_expenses": str(data.monthly_expenses),
                "expected_income_30_days": str(data.expected_income),
                "overdue_amount": str(data.overdue_amount),
            },
            "invoices": {"count": len(data.invoices), "by_status": statuses},
            "clients": {"count": len(data.clients)},
            "tax": {
                "categorized_expenses": str(data.categorized_expenses),
                "total_expenses": str(data.total_expenses),
                "quarterly_estimate": str(data.quarterly_tax_estimate),
            },
            "months_of_data": engine.months_of_data(data.invoices),
        }
        return json.dumps(summary)

    async def gather(self, session: AsyncSession, account_id: str, today: date) -> InsightData:
        """Collect the aggregate figures the analyzers need."""

        incomes = await load_incomes(session, account_id, end=today)
        expenses = await load_expenses(session, account_id, end=today)
        invoices = await load_invoices(session, account_id)
        clients = await load_clients(session, account_id)

        month_start, month_end = calc.current_month(today)
        last_start, last_end = calc.previous_month(today)
        current_expenses = calc.in_range(expenses, month_start, month_end)

        revenue_average, _ = _average_of_active_months(incomes, _months_back(today, REVENUE_AVERAGE_MONTHS))
        monthly_expenses, _ = _average_of_active_months(expenses, _months_back(today, EXPENSE_AVERAGE_MONTHS))
        if monthly_expenses == 0:
            monthly_expenses = calc.total_in_base(current_expenses)

        year_expenses = calc.in_range(expenses, date(today.year, 1, 1), today)
        categorized = [row for row in year_expenses if row.category is not None]
        quarter_start, quarter_end = calc.quarter_bounds(today.year, calc.quarter_of(today))
        quarter_net = calc.total_in_base(calc.in_range(incomes, quarter_start, quarter_end)) - calc.total_in_base(
            calc.in_range(expenses, quarter_start, quarter_end)
        )

        return InsightData(
            revenue_current=calc.total_in_base(calc.in_range(incomes, month_start, month_end)),
            revenue_previous=calc.total_in_base(calc.in_range(incomes, last_start, last_end)),
            revenue_average=revenue_average,
            expenses_current=calc.total_in_base(current_expenses),
            expenses_previous=calc.total_in_base(calc.in_range(expenses, last_start, last_end)),
            expenses_by_category=[
                CategorySpend(name=group.name, amount=group.value) for group in calc.group_by_category(current_expenses)
            ],
            balance=calc.total_in_base(incomes) - calc.total_in_base(expenses),
            monthly_expenses=monthly_expenses,
            expected_income=expected_income(invoices, today),
            overdue_amount=overdue_amount(invoices, today),
            invoices=invoices,
            clients=clients,
            categorized_expenses=calc.total_in_base(categorized),
            total_expenses=calc.total_in_base(year_expenses),
            quarterly_tax_estimate=max(ZERO, calc.estimated_tax(quarter_net)),
        )
