"""Financial reporting service with per-account result caching."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import ValidationError
from smartledger.config import get_settings
from smartledger.database.models import InvoiceStatus
from smartledger.reports import calculations as calc
from smartledger.reports.cache import ReportCache, range_key
from smartledger.reports.queries import load_clients, load_expenses, load_incomes, load_invoices
from smartledger.schemas.report import (
    CashFlowMonth,
    CashFlowReport,
    CategoryLines,
    ClientProfitabilityReport,
    ClientProfitabilityRow,
    LineItem,
    ProfitLossReport,
    SummaryReport,
    TaxSummaryReport,
)
from smartledger.utils.money import ZERO, percentage, round_money

logger = structlog.get_logger(__name__)

T = TypeVar("T")

EXPECTED_INCOME_WINDOW_DAYS = 30


def local_today() -> date:
    """Today in the configured business timezone."""

    return datetime.now(ZoneInfo(get_settings().timezone)).date()


def resolve_range(start: Optional[date], end: Optional[date], today: Optional[date] = None) -> tuple[date, date]:
    """Fill a missing bound from the current calendar month.

    The filled range is checked too, so ``start`` alone in a later month is
    rejected rather than producing an empty inverted report.
    """

    month_start, month_end = calc.current_month(today or local_today())
    start, end = start or month_start, end or month_end
    if start > end:
        raise ValidationError(f"start {start.isoformat()} must be on or before end {end.isoformat()}")
    return start, end


class ReportService:
    """Build summary, P&L, cash-flow, tax and client reports for an account."""

    def __init__(self, base_currency: str, cache: Optional[ReportCache] = None) -> None:
        self.base_currency = base_currency.upper()
        self.cache = cache

    async def _cached(
        self,
        account_id: str,
        kind: str,
        start: date,
        end: date,
        build: Callable[[], Awaitable[T]],
        as_of: Optional[date] = None,
    ) -> T:
        key = range_key(start, end, as_of)
        if self.cache is not None:
            cached = self.cache.get(account_id, kind, key)
            if cached is not None:
                return cached

        value = await build()
        if self.cache is not None:
            self.cache.set(account_id, kind, key, value)
        return value

    async def summary(
        self,
        session: AsyncSession,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> SummaryReport:
        """Revenue, expenses, margins and invoice collection KPIs."""

        start, end = resolve_range(start, end)

        async def build() -> SummaryReport:
            incomes = await load_incomes(session, account_id, start, end)
            expenses = await load_expenses(session, account_id, start, end)
            invoices = await load_invoices(session, account_id, start, end)
            return self.build_summary(incomes, expenses, invoices, start, end)

        return await self._cached(account_id, "summary", start, end, build)

    def build_summary(self, incomes: list, expenses: list, invoices: list, start: date, end: date) -> SummaryReport:
        total_revenue = calc.total_in_base(incomes)
        total_expenses = calc.total_in_base(expenses)
        net_profit = total_revenue - total_expenses
        outstanding = [
            inv
            for inv in invoices
            if inv.status not in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELED.value)
        ]

        return SummaryReport(
            start=start,
            end=end,
            currency=self.base_currency,
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=net_profit,
            profit_margin=percentage(net_profit, total_revenue),
            total_outstanding=calc.invoice_total(outstanding),
            collection_rate=calc.collection_rate(invoices),
            avg_days_to_payment=calc.avg_payment_days(invoices),
            income_categories=calc.group_by_category(incomes),
            expense_categories=calc.group_by_category(expenses),
            monthly=calc.monthly_breakdown(incomes, expenses, start, end),
        )

    async def profit_loss(
        self,
        session: AsyncSession,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ProfitLossReport:
        """Income and expense lines grouped by category."""

        start, end = resolve_range(start, end)

        async def build() -> ProfitLossReport:
            incomes = await load_incomes(session, account_id, start, end)
            expenses = await load_expenses(session, account_id, start, end)
            total_income = calc.total_in_base(incomes)
            total_expenses = calc.total_in_base(expenses)
            net_profit = total_income - total_expenses
            return ProfitLossReport(
                start=start,
                end=end,
                currency=self.base_currency,
                income=self._category_lines(incomes),
                expenses=self._category_lines(expenses),
                total_income=total_income,
                total_expenses=total_expenses,
                net_profit=net_profit,
                profit_margin=percentage(net_profit, total_income),
            )

        return await self._cached(account_id, "profit_loss", start, end, build)

    @staticmethod
    def _category_lines(rows: list) -> list[CategoryLines]:
        grouped: dict[str, list[LineItem]] = {}
        for row in rows:
            grouped.setdefault(calc.category_name(row), []).append(
                LineItem(date=row.date, description=row.description, amount=calc.amount_in_base(row))
            )
        lines = [
            CategoryLines(name=name, total=sum((item.amount for item in items), ZERO), items=items)
            for name, items in grouped.items()
        ]
        return sorted(lines, key=lambda line: line.total, reverse=True)

    async def cash_flow(
        self,
        session: AsyncSession,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> CashFlowReport:
        """Monthly inflow and outflow with a running balance."""

        today = today or local_today()
        start, end = resolve_range(start, end, today)

        async def build() -> CashFlowReport:
            # Opening balance is everything booked before the range.
            earlier_incomes = await load_incomes(session, account_id, end=start - timedelta(days=1))
            earlier_expenses = await load_expenses(session, account_id, end=start - timedelta(days=1))
            incomes = await load_incomes(session, account_id, start, end)
            expenses = await load_expenses(session, account_id, start, end)
            invoices = await load_invoices(session, account_id)

            opening = calc.total_in_base(earlier_incomes) - calc.total_in_base(earlier_expenses)
            balance = opening
            months: list[CashFlowMonth] = []
            for row in calc.monthly_breakdown(incomes, expenses, start, end):
                balance += row.profit
                months.append(
                    CashFlowMonth(
                        month=row.month,
                        month_start=row.month_start,
                        inflow=row.income,
                        outflow=row.expenses,
                        net=row.profit,
                        balance=balance,
                    )
                )

            total_inflow = calc.total_in_base(incomes)
            total_outflow = calc.total_in_base(expenses)
            return CashFlowReport(
                start=start,
                end=end,
                currency=self.base_currency,
                opening_balance=opening,
                months=months,
                total_inflow=total_inflow,
                total_outflow=total_outflow,
                net_cash_flow=total_inflow - total_outflow,
                closing_balance=balance,
                expected_income_30_days=expected_income(invoices, today),
                overdue_amount=overdue_amount(invoices, today),
            )

        return await self._cached(account_id, "cash_flow", start, end, build, as_of=today)

    async def tax_summary(
        self,
        session: AsyncSession,
        account_id: str,
        year: Optional[int] = None,
    ) -> TaxSummaryReport:
        """Tax collected and paid, deductible expenses and quarterly estimates."""

        year = year or local_today().year
        start, end = date(year, 1, 1), date(year, 12, 31)

        async def build() -> TaxSummaryReport:
            incomes = await load_incomes(session, account_id, start, end)
            expenses = await load_expenses(session, account_id, start, end)
            return self.build_tax_summary(incomes, expenses, year)

        return await self._cached(account_id, "tax_summary", start, end, build)

    def build_tax_summary(self, incomes: list, expenses: list, year: int) -> TaxSummaryReport:
        total_income = calc.total_in_base(incomes)
        tax_collected = calc.tax_in_base(incomes, self.base_currency)
        tax_paid = calc.tax_in_base(expenses, self.base_currency)
        income_rows = calc.tax_category_rows(incomes, income=True)
        expense_rows = calc.tax_category_rows(expenses, income=False)
        deductible = sum((row.amount for row in expense_rows if row.deductible), ZERO)

        return TaxSummaryReport(
            year=year,
            start=date(year, 1, 1),
            end=date(year, 12, 31),
            currency=self.base_currency,
            total_income=total_income,
            deductible_expenses=round_money(deductible),
            net_income=total_income - round_money(deductible),
            tax_collected=tax_collected,
            tax_paid=tax_paid,
            net_tax_liability=tax_collected - tax_paid,
            income_by_tax_category=income_rows,
            expenses_by_tax_category=expense_rows,
            quarterly=calc.quarterly_breakdown(incomes, expenses, year),
        )

    async def client_profitability(
        self,
        session: AsyncSession,
        account_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ClientProfitabilityReport:
        """Revenue and open balance per client, best clients first."""

        start, end = resolve_range(start, end)

        async def build() -> ClientProfitabilityReport:
            clients = await load_clients(session, account_id)
            incomes = await load_incomes(session, account_id, start, end)
            invoices = await load_invoices(session, account_id, start, end)

            rows: list[ClientProfitabilityRow] = []
            for client in clients:
                client_incomes = [row for row in incomes if row.client_id == client.id]
                client_invoices = [inv for inv in invoices if inv.client_id == client.id]
                if not client_incomes and not client_invoices:
                    continue
                paid = [inv for inv in client_invoices if inv.status == InvoiceStatus.PAID.value]
                open_ = [inv for inv in client_invoices if inv.status in calc.OPEN_INVOICE_STATUSES]
                rows.append(
                    ClientProfitabilityRow(
                        client_id=client.id,
                        client_name=client.name,
                        revenue=calc.total_in_base(client_incomes),
                        outstanding=calc.invoice_total(open_),
                        invoice_count=len(client_invoices),
                        paid_invoice_count=len(paid),
                        avg_payment_days=calc.avg_payment_days(paid) if paid else None,
                    )
                )

            rows.sort(key=lambda row: (row.revenue, row.outstanding), reverse=True)
            return ClientProfitabilityReport(start=start, end=end, currency=self.base_currency, clients=rows)

        return await self._cached(account_id, "client_profitability", start, end, build)


def is_overdue(invoice, today: date) -> bool:
    """Overdue by status, or sent and past its due date."""

    if invoice.status == InvoiceStatus.OVERDUE.value:
        return True
    return invoice.status == InvoiceStatus.SENT.value and invoice.due_date < today


def overdue_amount(invoices: list, today: date) -> Decimal:
    return calc.invoice_total(inv for inv in invoices if is_overdue(inv, today))


def expected_income(invoices: list, today: date) -> Decimal:
    """Open invoices falling due within the next 30 days."""

    horizon = today + timedelta(days=EXPECTED_INCOME_WINDOW_DAYS)
    return calc.invoice_total(
        inv
        for inv in invoices
        if inv.status == InvoiceStatus.SENT.value and today <= inv.due_date <= horizon
    )
