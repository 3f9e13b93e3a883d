"""CSV export generation, feature gating and export history."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.errors import NotFoundError, ValidationError
from smartledger.database.models import Client, ExportRecord, Income, Invoice, InvoiceStatus
from smartledger.exports import templates
from smartledger.exports.models import (
    ClientStatement,
    DetailedExport,
    ExportContext,
    ExportType,
    MonthlyReview,
    StatementActivity,
    StatementInvoice,
    StatementPayment,
)
from smartledger.reports import calculations as calc
from smartledger.reports.queries import load_expenses, load_incomes, load_invoices
from smartledger.reports.service import ReportService, local_today, resolve_range
from smartledger.subscriptions.service import SubscriptionState
from smartledger.utils.money import ZERO, round_money

logger = structlog.get_logger(__name__)

ALL_TIME_START = date(2020, 1, 1)
EXPORT_ALL = "all"
TOP_ITEMS = 5


@dataclass
class ExportFile:
    filename: str
    content: Union[str, bytes]
    media_type: str = "text/csv"


def required_feature(export_type: ExportType) -> str:
    """Summary exports ship with basic reports; everything else is advanced."""

    return "basic_reports" if export_type == ExportType.SUMMARY else "advanced_exports"


def export_filename(export_type: str, day: date, currency: str, extension: str = "csv") -> str:
    return f"{export_type}-export-{day.isoformat()}-{currency}.{extension}"


def _change(current: Decimal, previous: Decimal) -> Decimal:
    if previous <= 0:
        return ZERO
    return ((current - previous) / previous * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def action_items(revenue: Decimal, expenses: Decimal, invoices: list[Invoice]) -> list[str]:
    """Follow-ups suggested by a month of figures."""

    items: list[str] = []
    if revenue < expenses:
        items.append("Revenue is below expenses - focus on increasing sales or reducing costs")

    unpaid = sum(1 for inv in invoices if inv.status != InvoiceStatus.PAID.value)
    if unpaid > 5:
        items.append(f"Follow up on {unpaid} unpaid invoices")

    overdue = sum(1 for inv in invoices if inv.status == InvoiceStatus.OVERDUE.value)
    if overdue > 0:
        items.append(f"{overdue} invoices are overdue - prioritize collection")

    if not items:
        items.append("All metrics look healthy - keep up the good work!")
    return items


def build_client_statement(client: Client, invoices: list[Invoice], incomes: list[Income], today: date) -> ClientStatement:
    """Invoice list, payments and a running balance for one client."""

    billed = [inv for inv in invoices if inv.status not in (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELED.value)]
    open_invoices = [inv for inv in invoices if inv.status not in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELED.value)]
    numbers = {str(inv.id): inv.invoice_number for inv in invoices}

    statement = ClientStatement(
        client_name=client.name,
        client_email=client.email,
        client_phone=client.phone,
        total_revenue=calc.total_in_base(incomes),
        outstanding_balance=calc.invoice_total(open_invoices),
    )
    for inv in invoices:
        overdue_days = (today - inv.due_date).days if inv.status == InvoiceStatus.OVERDUE.value else 0
        statement.invoices.append(
            StatementInvoice(
                invoice_number=inv.invoice_number,
                date=inv.date,
                due_date=inv.due_date,
                total=round_money(inv.total),
                status=inv.status,
                days_overdue=max(0, overdue_days),
            )
        )
    for income in incomes:
        statement.payments.append(
            StatementPayment(
                date=income.date,
                invoice_number=numbers.get(income.reference_number or "", "Direct Payment"),
                amount=calc.amount_in_base(income),
            )
        )

    entries: list[tuple[date, int, Any]] = [(inv.date, 0, inv) for inv in billed]
    entries += [(income.date, 1, income) for income in incomes]
    balance = ZERO
    for day, kind, row in sorted(entries, key=lambda entry: (entry[0], entry[1])):
        if kind == 0:
            amount = round_money(row.total)
            balance += amount
            statement.activity.append(
                StatementActivity(
                    date=day, description=f"Invoice #{row.invoice_number}", debit=amount, credit=None, balance=balance
                )
            )
        else:
            amount = calc.amount_in_base(row)
            balance -= amount
            statement.activity.append(
                StatementActivity(date=day, description="Payment received", debit=None, credit=amount, balance=balance)
            )
    return statement


def build_monthly_review(
    month_start: date,
    incomes: list,
    expenses: list,
    invoices: list[Invoice],
    last_incomes: list,
    last_expenses: list,
    last_invoices: list[Invoice],
) -> MonthlyReview:
    """Month figures set against the previous month."""

    revenue = calc.total_in_base(incomes)
    spent = calc.total_in_base(expenses)
    last_revenue = calc.total_in_base(last_incomes)
    last_spent = calc.total_in_base(last_expenses)
    net = revenue - spent

    def distinct_clients(rows: list[Invoice]) -> int:
        return len({inv.client_id for inv in rows if inv.client_id is not None})

    def paid_count(rows: list[Invoice]) -> int:
        return sum(1 for inv in rows if inv.status == InvoiceStatus.PAID.value)

    return MonthlyReview(
        month_name=month_start.strftime("%B %Y"),
        revenue=revenue,
        expenses=spent,
        net_profit=net,
        profit_margin=(net / revenue * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP) if revenue > 0 else ZERO,
        revenue_change=_change(revenue, last_revenue),
        expense_change=_change(spent, last_spent),
        cash_balance=net,
        new_clients=distinct_clients(invoices),
        invoices_sent=len(invoices),
        invoices_paid=paid_count(invoices),
        avg_invoice_value=round_money(revenue / len(invoices)) if invoices else ZERO,
        collection_rate=calc.collection_rate(invoices),
        top_income_sources=calc.top_groups(incomes, by_client=True, limit=TOP_ITEMS, total=revenue),
        top_expense_categories=calc.top_groups(expenses, by_client=False, limit=TOP_ITEMS, total=spent),
        action_items=action_items(revenue, spent, invoices),
        last_month_revenue=last_revenue,
        last_month_expenses=last_spent,
        last_month_new_clients=distinct_clients(last_invoices),
        last_month_invoices_paid=paid_count(last_invoices),
    )


class ExportService:
    """Render exports, enforce plan features and keep a short history."""

    def __init__(self, reports: ReportService, history_limit: int = 10) -> None:
        self.reports = reports
        self.currency = reports.base_currency
        self.history_limit = history_limit

    async def generate(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        export_type: ExportType,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        client_id: Optional[int] = None,
        today: Optional[date] = None,
    ) -> ExportFile:
        """Render one export and record it in the account history."""

        state.require_feature(required_feature(export_type))
        today = today or local_today()
        content = await self._render(session, account_id, export_type, start, end, client_id, today)

        options: dict[str, Any] = {"currency": self.currency}
        if start is not None:
            options["start"] = start.isoformat()
        if end is not None:
            options["end"] = end.isoformat()
        if client_id is not None:
            options["client_id"] = client_id
        await self._record(session, account_id, export_type.value, options)

        filename = export_filename(export_type.value, today, self.currency)
        logger.info("export_generated", account_id=account_id, export_type=export_type.value, filename=filename)
        return ExportFile(filename=filename, content=content)

    async def export_all(
        self,
        session: AsyncSession,
        account_id: str,
        state: SubscriptionState,
        today: Optional[date] = None,
    ) -> ExportFile:
        """Zip of the all-time summary, all-time detailed and current-year tax exports."""

        state.require_feature("advanced_exports")
        today = today or local_today()
        parts = (
            (ExportType.SUMMARY, ALL_TIME_START, today),
            (ExportType.DETAILED, ALL_TIME_START, today),
            (ExportType.TAX, date(today.year, 1, 1), today),
        )

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for export_type, start, end in parts:
                content = await self._render(session, account_id, export_type, start, end, None, today)
                archive.writestr(export_filename(export_type.value, today, self.currency), content)

        await self._record(session, account_id, EXPORT_ALL, {"currency": self.currency, "end": today.isoformat()})
        filename = export_filename(EXPORT_ALL, today, self.currency, extension="zip")
        logger.info("export_all_generated", account_id=account_id, filename=filename)
        return ExportFile(filename=filename, content=buffer.getvalue(), media_type="application/zip")

    async def history(self, session: AsyncSession, account_id: str) -> list[ExportRecord]:
        result = await session.execute(
            select(ExportRecord)
            .where(ExportRecord.user_id == account_id)
            .order_by(ExportRecord.created_at.desc(), ExportRecord.id.desc())
            .limit(self.history_limit)
        )
        return list(result.scalars().all())

    async def _record(self, session: AsyncSession, account_id: str, export_type: str, options: dict[str, Any]) -> None:
        session.add(ExportRecord(user_id=account_id, export_type=export_type, options=options))
        await session.flush()

        keep = await session.execute(
            select(ExportRecord.id)
            .where(ExportRecord.user_id == account_id)
            .order_by(ExportRecord.created_at.desc(), ExportRecord.id.desc())
            .limit(self.history_limit)
        )
        keep_ids = [row[0] for row in keep.all()]
        await session.execute(
            delete(ExportRecord).where(ExportRecord.user_id == account_id, ExportRecord.id.not_in(keep_ids))
        )
        await session.commit()

    async def _render(
        self,
        session: AsyncSession,
        account_id: str,
        export_type: ExportType,
        start: Optional[date],
        end: Optional[date],
        client_id: Optional[int],
        today: date,
    ) -> str:
        generated_at = datetime.now(timezone.utc)

        if export_type == ExportType.SUMMARY:
            start, end = resolve_range(start, end, today)
            report = await self.reports.summary(session, account_id, start, end)
            context = ExportContext(export_type, self.currency, generated_at, start, end)
            return templates.render_summary(report, context)

        if export_type == ExportType.DETAILED:
            start, end = resolve_range(start, end, today)
            incomes = await load_incomes(session, account_id, start, end)
            expenses = await load_expenses(session, account_id, start, end)
            data = DetailedExport(
                incomes=incomes,
                expenses=expenses,
                total_income=calc.total_in_base(incomes),
                total_expenses=calc.total_in_base(expenses),
            )
            context = ExportContext(export_type, self.currency, generated_at, start, end)
            return templates.render_detailed(data, context)

        if export_type == ExportType.TAX:
            year = (start or today).year
            report = await self.reports.tax_summary(session, account_id, year)
            context = ExportContext(export_type, self.currency, generated_at, report.start, report.end)
            return templates.render_tax(report, context)

        if export_type == ExportType.CLIENT:
            if client_id is None:
                raise ValidationError("client_id is required for client exports")
            client = await session.scalar(select(Client).where(Client.id == client_id, Client.user_id == account_id))
            if client is None:
                raise NotFoundError(f"Client not found: {client_id}")
            invoices = await load_invoices(session, account_id, start, end, client_id=client_id)
            incomes = await load_incomes(session, account_id, client_id=client_id)
            statement = build_client_statement(client, invoices, incomes, today)
            context = ExportContext(export_type, self.currency, generated_at, start, end, client_name=client.name)
            return templates.render_client(statement, context)

        month_start, month_end = calc.current_month(start or today)
        last_start, last_end = calc.previous_month(month_start)
        review = build_monthly_review(
            month_start,
            await load_incomes(session, account_id, month_start, month_end),
            await load_expenses(session, account_id, month_start, month_end),
            await load_invoices(session, account_id, month_start, month_end),
            await load_incomes(session, account_id, last_start, last_end),
            await load_expenses(session, account_id, last_start, last_end),
            await load_invoices(session, account_id, last_start, last_end),
        )
        context = ExportContext(export_type, self.currency, generated_at, month_start, month_end)
        return templates.render_monthly(review, context)
