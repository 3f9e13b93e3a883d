"""CSV layouts for the export types.

Each renderer turns already-computed report data into CSV text. Rows are
written with the ``csv`` module so descriptions containing commas or quotes
stay in one cell.
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from smartledger.exports.models import (
    ClientStatement,
    DetailedExport,
    ExportContext,
    MonthlyReview,
)
from smartledger.reports.calculations import amount_in_base, category_name
from smartledger.schemas.report import CategoryTotal, SummaryReport, TaxSummaryReport

Row = Sequence[Any]


def _render(rows: Iterable[Row]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def _pct(value: Decimal, places: str = "0.01") -> str:
    return f"{Decimal(value).quantize(Decimal(places))}%"


def _signed_pct(value: Decimal) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{_pct(value, '0.1')}"


def header_rows(title: str, context: ExportContext) -> list[Row]:
    """Title, generation time, period, currency, client and type lines."""

    rows: list[Row] = [
        [title],
        [f"Generated: {context.generated_at.strftime('%Y-%m-%d %H:%M')}"],
    ]
    if context.start is not None and context.end is not None:
        rows.append([f"Period: {context.start.isoformat()} to {context.end.isoformat()}"])
    rows.append([f"Currency: {context.currency}"])
    if context.client_name:
        rows.append([f"Client: {context.client_name}"])
    rows.append([f"Report Type: {context.export_type.value.capitalize()}"])
    rows.append([])
    rows.append(["---"])
    return rows


def _category_table(categories: list[CategoryTotal], total_label: str, total: Decimal) -> list[Row]:
    rows: list[Row] = [["Category", "Amount", "Percentage"]]
    rows.extend([cat.name, cat.value, _pct(cat.percentage, "0.1")] for cat in categories)
    rows.append([total_label, total, "100%"])
    return rows


def render_summary(report: SummaryReport, context: ExportContext) -> str:
    currency = context.currency
    rows: list[Row] = header_rows("Financial Summary Report", context)
    rows += [
        [],
        ["KEY PERFORMANCE INDICATORS"],
        [f"Total Revenue ({currency})", report.total_revenue],
        [f"Total Expenses ({currency})", report.total_expenses],
        ["Net Profit", report.net_profit],
        ["Profit Margin", _pct(report.profit_margin)],
        ["Outstanding Amount", report.total_outstanding],
        ["Collection Rate", _pct(report.collection_rate)],
        ["Average Days to Payment", report.avg_days_to_payment.quantize(Decimal("1"))],
        [],
        ["REVENUE BY CATEGORY"],
        *_category_table(report.income_categories, "Total Revenue", report.total_revenue),
        [],
        ["EXPENSES BY CATEGORY"],
        *_category_table(report.expense_categories, "Total Expenses", report.total_expenses),
        [],
        ["MONTHLY BREAKDOWN"],
        ["Month", "Revenue", "Expenses", "Net Profit"],
    ]
    rows.extend([month.month, month.income, month.expenses, month.profit] for month in report.monthly)
    return _render(rows)


def _party_name(party: Optional[Any]) -> str:
    return party.name if party is not None else ""


def render_detailed(data: DetailedExport, context: ExportContext) -> str:
    currency = context.currency
    rows: list[Row] = header_rows("Detailed Transaction Report", context)
    rows += [
        [],
        ["INCOME TRANSACTIONS"],
        [
            "Date", "Description", "Category", "Client", "Original Amount", "Currency",
            "Exchange Rate", f"Amount ({currency})", "Tax", "Reference",
        ],
    ]
    for income in data.incomes:
        rows.append(
            [
                income.date.isoformat(),
                income.description,
                category_name(income),
                _party_name(income.client),
                income.amount,
                income.currency or currency,
                income.exchange_rate or 1,
                amount_in_base(income),
                income.tax_amount or 0,
                income.reference_number or "",
            ]
        )
    rows.append(["", "", "", "", "", "", f"Subtotal ({currency}):", data.total_income])
    rows += [
        [],
        ["EXPENSE TRANSACTIONS"],
        [
            "Date", "Description", "Category", "Vendor", "Original Amount", "Currency",
            "Exchange Rate", f"Amount ({currency})", "Tax", "Receipt",
        ],
    ]
    for expense in data.expenses:
        vendor = _party_name(expense.vendor_detail) or (expense.vendor or "")
        rows.append(
            [
                expense.date.isoformat(),
                expense.description,
                category_name(expense),
                vendor,
                expense.amount,
                expense.currency or currency,
                expense.exchange_rate or 1,
                amount_in_base(expense),
                expense.tax_amount or 0,
                "Yes" if expense.receipt_url else "No",
            ]
        )
    rows.append(["", "", "", "", "", "", f"Subtotal ({currency}):", data.total_expenses])
    rows += [
        [],
        ["SUMMARY"],
        ["Total Income", "", "", "", "", "", "", data.total_income],
        ["Total Expenses", "", "", "", "", "", "", data.total_expenses],
        ["Net Profit/Loss", "", "", "", "", "", "", data.net_profit],
    ]
    return _render(rows)


def render_tax(report: TaxSummaryReport, context: ExportContext) -> str:
    rows: list[Row] = header_rows("Tax Summary Report", context)
    rows += [
        ["Note: Please consult with your tax professional. Categories are mapped to common tax categories."],
        [],
        ["TAX SUMMARY"],
        ["Gross Income", report.total_income],
        ["Total Deductible Expenses", report.deductible_expenses],
        ["Net Business Income", report.net_income],
        ["Total Tax Collected", report.tax_collected],
        ["Total Tax Paid", report.tax_paid],
        ["Net Tax Liability", report.net_tax_liability],
        [],
        ["INCOME BY TAX CATEGORY"],
        ["Category", "Tax Category", "Amount", "Tax Collected"],
    ]
    rows.extend(
        [row.category, row.tax_category, row.amount, row.tax_amount] for row in report.income_by_tax_category
    )
    rows += [
        [],
        ["DEDUCTIBLE EXPENSES BY TAX CATEGORY"],
        ["Category", "Tax Category", "Amount", "Tax Paid", "Deductible"],
    ]
    rows.extend(
        [row.category, row.tax_category, row.amount, row.tax_amount, "Yes" if row.deductible else "No"]
        for row in report.expenses_by_tax_category
    )
    rows += [
        [],
        ["QUARTERLY BREAKDOWN"],
        ["Quarter", "Income", "Expenses", "Net Income", "Tax Liability"],
    ]
    rows.extend([q.quarter, q.income, q.expenses, q.net_income, q.estimated_tax] for q in report.quarterly)
    rows += [
        [],
        ["*Tax deductible items marked. Consult your tax professional for advice."],
    ]
    return _render(rows)


def render_client(data: ClientStatement, context: ExportContext) -> str:
    rows: list[Row] = header_rows(f"Client Statement - {data.client_name}", context)
    rows += [
        [],
        ["CLIENT INFORMATION"],
        ["Name", data.client_name],
        ["Email", data.client_email or "N/A"],
        ["Phone", data.client_phone or "N/A"],
        ["Total Revenue", data.total_revenue],
        ["Outstanding Balance", data.outstanding_balance],
        [],
        ["INVOICE SUMMARY"],
        ["Invoice #", "Date", "Due Date", "Amount", "Status", "Days Overdue"],
    ]
    rows.extend(
        [inv.invoice_number, inv.date.isoformat(), inv.due_date.isoformat(), inv.total, inv.status, inv.days_overdue]
        for inv in data.invoices
    )
    rows += [
        [],
        ["PAYMENT HISTORY"],
        ["Date", "Invoice #", "Amount", "Payment Method"],
    ]
    rows.extend([pmt.date.isoformat(), pmt.invoice_number, pmt.amount, pmt.method] for pmt in data.payments)
    rows += [
        [],
        ["ACCOUNT ACTIVITY"],
        ["Date", "Description", "Debit", "Credit", "Balance"],
    ]
    rows.extend(
        [act.date.isoformat(), act.description, act.debit, act.credit, act.balance] for act in data.activity
    )
    rows += [
        [],
        ["Current Balance Due:", "", "", data.outstanding_balance],
        [],
        ["Thank you for your business!"],
    ]
    return _render(rows)


def render_monthly(data: MonthlyReview, context: ExportContext) -> str:
    rows: list[Row] = header_rows(f"Monthly Business Review - {data.month_name}", context)
    rows += [
        [],
        ["EXECUTIVE SUMMARY"],
        ["Revenue", data.revenue, f"{_signed_pct(data.revenue_change)} from last month"],
        ["Expenses", data.expenses, f"{_signed_pct(data.expense_change)} from last month"],
        ["Net Profit", data.net_profit, f"{_pct(data.profit_margin, '0.1')} margin"],
        ["Cash Position", data.cash_balance],
        [],
        ["TOP METRICS"],
        ["New Clients", data.new_clients],
        ["Invoices Sent", data.invoices_sent],
        ["Invoices Paid", data.invoices_paid],
        ["Average Invoice Value", data.avg_invoice_value],
        ["Collection Rate", _pct(data.collection_rate)],
        [],
        ["TOP 5 INCOME SOURCES"],
        ["Client/Category", "Amount", "% of Revenue"],
    ]
    rows.extend([src.name, src.value, _pct(src.percentage, "0.1")] for src in data.top_income_sources)
    rows += [
        [],
        ["TOP 5 EXPENSE CATEGORIES"],
        ["Category", "Amount", "% of Expenses"],
    ]
    rows.extend([cat.name, cat.value, _pct(cat.percentage, "0.1")] for cat in data.top_expense_categories)
    rows += [[], ["ACTION ITEMS"]]
    rows.extend([f"- {item}"] for item in data.action_items)
    rows += [
        [],
        ["MONTH-OVER-MONTH COMPARISON"],
        ["Metric", "This Month", "Last Month", "Change"],
        ["Revenue", data.revenue, data.last_month_revenue, _pct(data.revenue_change, "0.1")],
        ["Expenses", data.expenses, data.last_month_expenses, _pct(data.expense_change, "0.1")],
        ["New Clients", data.new_clients, data.last_month_new_clients, data.new_clients - data.last_month_new_clients],
        [
            "Invoices Paid",
            data.invoices_paid,
            data.last_month_invoices_paid,
            data.invoices_paid - data.last_month_invoices_paid,
        ],
    ]
    return _render(rows)
