"""Pure arithmetic over fetched income, expense and invoice rows.

Every money value is rounded to cents before it is summed, and amounts use
``base_amount`` when present so foreign-currency rows are reported in the
account base currency.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from smartledger.database.models import InvoiceStatus
from smartledger.reports.tax_categories import is_deductible, map_to_tax_category
from smartledger.schemas.report import CategoryTotal, MonthlyRow, QuarterRow, TaxCategoryRow
from smartledger.utils.money import ZERO, percentage, round_money, sum_money, to_decimal

UNCATEGORIZED = "Uncategorized"
ESTIMATED_TAX_RATE = Decimal("0.25")
OPEN_INVOICE_STATUSES = (InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value)


def amount_in_base(row: Any) -> Decimal:
    """Base-currency amount of an income or expense row."""

    return round_money(row.base_amount if row.base_amount else row.amount)


def total_in_base(rows: Iterable[Any]) -> Decimal:
    return sum_money(amount_in_base(row) for row in rows)


def invoice_total(invoices: Iterable[Any]) -> Decimal:
    return sum_money(inv.total for inv in invoices)


def category_name(row: Any) -> str:
    category = getattr(row, "category", None)
    return category.name if category is not None else UNCATEGORIZED


def in_range(rows: Iterable[Any], start: date, end: date) -> list[Any]:
    return [row for row in rows if start <= row.date <= end]


def group_by_category(rows: Iterable[Any]) -> list[CategoryTotal]:
    """Totals per category name, largest first."""

    grouped: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in rows:
        grouped[category_name(row)] += amount_in_base(row)

    total = sum(grouped.values(), ZERO)
    items = [
        CategoryTotal(name=name, value=round_money(value), percentage=percentage(value, total))
        for name, value in grouped.items()
    ]
    return sorted(items, key=lambda item: item.value, reverse=True)


def top_groups(rows: Iterable[Any], *, by_client: bool, limit: int, total: Decimal) -> list[CategoryTotal]:
    """Largest sources grouped by client name (or "Direct") or by category."""

    grouped: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in rows:
        if by_client:
            client = getattr(row, "client", None)
            key = client.name if client is not None else "Direct"
        else:
            key = category_name(row)
        grouped[key] += amount_in_base(row)

    items = [
        CategoryTotal(name=name, value=round_money(value), percentage=percentage(value, total, "0.1"))
        for name, value in grouped.items()
    ]
    return sorted(items, key=lambda item: item.value, reverse=True)[:limit]


def collection_rate(invoices: Sequence[Any]) -> Decimal:
    """Percent of the given invoices that are paid."""

    if not invoices:
        return ZERO
    paid = sum(1 for inv in invoices if inv.status == InvoiceStatus.PAID.value)
    return percentage(paid, len(invoices))


def payment_days(invoices: Iterable[Any]) -> list[int]:
    return [
        (inv.paid_date - inv.date).days
        for inv in invoices
        if inv.status == InvoiceStatus.PAID.value and inv.paid_date is not None
    ]


def avg_payment_days(invoices: Iterable[Any]) -> Decimal:
    """Mean whole days between invoice date and payment, 0 with no paid invoices."""

    days = payment_days(invoices)
    if not days:
        return ZERO
    return (Decimal(sum(days)) / len(days)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def month_starts(start: date, end: date) -> list[date]:
    """First day of every calendar month touched by [start, end]."""

    months: list[date] = []
    cursor = start.replace(day=1)
    while cursor <= end:
        months.append(cursor)
        cursor = date(cursor.year + 1, 1, 1) if cursor.month == 12 else date(cursor.year, cursor.month + 1, 1)
    return months


def month_label(day: date) -> str:
    return day.strftime("%b %Y")


def current_month(today: date) -> tuple[date, date]:
    first = today.replace(day=1)
    return first, month_end(first)


def previous_month(today: date) -> tuple[date, date]:
    first = today.replace(day=1)
    last_of_previous = date.fromordinal(first.toordinal() - 1)
    return last_of_previous.replace(day=1), last_of_previous


def monthly_breakdown(incomes: Sequence[Any], expenses: Sequence[Any], start: date, end: date) -> list[MonthlyRow]:
    rows: list[MonthlyRow] = []
    for first in month_starts(start, end):
        last = month_end(first)
        income = total_in_base(in_range(incomes, first, last))
        expense = total_in_base(in_range(expenses, first, last))
        rows.append(
            MonthlyRow(
                month=month_label(first),
                month_start=first,
                income=income,
                expenses=expense,
                profit=income - expense,
            )
        )
    return rows


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    first = date(year, (quarter - 1) * 3 + 1, 1)
    last_month = date(year, quarter * 3, 1)
    return first, month_end(last_month)


def estimated_tax(net_income: Decimal) -> Decimal:
    return round_money(net_income * ESTIMATED_TAX_RATE)


def quarterly_breakdown(incomes: Sequence[Any], expenses: Sequence[Any], year: int) -> list[QuarterRow]:
    quarters: list[QuarterRow] = []
    for quarter in range(1, 5):
        first, last = quarter_bounds(year, quarter)
        income = total_in_base(in_range(incomes, first, last))
        expense = total_in_base(in_range(expenses, first, last))
        net = income - expense
        quarters.append(
            QuarterRow(
                quarter=f"Q{quarter} {year}",
                income=income,
                expenses=expense,
                net_income=net,
                estimated_tax=estimated_tax(net),
            )
        )
    return quarters


def tax_in_base(rows: Iterable[Any], base_currency: str) -> Decimal:
    """Tax on each row converted to the base currency.

    Rows without a stored tax amount fall back to base amount times tax rate.
    """

    total = ZERO
    for row in rows:
        if row.tax_amount:
            tax = to_decimal(row.tax_amount)
            if row.currency and row.currency != base_currency:
                tax = tax * to_decimal(row.exchange_rate or 1)
            total += round_money(tax)
        else:
            total += round_money(amount_in_base(row) * to_decimal(row.tax_rate) / 100)
    return round_money(total)


def tax_category_rows(rows: Iterable[Any], *, income: bool) -> list[TaxCategoryRow]:
    """Group rows by (category, tax category), largest amount first."""

    grouped: dict[tuple[str, str], list[Decimal]] = {}
    for row in rows:
        name = category_name(row)
        tax_category = map_to_tax_category(name, income=income)
        bucket = grouped.setdefault((name, tax_category), [ZERO, ZERO])
        bucket[0] += amount_in_base(row)
        bucket[1] += round_money(row.tax_amount)

    items = [
        TaxCategoryRow(
            category=name,
            tax_category=tax_category,
            amount=round_money(amount),
            tax_amount=round_money(tax),
            deductible=not income and is_deductible(tax_category),
        )
        for (name, tax_category), (amount, tax) in grouped.items()
    ]
    return sorted(items, key=lambda item: item.amount, reverse=True)
