"""Data carried from the export service into the CSV templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from smartledger.database.models import Expense, Income
from smartledger.schemas.report import CategoryTotal


class ExportType(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    TAX = "tax"
    CLIENT = "client"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class ExportContext:
    """Values printed in the header block of every export."""

    export_type: ExportType
    currency: str
    generated_at: datetime
    start: Optional[date] = None
    end: Optional[date] = None
    client_name: Optional[str] = None


@dataclass
class DetailedExport:
    incomes: list[Income]
    expenses: list[Expense]
    total_income: Decimal
    total_expenses: Decimal

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expenses


@dataclass
class StatementInvoice:
    invoice_number: str
    date: date
    due_date: date
    total: Decimal
    status: str
    days_overdue: int = 0


@dataclass
class StatementPayment:
    date: date
    invoice_number: str
    amount: Decimal
    method: str = "Bank Transfer"


@dataclass
class StatementActivity:
    date: date
    description: str
    debit: Optional[Decimal]
    credit: Optional[Decimal]
    balance: Decimal


@dataclass
class ClientStatement:
    """Invoices, payments and running balance for one client."""

    client_name: str
    client_email: Optional[str]
    client_phone: Optional[str]
    total_revenue: Decimal
    outstanding_balance: Decimal
    invoices: list[StatementInvoice] = field(default_factory=list)
    payments: list[StatementPayment] = field(default_factory=list)
    activity: list[StatementActivity] = field(default_factory=list)


@dataclass
class MonthlyReview:
    """One month compared with the month before it."""

    month_name: str
    revenue: Decimal
    expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    revenue_change: Decimal
    expense_change: Decimal
    cash_balance: Decimal
    new_clients: int
    invoices_sent: int
    invoices_paid: int
    avg_invoice_value: Decimal
    collection_rate: Decimal
    top_income_sources: list[CategoryTotal]
    top_expense_categories: list[CategoryTotal]
    action_items: list[str]
    last_month_revenue: Decimal
    last_month_expenses: Decimal
    last_month_new_clients: int
    last_month_invoices_paid: int
