"""Report schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class CategoryTotal(BaseModel):
    """Amount booked against one category and its share of the total."""

    name: str
    value: Decimal
    percentage: Decimal


class MonthlyRow(BaseModel):
    month: str
    month_start: dt.date
    income: Decimal
    expenses: Decimal
    profit: Decimal


class SummaryReport(BaseModel):
    """Headline KPIs for a date range."""

    start: dt.date
    end: dt.date
    currency: str
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    total_outstanding: Decimal
    collection_rate: Decimal
    avg_days_to_payment: Decimal
    income_categories: list[CategoryTotal]
    expense_categories: list[CategoryTotal]
    monthly: list[MonthlyRow]


class LineItem(BaseModel):
    date: dt.date
    description: str
    amount: Decimal


class CategoryLines(BaseModel):
    """Category total with the entries that make it up."""

    name: str
    total: Decimal
    items: list[LineItem]


class ProfitLossReport(BaseModel):
    start: dt.date
    end: dt.date
    currency: str
    income: list[CategoryLines]
    expenses: list[CategoryLines]
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal


class CashFlowMonth(BaseModel):
    month: str
    month_start: dt.date
    inflow: Decimal
    outflow: Decimal
    net: Decimal
    balance: Decimal


class CashFlowReport(BaseModel):
    """Monthly movement with a running balance carried from before the range."""

    start: dt.date
    end: dt.date
    currency: str
    opening_balance: Decimal
    months: list[CashFlowMonth]
    total_inflow: Decimal
    total_outflow: Decimal
    net_cash_flow: Decimal
    closing_balance: Decimal
    expected_income_30_days: Decimal
    overdue_amount: Decimal


class TaxCategoryRow(BaseModel):
    category: str
    tax_category: str
    amount: Decimal
    tax_amount: Decimal
    deductible: bool


class QuarterRow(BaseModel):
    quarter: str
    income: Decimal
    expenses: Decimal
    net_income: Decimal
    estimated_tax: Decimal


class TaxSummaryReport(BaseModel):
    """Calendar-year tax figures in the base currency."""

    year: int
    start: dt.date
    end: dt.date
    currency: str
    total_income: Decimal
    deductible_expenses: Decimal
    net_income: Decimal
    tax_collected: Decimal
    tax_paid: Decimal
    net_tax_liability: Decimal
    income_by_tax_category: list[TaxCategoryRow]
    expenses_by_tax_category: list[TaxCategoryRow]
    quarterly: list[QuarterRow]


class ClientProfitabilityRow(BaseModel):
    client_id: int
    client_name: str
    revenue: Decimal
    outstanding: Decimal
    invoice_count: int
    paid_invoice_count: int
    avg_payment_days: Optional[Decimal] = None


class ClientProfitabilityReport(BaseModel):
    start: dt.date
    end: dt.date
    currency: str
    clients: list[ClientProfitabilityRow]
