"""Heuristic insights over aggregate account totals.

Each analyzer looks at one area (revenue, expenses, cash, invoices, tax,
clients) and returns zero or more prioritized ``Insight`` objects. The engine
never touches the database: the caller gathers the figures into
``InsightData`` first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from smartledger.database.models import InvoiceStatus
from smartledger.reports.calculations import quarter_bounds, quarter_of
from smartledger.schemas.insight import Insight, InsightAction
from smartledger.utils.formatters import format_currency
from smartledger.utils.money import ZERO, to_decimal

MAX_INSIGHTS = 10


@dataclass
class CategorySpend:
    name: str
    amount: Decimal


@dataclass
class InsightData:
    """Totals the engine reasons about, all in the base currency."""

    revenue_current: Decimal = ZERO
    revenue_previous: Decimal = ZERO
    revenue_average: Decimal = ZERO
    expenses_current: Decimal = ZERO
    expenses_previous: Decimal = ZERO
    expenses_by_category: list[CategorySpend] = field(default_factory=list)
    balance: Decimal = ZERO
    monthly_expenses: Decimal = ZERO
    expected_income: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    invoices: Sequence[Any] = ()
    clients: Sequence[Any] = ()
    categorized_expenses: Decimal = ZERO
    total_expenses: Decimal = ZERO
    quarterly_tax_estimate: Decimal = ZERO


def _whole(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _one_place(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class InsightsEngine:
    """Rule set that turns account totals into prioritized suggestions."""

    def __init__(self, currency: str = "USD", today: Optional[date] = None) -> None:
        self.currency = currency
        self.today = today or date.today()

    def money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency)

    def analyze_revenue_trends(
        self,
        current: Decimal,
        previous: Decimal,
        average: Decimal,
        months_of_data: int = 1,
    ) -> list[Insight]:
        insights: list[Insight] = []

        if months_of_data <= 1 or previous == 0:
            if current > 0:
                insights.append(
                    Insight(
                        id="first-revenue",
                        type="success",
                        category="revenue",
                        title="Great start!",
                        message=(
                            f"You've generated {self.money(current)} in revenue. "
                            "Track your growth by adding more invoices and income."
                        ),
                        action=InsightAction(label="Create Invoice", link="/invoices/new"),
                        priority=7,
                    )
                )
            else:
                insights.append(
                    Insight(
                        id="no-revenue-yet",
                        type="info",
                        category="revenue",
                        title="Start earning revenue",
                        message="Create your first invoice to start tracking income and unlock revenue insights.",
                        action=InsightAction(label="Create First Invoice", link="/invoices/new"),
                        priority=8,
                    )
                )
            return insights

        growth = (current - previous) / previous * 100 if previous > 0 else ZERO

        if 20 < growth < 200:
            insights.append(
                Insight(
                    id="revenue-growth",
                    type="success",
                    category="revenue",
                    title="Revenue is growing!",
                    message=(
                        f"Your revenue increased {_whole(growth)}% from last month "
                        f"({self.money(previous)} -> {self.money(current)}). Keep up the momentum!"
                    ),
                    priority=8,
                )
            )

        if growth < -15:
            insights.append(
                Insight(
                    id="revenue-decline",
                    type="warning",
                    category="revenue",
                    title="Revenue decreased this month",
                    message=(
                        f"Revenue dropped {_whole(abs(growth))}% from {self.money(previous)} to "
                        f"{self.money(current)}. Time to follow up on pending invoices or reach out to past clients."
                    ),
                    action=InsightAction(label="View Unpaid Invoices", link="/invoices?status=unpaid"),
                    priority=9,
                )
            )

        if months_of_data >= 3 and abs(growth) < 10:
            insights.append(
                Insight(
                    id="stable-revenue",
                    type="info",
                    category="revenue",
                    title="Steady revenue flow",
                    message=(
                        f"Your revenue is consistent at around {self.money(average)}/month. "
                        "Consider new growth strategies to increase income."
                    ),
                    priority=5,
                )
            )

        if months_of_data >= 3 and average > 0 and current > average * Decimal("1.3"):
            above = (current / average - 1) * 100
            insights.append(
                Insight(
                    id="best-month",
                    type="success",
                    category="revenue",
                    title="Best month yet!",
                    message=(
                        f"Revenue is {_whole(above)}% above your {months_of_data}-month average. "
                        f"You earned {self.money(current - average)} more than usual."
                    ),
                    priority=7,
                )
            )

        return insights

    def analyze_expenses(
        self,
        current: Decimal,
        previous: Decimal,
        revenue: Decimal,
        top_categories: Sequence[CategorySpend],
    ) -> list[Insight]:
        if current == 0 and previous == 0:
            return [
                Insight(
                    id="no-expenses",
                    type="info",
                    category="spending",
                    title="Track your expenses",
                    message="Start adding expenses to see spending insights and identify savings opportunities.",
                    action=InsightAction(label="Add First Expense", link="/expenses/new"),
                    priority=6,
                )
            ]

        insights: list[Insight] = []
        growth = (current - previous) / previous * 100 if previous > 0 else ZERO
        ratio = current / revenue * 100 if revenue > 0 else ZERO

        if previous > 0 and growth > 30:
            biggest = top_categories[0].name if top_categories else "uncategorized items"
            insights.append(
                Insight(
                    id="expense-spike",
                    type="warning",
                    category="spending",
                    title="Expenses increased significantly",
                    message=(
                        f"You spent {self.money(current - previous)} more than last month "
                        f"({_whole(growth)}% increase). Biggest spending was on {biggest}."
                    ),
                    action=InsightAction(label="Review Expenses", link="/expenses"),
                    priority=8,
                )
            )

        if previous > 0 and growth < -10:
            insights.append(
                Insight(
                    id="expense-reduction",
                    type="success",
                    category="spending",
                    title="Great job reducing expenses!",
                    message=(
                        f"You saved {self.money(previous - current)} compared to last month. "
                        "Keep monitoring to maintain these savings."
                    ),
                    priority=6,
                )
            )

        if revenue > 100 and ratio > 80:
            insights.append(
                Insight(
                    id="high-expense-ratio",
                    type="warning",
                    category="spending",
                    title="Low profit margins",
                    message=(
                        f"You're spending {_whole(ratio)}% of revenue, leaving only {_whole(100 - ratio)}% profit. "
                        "Look for ways to reduce costs or increase prices."
                    ),
                    action=InsightAction(label="Analyze Expenses", link="/expenses"),
                    priority=9,
                )
            )

        if top_categories and current > 0 and top_categories[0].amount > current * Decimal("0.4"):
            top = top_categories[0]
            insights.append(
                Insight(
                    id="dominant-category",
                    type="info",
                    category="spending",
                    title=f"High spending on {top.name}",
                    message=(
                        f"{top.name} represents {_whole(top.amount / current * 100)}% of expenses "
                        f"({self.money(top.amount)}). Review if this aligns with your budget."
                    ),
                    priority=6,
                )
            )

        return insights

    def analyze_cash_flow(
        self,
        balance: Decimal,
        monthly_expenses: Decimal,
        expected_income: Decimal,
        overdue_amount: Decimal,
    ) -> list[Insight]:
        insights: list[Insight] = []
        tracked = monthly_expenses > 100
        runway = balance / monthly_expenses if tracked else Decimal("999")

        if tracked and runway < 2:
            critical = runway < 1
            insights.append(
                Insight(
                    id="low-cash",
                    type="warning",
                    category="cash_flow",
                    title="Cash level needs attention" if critical else "Cash getting low",
                    message=(
                        "Based on your spending, you have less than 1 month of expenses covered. "
                        f"Collect {self.money(overdue_amount)} in overdue payments."
                        if critical
                        else f"You have {_one_place(runway)} months of runway. Time to collect outstanding invoices."
                    ),
                    action=(
                        InsightAction(label="Collect Overdue Payments", link="/invoices?status=overdue")
                        if overdue_amount > 0
                        else InsightAction(label="Send Invoices", link="/invoices/new")
                    ),
                    priority=10,
                )
            )
        elif tracked and 3 <= runway <= 12:
            insights.append(
                Insight(
                    id="healthy-cash",
                    type="success",
                    category="cash_flow",
                    title="Good cash position",
                    message=(
                        f"You have {_whole(runway)} months of expenses covered. "
                        "This is a healthy buffer for most businesses."
                    ),
                    priority=5,
                )
            )
        elif tracked and runway > 12 and balance > 50000:
            insights.append(
                Insight(
                    id="excess-cash",
                    type="info",
                    category="cash_flow",
                    title="Consider investing excess cash",
                    message=(
                        f"With {_whole(runway)} months of runway, you might have excess cash. "
                        "Consider investing in growth or earning interest on reserves."
                    ),
                    priority=4,
                )
            )

        if overdue_amount > 1000:
            share = overdue_amount / balance * 100 if balance > 0 else Decimal("100")
            insights.append(
                Insight(
                    id="overdue-collections",
                    type="action",
                    category="collections",
                    title=f"Collect {self.money(overdue_amount)} in overdue payments",
                    message=(
                        f"Overdue invoices represent {_whole(share)}% of your current balance. "
                        "Following up could significantly improve cash flow."
                        if share > 50
                        else f"You have overdue invoices worth {self.money(overdue_amount)}. "
                        "A quick follow-up could boost your cash position."
                    ),
                    action=InsightAction(label="View Overdue Invoices", link="/invoices?status=overdue"),
                    priority=9,
                )
            )

        if expected_income > 0 and expected_income > balance * Decimal("0.3"):
            insights.append(
                Insight(
                    id="expected-income",
                    type="info",
                    category="cash_flow",
                    title="Strong incoming cash flow",
                    message=(
                        f"You have {self.money(expected_income)} expected in the next 30 days. "
                        "Stay on top of collections to maintain cash flow."
                    ),
                    priority=5,
                )
            )

        return insights

    def analyze_invoices(self, invoices: Sequence[Any], avg_payment_days: Decimal) -> list[Insight]:
        if not invoices:
            return [
                Insight(
                    id="no-invoices",
                    type="info",
                    category="collections",
                    title="Create your first invoice",
                    message="Start sending invoices to track income and manage client payments effectively.",
                    action=InsightAction(label="Create Invoice", link="/invoices/new"),
                    priority=8,
                )
            ]

        insights: list[Insight] = []
        unpaid = [inv for inv in invoices if inv.status in (InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value)]
        overdue = [inv for inv in invoices if inv.status == InvoiceStatus.OVERDUE.value]
        paid = [inv for inv in invoices if inv.status == InvoiceStatus.PAID.value]

        if len(paid) >= 5 and avg_payment_days > 0:
            if avg_payment_days <= 15:
                insights.append(
                    Insight(
                        id="fast-payments",
                        type="success",
                        category="collections",
                        title="Clients pay quickly!",
                        message=(
                            f"Average payment time is just {_whole(avg_payment_days)} days. "
                            "Your payment process is working well."
                        ),
                        priority=5,
                    )
                )
            elif avg_payment_days > 45:
                insights.append(
                    Insight(
                        id="slow-payments",
                        type="warning",
                        category="collections",
                        title="Payments taking too long",
                        message=(
                            f"Clients take {_whole(avg_payment_days)} days to pay on average. "
                            "Consider requiring deposits or offering early payment discounts."
                        ),
                        action=InsightAction(label="Update Payment Terms", link="/settings/invoice"),
                        priority=7,
                    )
                )

        if len(overdue) >= 3:
            total = sum((to_decimal(inv.total) for inv in overdue), ZERO)
            oldest = max((self.today - inv.due_date).days for inv in overdue)
            insights.append(
                Insight(
                    id="multiple-overdue",
                    type="warning",
                    category="collections",
                    title=f"{len(overdue)} overdue invoices need attention",
                    message=(
                        f"Total {self.money(total)} overdue. Oldest is {oldest} days past due. "
                        "Set aside 30 minutes for follow-ups today."
                    ),
                    action=InsightAction(label="Start Collections", link="/invoices?status=overdue"),
                    priority=9,
                )
            )

        unpaid_ratio = Decimal(len(unpaid)) / len(invoices) * 100
        if len(invoices) >= 10 and unpaid_ratio > 40:
            insights.append(
                Insight(
                    id="high-unpaid-ratio",
                    type="warning",
                    category="collections",
                    title="Too many unpaid invoices",
                    message=(
                        f"{_whole(unpaid_ratio)}% of invoices are unpaid. "
                        "This could indicate collection issues or unclear payment terms."
                    ),
                    action=InsightAction(label="Review Unpaid", link="/invoices?status=unpaid"),
                    priority=8,
                )
            )

        return insights

    def analyze_tax_readiness(
        self,
        categorized: Decimal,
        total: Decimal,
        estimated_tax: Decimal,
    ) -> list[Insight]:
        insights: list[Insight] = []
        rate = categorized / total * 100 if total > 0 else Decimal("100")

        if total > 1000 and rate < 80:
            insights.append(
                Insight(
                    id="poor-categorization",
                    type="warning",
                    category="strategy",
                    title="Categorize expenses for taxes",
                    message=(
                        f"{self.money(total - categorized)} in expenses are uncategorized ({_whole(100 - rate)}%). "
                        "Proper categories make tax filing much easier."
                    ),
                    action=InsightAction(label="Categorize Now", link="/expenses?uncategorized=true"),
                    priority=7,
                )
            )

        quarter = quarter_of(self.today)
        _, quarter_end = quarter_bounds(self.today.year, quarter)
        days_left = (quarter_end - self.today).days
        if 0 < days_left <= 15 and estimated_tax > 100:
            insights.append(
                Insight(
                    id="quarterly-tax",
                    type="info",
                    category="strategy",
                    title=f"Q{quarter} taxes due soon",
                    message=(
                        f"Estimated {self.money(estimated_tax)} due in {days_left} days. "
                        "Start preparing your quarterly tax payment."
                    ),
                    action=InsightAction(label="View Tax Report", link="/reports/tax"),
                    priority=8,
                )
            )

        if total > 1000 and rate >= 95:
            insights.append(
                Insight(
                    id="tax-ready",
                    type="success",
                    category="strategy",
                    title="Tax-ready records!",
                    message="Your expenses are well-categorized. Tax preparation will be much smoother.",
                    priority=4,
                )
            )

        return insights

    def analyze_clients(self, clients: Sequence[Any], invoices: Sequence[Any]) -> list[Insight]:
        if not clients:
            return [
                Insight(
                    id="no-clients",
                    type="info",
                    category="clients",
                    title="Add your first client",
                    message="Adding clients helps you track who owes you money and manage relationships better.",
                    action=InsightAction(label="Add Client", link="/clients/new"),
                    priority=6,
                )
            ]

        insights: list[Insight] = []
        metrics: list[tuple[Any, Decimal, int, Decimal]] = []
        for client in clients:
            client_invoices = [inv for inv in invoices if inv.client_id == client.id]
            if not client_invoices:
                continue
            paid = [inv for inv in client_invoices if inv.status == InvoiceStatus.PAID.value]
            revenue = sum((to_decimal(inv.total) for inv in paid), ZERO)
            days = [(inv.paid_date - inv.date).days for inv in paid if inv.paid_date is not None]
            avg_days = Decimal(sum(days)) / len(days) if days else ZERO
            metrics.append((client, revenue, len(client_invoices), avg_days))

        total_revenue = sum((revenue for _, revenue, _, _ in metrics), ZERO)
        if total_revenue > 1000:
            client, revenue, _, _ = max(metrics, key=lambda item: item[1])
            share = revenue / total_revenue * 100
            if share > 50:
                insights.append(
                    Insight(
                        id="client-concentration",
                        type="warning",
                        category="clients",
                        title="High client dependency",
                        message=(
                            f"{client.name} represents {_whole(share)}% of revenue ({self.money(revenue)}). "
                            "Consider diversifying your client base."
                        ),
                        action=InsightAction(label="Find New Clients", link="/clients/new"),
                        priority=7,
                    )
                )

        slow = [item for item in metrics if item[3] > 45 and item[2] >= 2]
        if slow:
            client, _, _, avg_days = max(slow, key=lambda item: item[3])
            insights.append(
                Insight(
                    id="slow-paying-client",
                    type="info",
                    category="clients",
                    title="Slow-paying client pattern",
                    message=(
                        f"{client.name} takes {_whole(avg_days)} days to pay on average. "
                        "Consider requiring deposits or shorter payment terms."
                    ),
                    priority=6,
                )
            )

        inactive = 0
        for client in clients:
            dates = [inv.date for inv in invoices if inv.client_id == client.id]
            if not dates or (self.today - max(dates)).days > 90:
                inactive += 1
        if inactive >= 3 and len(clients) > 5:
            insights.append(
                Insight(
                    id="inactive-clients",
                    type="info",
                    category="clients",
                    title=f"{inactive} inactive clients",
                    message=(
                        "Several clients haven't been invoiced in 90+ days. "
                        "Consider reaching out with new offers or services."
                    ),
                    action=InsightAction(label="View Clients", link="/clients"),
                    priority=5,
                )
            )

        return insights

    def months_of_data(self, invoices: Sequence[Any]) -> int:
        """Whole 30-day periods since the oldest invoice, at least 1."""

        if not invoices:
            return 1
        oldest = min(inv.date for inv in invoices)
        return max(1, math.ceil((self.today - oldest).days / 30))

    def all_insights(self, data: InsightData) -> list[Insight]:
        """Run every analyzer and return the top insights by priority."""

        insights: list[Insight] = []
        insights += self.analyze_revenue_trends(
            data.revenue_current,
            data.revenue_previous,
            data.revenue_average,
            self.months_of_data(data.invoices),
        )
        insights += self.analyze_expenses(
            data.expenses_current,
            data.expenses_previous,
            data.revenue_current,
            data.expenses_by_category,
        )
        insights += self.analyze_cash_flow(
            data.balance,
            data.monthly_expenses,
            data.expected_income,
            data.overdue_amount,
        )

        if data.invoices:
            days = [
                (inv.paid_date - inv.date).days
                for inv in data.invoices
                if inv.status == InvoiceStatus.PAID.value and inv.paid_date is not None
            ]
            avg_days = Decimal(sum(days)) / len(days) if days else ZERO
            insights += self.analyze_invoices(data.invoices, avg_days)

        if data.total_expenses > 100:
            insights += self.analyze_tax_readiness(
                data.categorized_expenses,
                data.total_expenses,
                data.quarterly_tax_estimate,
            )

        if data.clients:
            insights += self.analyze_clients(data.clients, data.invoices)

        if len(insights) < 3:
            if not data.invoices:
                insights.append(
                    Insight(
                        id="get-started",
                        type="info",
                        category="strategy",
                        title="Welcome to SmartLedger!",
                        message=(
                            "Start by creating your first invoice to begin tracking income "
                            "and building financial insights."
                        ),
                        action=InsightAction(label="Create First Invoice", link="/invoices/new"),
                        priority=10,
                    )
                )
            elif not data.clients:
                insights.append(
                    Insight(
                        id="add-clients",
                        type="info",
                        category="clients",
                        title="Add client details",
                        message="Adding clients helps track payments and build better relationships.",
                        action=InsightAction(label="Add Client", link="/clients/new"),
                        priority=8,
                    )
                )

        # sorted() is stable, so equal priorities keep analyzer order.
        return sorted(insights, key=lambda insight: insight.priority, reverse=True)[:MAX_INSIGHTS]
