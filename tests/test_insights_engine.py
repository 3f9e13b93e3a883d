from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

from smartledger.insights.engine import MAX_INSIGHTS, CategorySpend, InsightData, InsightsEngine

TODAY = date(2024, 6, 20)


def _invoice(status: str, day: date, total: str = "600") -> SimpleNamespace:
    return SimpleNamespace(
        status=status,
        total=Decimal(total),
        date=day,
        due_date=day + timedelta(days=30),
        paid_date=None,
        client_id=None,
    )


def test_revenue_growth_and_decline() -> None:
    engine = InsightsEngine(today=TODAY)

    growth = engine.analyze_revenue_trends(Decimal("1500"), Decimal("1000"), Decimal("1200"), months_of_data=2)
    decline = engine.analyze_revenue_trends(Decimal("500"), Decimal("1000"), Decimal("800"), months_of_data=2)

    assert [(i.id, i.priority) for i in growth] == [("revenue-growth", 8)]
    assert "50%" in growth[0].message
    assert "$1,000 -> $1,500" in growth[0].message
    assert [(i.id, i.priority) for i in decline] == [("revenue-decline", 9)]
    assert decline[0].action is not None


def test_first_month_without_revenue() -> None:
    insights = InsightsEngine(today=TODAY).analyze_revenue_trends(Decimal("0"), Decimal("0"), Decimal("0"))

    assert [i.id for i in insights] == ["no-revenue-yet"]


def test_low_runway_is_top_priority() -> None:
    engine = InsightsEngine(today=TODAY)

    low = engine.analyze_cash_flow(Decimal("1000"), Decimal("800"), Decimal("0"), Decimal("0"))
    healthy = engine.analyze_cash_flow(Decimal("5000"), Decimal("1000"), Decimal("0"), Decimal("0"))

    assert low[0].id == "low-cash"
    assert low[0].priority == 10
    assert low[0].title == "Cash getting low"
    assert "1.3 months" in low[0].message
    assert low[0].action.label == "Send Invoices"
    assert [i.id for i in healthy] == ["healthy-cash"]


def test_untracked_spending_has_no_runway_insight() -> None:
    insights = InsightsEngine(today=TODAY).analyze_cash_flow(Decimal("10"), Decimal("50"), Decimal("0"), Decimal("0"))

    assert insights == []


def test_empty_account_gets_onboarding() -> None:
    insights = InsightsEngine(today=TODAY).all_insights(InsightData())

    assert [i.id for i in insights] == ["get-started", "no-revenue-yet", "no-expenses"]


def test_results_are_capped_and_sorted() -> None:
    invoices = [_invoice("overdue", date(2024, 1, 1) + timedelta(days=7 * n)) for n in range(5)]
    invoices += [_invoice("draft", date(2024, 6, 1)) for _ in range(5)]
    data = InsightData(
        revenue_current=Decimal("2000"),
        revenue_previous=Decimal("1000"),
        revenue_average=Decimal("1200"),
        expenses_current=Decimal("1900"),
        expenses_previous=Decimal("1000"),
        expenses_by_category=[CategorySpend(name="Rent", amount=Decimal("1000"))],
        balance=Decimal("500"),
        monthly_expenses=Decimal("1000"),
        expected_income=Decimal("1000"),
        overdue_amount=Decimal("3000"),
        invoices=invoices,
        categorized_expenses=Decimal("1000"),
        total_expenses=Decimal("5000"),
        quarterly_tax_estimate=Decimal("500"),
    )

    insights = InsightsEngine(today=TODAY).all_insights(data)
    ids = [i.id for i in insights]
    priorities = [i.priority for i in insights]

    assert len(insights) == MAX_INSIGHTS
    assert ids[0] == "low-cash"
    assert priorities == sorted(priorities, reverse=True)
    assert {"multiple-overdue", "high-unpaid-ratio", "quarterly-tax", "poor-categorization"} <= set(ids)
    assert "expected-income" not in ids
    assert "dominant-category" not in ids


def test_client_concentration() -> None:
    big = SimpleNamespace(id=1, name="Acme")
    small = SimpleNamespace(id=2, name="Beta")
    invoices = [
        SimpleNamespace(client_id=1, status="paid", total=Decimal("1500"), date=date(2024, 6, 1), paid_date=date(2024, 6, 5)),
        SimpleNamespace(client_id=2, status="paid", total=Decimal("300"), date=date(2024, 6, 2), paid_date=date(2024, 6, 4)),
    ]

    insights = InsightsEngine(today=TODAY).analyze_clients([big, small], invoices)

    assert [i.id for i in insights] == ["client-concentration"]
    assert insights[0].message.startswith("Acme represents 83%")
