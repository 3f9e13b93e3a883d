from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from smartledger.database.models import InvoiceStatus
from smartledger.exports import templates
from smartledger.exports.models import ExportContext, ExportType
from smartledger.exports.service import action_items, build_client_statement, export_filename, required_feature
from smartledger.schemas.report import CategoryTotal, MonthlyRow, SummaryReport

GENERATED = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def test_header_block() -> None:
    context = ExportContext(
        ExportType.CLIENT, "USD", GENERATED, date(2024, 1, 1), date(2024, 1, 31), client_name="Acme, Inc."
    )

    rows = _rows(templates._render(templates.header_rows("Client Statement - Acme, Inc.", context)))

    assert rows == [
        ["Client Statement - Acme, Inc."],
        ["Generated: 2024-02-01 09:30"],
        ["Period: 2024-01-01 to 2024-01-31"],
        ["Currency: USD"],
        ["Client: Acme, Inc."],
        ["Report Type: Client"],
        [],
        ["---"],
    ]


def test_header_without_period() -> None:
    context = ExportContext(ExportType.TAX, "EUR", GENERATED)

    rows = _rows(templates._render(templates.header_rows("Tax Summary Report", context)))

    assert ["Currency: EUR"] in rows
    assert not any(row and row[0].startswith("Period:") for row in rows)


def test_summary_layout() -> None:
    report = SummaryReport(
        start=date(2024, 1, 1),
        end=date(2024, 1, 31),
        currency="USD",
        total_revenue=Decimal("1110.00"),
        total_expenses=Decimal("250.00"),
        net_profit=Decimal("860.00"),
        profit_margin=Decimal("77.48"),
        total_outstanding=Decimal("300.00"),
        collection_rate=Decimal("33.33"),
        avg_days_to_payment=Decimal("10.0"),
        income_categories=[CategoryTotal(name="Consulting", value=Decimal("1110.00"), percentage=Decimal("100"))],
        expense_categories=[],
        monthly=[
            MonthlyRow(
                month="Jan 2024",
                month_start=date(2024, 1, 1),
                income=Decimal("1110.00"),
                expenses=Decimal("250.00"),
                profit=Decimal("860.00"),
            )
        ],
    )
    context = ExportContext(ExportType.SUMMARY, "USD", GENERATED, report.start, report.end)

    rows = _rows(templates.render_summary(report, context))

    assert ["Total Revenue (USD)", "1110.00"] in rows
    assert ["Profit Margin", "77.48%"] in rows
    assert ["Average Days to Payment", "10"] in rows
    assert ["Consulting", "1110.00", "100.0%"] in rows
    assert ["Total Expenses", "250.00", "100%"] in rows
    assert rows[-1] == ["Jan 2024", "1110.00", "250.00", "860.00"]


def test_filename_and_required_feature() -> None:
    assert export_filename("summary", date(2024, 2, 1), "USD") == "summary-export-2024-02-01-USD.csv"
    assert required_feature(ExportType.SUMMARY) == "basic_reports"
    assert required_feature(ExportType.DETAILED) == "advanced_exports"
    assert required_feature(ExportType.MONTHLY) == "advanced_exports"


def test_action_items() -> None:
    overdue = SimpleNamespace(status=InvoiceStatus.OVERDUE.value)

    assert action_items(Decimal("100"), Decimal("50"), []) == ["All metrics look healthy - keep up the good work!"]
    items = action_items(Decimal("10"), Decimal("50"), [overdue])
    assert items[0].startswith("Revenue is below expenses")
    assert items[1] == "1 invoices are overdue - prioritize collection"


def test_client_statement_running_balance() -> None:
    client = SimpleNamespace(name="Acme", email=None, phone=None)
    paid = SimpleNamespace(
        id=1, invoice_number="INV-0001", date=date(2024, 1, 1), due_date=date(2024, 1, 31),
        total=Decimal("500"), status=InvoiceStatus.PAID.value,
    )
    late = SimpleNamespace(
        id=2, invoice_number="INV-0002", date=date(2024, 1, 5), due_date=date(2024, 1, 20),
        total=Decimal("200"), status=InvoiceStatus.OVERDUE.value,
    )
    draft = SimpleNamespace(
        id=3, invoice_number="INV-0003", date=date(2024, 1, 6), due_date=date(2024, 2, 6),
        total=Decimal("80"), status=InvoiceStatus.DRAFT.value,
    )
    payment = SimpleNamespace(date=date(2024, 1, 10), base_amount=Decimal("500"), amount=Decimal("500"), reference_number="1")
    direct = SimpleNamespace(date=date(2024, 1, 12), base_amount=Decimal("40"), amount=Decimal("40"), reference_number=None)

    statement = build_client_statement(client, [paid, late, draft], [payment, direct], today=date(2024, 2, 1))

    assert statement.total_revenue == Decimal("540.00")
    assert statement.outstanding_balance == Decimal("280.00")
    assert [p.invoice_number for p in statement.payments] == ["INV-0001", "Direct Payment"]
    assert [inv.days_overdue for inv in statement.invoices] == [0, 12, 0]
    assert [a.balance for a in statement.activity] == [
        Decimal("500.00"),
        Decimal("700.00"),
        Decimal("200.00"),
        Decimal("160.00"),
    ]
