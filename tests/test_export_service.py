from __future__ import annotations

import io
import zipfile
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartledger.api.errors import NotFoundError, PlanLimitError, ValidationError
from smartledger.database.models import Client, PlanType
from smartledger.exports.models import ExportType
from smartledger.exports.service import ExportService
from smartledger.reports.service import ReportService
from smartledger.schemas.transaction import ExpenseCreate, IncomeCreate
from smartledger.services.transaction_service import ExpenseService, IncomeService

ACCOUNT = "owner-1"
TODAY = date(2024, 3, 15)


@pytest.mark.asyncio
async def test_detailed_export_lists_transactions(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    state = make_state(PlanType.PLUS)
    service = ExportService(ReportService("USD"))

    async with session_factory() as session:
        await IncomeService("USD").create_income(
            session,
            ACCOUNT,
            state,
            IncomeCreate(amount=Decimal("120"), description="Design, phase 1", date=date(2024, 3, 2)),
        )
        await ExpenseService("USD").create_expense(
            session,
            ACCOUNT,
            state,
            ExpenseCreate(amount=Decimal("20"), description="Hosting", date=date(2024, 3, 3), vendor="Cloudy"),
        )
        export = await service.generate(
            session, ACCOUNT, state, ExportType.DETAILED, start=date(2024, 3, 1), end=date(2024, 3, 31), today=TODAY
        )

    assert export.filename == "detailed-export-2024-03-15-USD.csv"
    assert export.media_type == "text/csv"
    assert '"Design, phase 1"' in export.content
    assert "Cloudy" in export.content
    assert "Net Profit/Loss,,,,,,,100.00" in export.content


@pytest.mark.asyncio
async def test_advanced_exports_need_the_feature(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    state = make_state(PlanType.SIMPLE_START)
    service = ExportService(ReportService("USD"))

    async with session_factory() as session:
        summary = await service.generate(session, ACCOUNT, state, ExportType.SUMMARY, today=TODAY)
        with pytest.raises(PlanLimitError):
            await service.generate(session, ACCOUNT, state, ExportType.TAX, today=TODAY)
        with pytest.raises(PlanLimitError):
            await service.export_all(session, ACCOUNT, state, today=TODAY)

    assert summary.content.startswith("Financial Summary Report\n")


@pytest.mark.asyncio
async def test_client_export_requires_known_client(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    state = make_state(PlanType.ESSENTIALS)
    service = ExportService(ReportService("USD"))

    async with session_factory() as session:
        client = Client(user_id=ACCOUNT, name="Acme")
        foreign = Client(user_id="other", name="Foreign")
        session.add_all([client, foreign])
        await session.commit()

        with pytest.raises(ValidationError):
            await service.generate(session, ACCOUNT, state, ExportType.CLIENT, today=TODAY)
        with pytest.raises(NotFoundError):
            await service.generate(session, ACCOUNT, state, ExportType.CLIENT, client_id=foreign.id, today=TODAY)

        export = await service.generate(session, ACCOUNT, state, ExportType.CLIENT, client_id=client.id, today=TODAY)

    assert "Client: Acme" in export.content
    assert "Thank you for your business!" in export.content


@pytest.mark.asyncio
async def test_range_exports_reject_start_after_end(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    state = make_state(PlanType.PLUS)
    service = ExportService(ReportService("USD"))

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await service.generate(session, ACCOUNT, state, ExportType.SUMMARY, start=date(2099, 3, 1), today=TODAY)
        with pytest.raises(ValidationError):
            await service.generate(session, ACCOUNT, state, ExportType.DETAILED, end=date(2024, 2, 1), today=TODAY)
        history = await service.history(session, ACCOUNT)

    assert history == []


@pytest.mark.asyncio
async def test_history_keeps_only_the_latest_records(
    session_factory: async_sessionmaker[AsyncSession], make_state
) -> None:
    state = make_state(PlanType.PLUS)
    service = ExportService(ReportService("USD"), history_limit=3)

    async with session_factory() as session:
        for export_type in (ExportType.SUMMARY, ExportType.DETAILED, ExportType.TAX, ExportType.MONTHLY):
            await service.generate(session, ACCOUNT, state, export_type, today=TODAY)
        history = await service.history(session, ACCOUNT)
        other = await service.history(session, "someone-else")

    assert [record.export_type for record in history] == ["monthly", "tax", "detailed"]
    assert other == []


@pytest.mark.asyncio
async def test_export_all_builds_zip(session_factory: async_sessionmaker[AsyncSession], make_state) -> None:
    state = make_state(PlanType.ESSENTIALS)
    service = ExportService(ReportService("USD"))

    async with session_factory() as session:
        export = await service.export_all(session, ACCOUNT, state, today=TODAY)
        history = await service.history(session, ACCOUNT)

    assert export.filename == "all-export-2024-03-15-USD.zip"
    assert export.media_type == "application/zip"
    with zipfile.ZipFile(io.BytesIO(export.content)) as archive:
        assert sorted(archive.namelist()) == [
            "detailed-export-2024-03-15-USD.csv",
            "summary-export-2024-03-15-USD.csv",
            "tax-export-2024-03-15-USD.csv",
        ]
    assert [record.export_type for record in history] == ["all"]
