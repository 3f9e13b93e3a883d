"""Report endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_report_service, get_session, require_feature
from smartledger.reports.service import ReportService
from smartledger.schemas.report import (
    CashFlowReport,
    ClientProfitabilityReport,
    ProfitLossReport,
    SummaryReport,
    TaxSummaryReport,
)
from smartledger.services.team_service import AccountContext

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary", response_model=SummaryReport)
async def summary_report(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> SummaryReport:
    """Headline KPIs; defaults to the current month."""

    return await service.summary(session, account.account_id, start, end)


@router.get(
    "/profit-loss",
    response_model=ProfitLossReport,
    dependencies=[Depends(require_feature("profit_loss_statements"))],
)
async def profit_loss_report(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> ProfitLossReport:
    return await service.profit_loss(session, account.account_id, start, end)


@router.get(
    "/cash-flow",
    response_model=CashFlowReport,
    dependencies=[Depends(require_feature("cash_flow_analysis"))],
)
async def cash_flow_report(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> CashFlowReport:
    """Monthly inflow and outflow, expected income and overdue exposure."""

    return await service.cash_flow(session, account.account_id, start, end)


@router.get(
    "/tax-summary",
    response_model=TaxSummaryReport,
    dependencies=[Depends(require_feature("tax_management"))],
)
async def tax_summary_report(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> TaxSummaryReport:
    return await service.tax_summary(session, account.account_id, year)


@router.get("/client-profitability", response_model=ClientProfitabilityReport)
async def client_profitability_report(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> ClientProfitabilityReport:
    return await service.client_profitability(session, account.account_id, start, end)
