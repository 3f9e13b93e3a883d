"""CSV export endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from smartledger.api.deps import get_account, get_export_service, get_session, get_subscription_state
from smartledger.exports.models import ExportType
from smartledger.exports.service import ExportFile, ExportService
from smartledger.schemas.export import ExportRecordRead
from smartledger.services.team_service import AccountContext
from smartledger.subscriptions.service import SubscriptionState

router = APIRouter(prefix="/exports", tags=["exports"])


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/history", response_model=list[ExportRecordRead])
async def export_history(
    account: AccountContext = Depends(get_account),
    session: AsyncSession = Depends(get_session),
    service: ExportService = Depends(get_export_service),
) -> list[ExportRecordRead]:
    """Most recent exports of the account, newest first."""

    rows = await service.history(session, account.account_id)
    return [ExportRecordRead.model_validate(row) for row in rows]


@router.get("/all")
async def export_all(
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ExportService = Depends(get_export_service),
) -> Response:
    """Zip archive with the summary, detailed and tax exports."""

    return _download(await service.export_all(session, account.account_id, state))


@router.get("/{export_type}")
async def export_csv(
    export_type: ExportType,
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    client_id: Optional[int] = Query(default=None),
    account: AccountContext = Depends(get_account),
    state: SubscriptionState = Depends(get_subscription_state),
    session: AsyncSession = Depends(get_session),
    service: ExportService = Depends(get_export_service),
) -> Response:
    """Download one export as CSV."""

    export = await service.generate(
        session,
        account.account_id,
        state,
        export_type,
        start=start,
        end=end,
        client_id=client_id,
    )
    return _download(export)
