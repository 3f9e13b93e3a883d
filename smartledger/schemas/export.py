"""Export history schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from smartledger.schemas.common import ORMBaseSchema


class ExportRecordRead(ORMBaseSchema):
    id: int
    export_type: str
    options: dict[str, Any]
    created_at: datetime
