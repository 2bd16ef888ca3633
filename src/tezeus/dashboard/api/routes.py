from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.dependencies import get_db_session, require_workspace_member
from tezeus.shared.http.responses import ok_data
from tezeus.shared.logging import get_logger, time_block
from tezeus.shared.request_context import RequestContext
from tezeus.shared.utils.ids import parse_uuid

from ..infrastructure.repositories import DashboardRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def _utc_midnight() -> datetime:
    return datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)


@router.get("/stats")
async def dashboard_stats(
    since: Optional[datetime] = Query(default=None, description="Start of 'today' (client local midnight)"),
    ctx: RequestContext = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_db_session),
):
    if since is None:
        since = _utc_midnight()
    elif since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    else:
        since = since.astimezone(timezone.utc)
    with time_block("dashboard.stats", logger=logger, workspace_id=ctx.workspace_id):
        stats = await DashboardRepository(session).stats(parse_uuid(ctx.workspace_id, "x-workspace-id"), since)
    return ok_data(stats)
