from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.dependencies import FamilyContext, require_parent
from kiddierewards.database import get_db
from kiddierewards.schemas.dashboard import ParentDashboardResponse
from kiddierewards.services.dashboard_service import build_parent_dashboard

router = APIRouter(prefix="/families/{family_id}/dashboard", tags=["Dashboard"])


@router.get("/", response_model=ParentDashboardResponse)
async def parent_dashboard(
    page: int = Query(1),
    child_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    context: FamilyContext = Depends(require_parent),
) -> ParentDashboardResponse:
    """Children totals, family stats and one page of recent history.

    Out-of-range pages are clamped rather than rejected.
    """
    data = await build_parent_dashboard(
        db, context.family_id, page=page, child_id=child_id,
    )
    return ParentDashboardResponse(**data)
