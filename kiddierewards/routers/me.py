"""Child self-service router.

A signed-in child can see their own balance and history, nothing else.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.dependencies import require_child
from kiddierewards.database import get_db
from kiddierewards.models.member import Member
from kiddierewards.schemas.points import (
    ChildPointsResponse,
    PointEntryResponse,
    PointsTotalsResponse,
)
from kiddierewards.services import points_service

router = APIRouter(prefix="/me", tags=["Me"])


@router.get("/points", response_model=ChildPointsResponse)
async def my_points(
    db: Annotated[AsyncSession, Depends(get_db)],
    child: Member = Depends(require_child),
):
    """The current child's totals and active history, newest first."""
    totals = await points_service.get_totals(db, child.id)
    history = await points_service.get_history(db, child.id)
    return ChildPointsResponse(
        child_id=child.id,
        display_name=child.display_name,
        avatar_key=child.avatar_key,
        totals=PointsTotalsResponse.model_validate(totals),
        history=[PointEntryResponse.model_validate(e) for e in history],
    )
