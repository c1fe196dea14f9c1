"""Points router.

Endpoints for recording, correcting and resetting children's points.
All of them require a PIN-verified parent.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.dependencies import FamilyContext, require_parent
from kiddierewards.database import get_db
from kiddierewards.models.member import Member, MemberRole
from kiddierewards.schemas.points import (
    ChildPointsResponse,
    PointEntryCreate,
    PointEntryResponse,
    PointEntryUpdate,
    PointSuggestionResponse,
    PointsTotalsResponse,
    ResetRequest,
)
from kiddierewards.services import points_service, suggestion_service
from kiddierewards.services.member_service import get_member

router = APIRouter(prefix="/families/{family_id}/points", tags=["Points"])


async def _get_child_or_404(
    db: AsyncSession, family_id: uuid.UUID, child_id: uuid.UUID,
) -> Member:
    child = await get_member(db, family_id, child_id, role=MemberRole.CHILD)
    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )
    return child


@router.post(
    "/",
    response_model=list[PointEntryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_points(
    body: PointEntryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Record the same entry for one or more children (all or nothing)."""
    return await points_service.add_entries(
        db,
        family_id=context.family_id,
        created_by_id=context.member_id,
        child_ids=body.child_ids,
        entry_type=body.type,
        points=body.points,
        reason=body.reason,
    )


@router.get("/suggestions", response_model=list[PointSuggestionResponse])
async def list_suggestions(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
    q: str | None = Query(default=None, max_length=500),
    limit: int = Query(default=10, ge=1, le=50),
):
    """Previously used reasons matching ``q``, most used first."""
    return await suggestion_service.get_suggestions(
        db, context.family_id, label_filter=q, limit=limit,
    )


@router.put("/{entry_id}", response_model=PointEntryResponse)
async def update_points(
    entry_id: uuid.UUID,
    body: PointEntryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Correct, retype or (de)activate an entry."""
    if await points_service.get_entry(db, context.family_id, entry_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Point entry not found",
        )

    return await points_service.update_entry(
        db,
        entry_id,
        entry_type=body.type,
        points=body.points,
        reason=body.reason,
        is_active=body.is_active,
    )


@router.get("/children/{child_id}", response_model=ChildPointsResponse)
async def get_child_points(
    child_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
    include_inactive: bool = False,
):
    """Totals and full history of one child, newest first."""
    child = await _get_child_or_404(db, context.family_id, child_id)
    totals = await points_service.get_totals(db, child.id)
    history = await points_service.get_history(
        db, child.id, include_inactive=include_inactive,
    )
    return ChildPointsResponse(
        child_id=child.id,
        display_name=child.display_name,
        avatar_key=child.avatar_key,
        totals=PointsTotalsResponse.model_validate(totals),
        history=[PointEntryResponse.model_validate(e) for e in history],
    )


@router.post(
    "/children/{child_id}/reset",
    response_model=PointEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={204: {"description": "Child has no active entries; nothing to reset"}},
)
async def reset_child_points(
    child_id: uuid.UUID,
    body: ResetRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Bring the child's balance to zero with one compensating entry."""
    child = await _get_child_or_404(db, context.family_id, child_id)
    entry = await points_service.apply_reset(
        db,
        family_id=context.family_id,
        child_id=child.id,
        created_by_id=context.member_id,
        reason=body.reason,
    )
    if entry is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return entry
