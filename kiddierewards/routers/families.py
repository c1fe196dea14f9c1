"""Families router.

Endpoints for viewing and updating family settings and invitations.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.dependencies import (
    FamilyContext,
    get_family_context,
    require_parent,
)
from kiddierewards.database import get_db
from kiddierewards.models.family import Family
from kiddierewards.schemas.family import FamilyResponse, FamilyUpdate
from kiddierewards.schemas.invitation import InvitationResponse
from kiddierewards.services import invitation_service

router = APIRouter(prefix="/families", tags=["Families"])


async def _get_family(db: AsyncSession, family_id: uuid.UUID) -> Family:
    result = await db.execute(select(Family).where(Family.id == family_id))
    family = result.scalar_one_or_none()

    if family is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Family not found",
        )
    return family


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(get_family_context),
):
    """Get family details. Requires the caller to be a family member."""
    return await _get_family(db, context.family_id)


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    body: FamilyUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Rename or (de)activate the family. Requires a PIN-verified parent.

    A deactivated family rejects every further family-scoped request.
    """
    family = await _get_family(db, context.family_id)

    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None:
            continue
        if field == "name":
            value = value.strip()
        setattr(family, field, value)

    await db.flush()
    await db.refresh(family)
    return family


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.get("/{family_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """List the family's invitations, newest first. Requires parent role."""
    return await invitation_service.list_invitations(db, context.family_id)


@router.post(
    "/{family_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Create a single-use invitation for another parent. Requires parent role."""
    return await invitation_service.create_invitation(
        db, context.family_id, context.member_id,
    )


@router.post(
    "/{family_id}/invitations/{invitation_id}/revoke",
    response_model=InvitationResponse,
)
async def revoke_invitation(
    invitation_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Revoke an invitation. Requires parent role."""
    invitation = await invitation_service.revoke_invitation(
        db, context.family_id, invitation_id,
    )
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found",
        )
    return invitation
