"""Members router.

Endpoints for managing parents and children within a family.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.dependencies import (
    FamilyContext,
    get_family_context,
    require_parent,
)
from kiddierewards.database import get_db
from kiddierewards.models.member import Member
from kiddierewards.schemas.member import MemberCreate, MemberResponse, MemberUpdate
from kiddierewards.services import member_service

router = APIRouter(prefix="/families/{family_id}/members", tags=["Members"])


async def _get_member_or_404(
    db: AsyncSession, family_id: uuid.UUID, member_id: uuid.UUID,
) -> Member:
    member = await member_service.get_member(db, family_id, member_id)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found",
        )
    return member


@router.get("/", response_model=list[MemberResponse])
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(get_family_context),
):
    """List all members of the family, ordered by display name."""
    return await member_service.list_members(db, context.family_id)


@router.post("/", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(
    body: MemberCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Add a parent or child to the family. Requires parent role."""
    return await member_service.create_member(
        db,
        context.family_id,
        display_name=body.display_name,
        pin=body.pin,
        role=body.role,
        avatar_key=body.avatar_key,
        is_active=body.is_active,
    )


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(get_family_context),
):
    """Get details of a specific member."""
    return await _get_member_or_404(db, context.family_id, member_id)


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: uuid.UUID,
    body: MemberUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Update a member; a new PIN must be unique in the family. Requires parent role."""
    member = await _get_member_or_404(db, context.family_id, member_id)
    return await member_service.update_member(
        db, member, body.model_dump(exclude_unset=True),
    )


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(
    member_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: FamilyContext = Depends(require_parent),
):
    """Remove a member without point history. Requires parent role.

    Members with history are deactivated through the update endpoint instead.
    """
    if member_id == context.member_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You cannot delete yourself",
        )

    member = await _get_member_or_404(db, context.family_id, member_id)
    await member_service.delete_member(db, member)
    return None
