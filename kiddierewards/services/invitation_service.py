"""Invitation Service.

Single-use codes that let a second parent join an existing family.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.config import settings
from kiddierewards.models.invitation import FamilyInvitation

logger = logging.getLogger(__name__)

# No 0/O, 1/I: codes are read aloud and typed by hand
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 10


def _generate_code() -> str:
    """Generate an invitation code like 'K7QM2ZC9HT'."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


async def generate_invitation_code(db: AsyncSession) -> str:
    """Generate a unique invitation code, retrying on collision."""
    for _ in range(10):
        code = _generate_code()
        result = await db.execute(
            select(FamilyInvitation.id).where(FamilyInvitation.code == code)
        )
        if result.scalar_one_or_none() is None:
            return code

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Could not generate an invitation code",
    )


async def create_invitation(
    db: AsyncSession,
    family_id: uuid.UUID,
    created_by_id: uuid.UUID,
) -> FamilyInvitation:
    invitation = FamilyInvitation(
        family_id=family_id,
        code=await generate_invitation_code(db),
        created_by_id=created_by_id,
        expires_at=datetime.now(timezone.utc)
        + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
    )
    db.add(invitation)
    await db.flush()
    await db.refresh(invitation)

    logger.info("Invitation %s created for family %s", invitation.id, family_id)
    return invitation


async def list_invitations(
    db: AsyncSession,
    family_id: uuid.UUID,
) -> list[FamilyInvitation]:
    """All invitations of a family, newest first, whatever their state."""
    result = await db.execute(
        select(FamilyInvitation)
        .where(FamilyInvitation.family_id == family_id)
        .order_by(FamilyInvitation.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_invitation(
    db: AsyncSession,
    family_id: uuid.UUID,
    invitation_id: uuid.UUID,
) -> FamilyInvitation | None:
    """Revoke an invitation. Returns None if the family has no such invitation.

    Revoking is idempotent; used invitations stay used.
    """
    result = await db.execute(
        select(FamilyInvitation).where(
            FamilyInvitation.id == invitation_id,
            FamilyInvitation.family_id == family_id,
        )
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        return None

    if not invitation.is_revoked:
        invitation.is_revoked = True
        await db.flush()
        logger.info("Invitation %s revoked", invitation.id)
    return invitation


async def get_active_invitation(
    db: AsyncSession,
    code: str,
) -> FamilyInvitation | None:
    """Look up an invitation by code; None unless it is still redeemable.

    The row stays locked until the transaction ends, so a concurrent
    redemption of the same code waits and then sees it as used.
    """
    result = await db.execute(
        select(FamilyInvitation)
        .where(FamilyInvitation.code == code.strip().upper())
        .with_for_update()
    )
    invitation = result.scalar_one_or_none()
    if invitation is None or not invitation.is_active:
        return None
    return invitation


async def redeem_invitation(
    db: AsyncSession,
    invitation: FamilyInvitation,
    member_id: uuid.UUID,
) -> None:
    """Mark an active invitation as used by ``member_id``."""
    if not invitation.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation code is invalid or expired",
        )
    invitation.redeemed_by_id = member_id
    invitation.redeemed_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("Invitation %s redeemed by member %s", invitation.id, member_id)
