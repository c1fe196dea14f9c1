"""Member Service.

Creating and editing family members, PIN checks and PIN uniqueness.
"""

import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.pin import PinVerification, hash_pin, is_valid_pin, verify_pin
from kiddierewards.models.family import Family
from kiddierewards.models.member import Member, MemberRole
from kiddierewards.models.point_entry import PointEntry

logger = logging.getLogger(__name__)


def _require_valid_pin(pin: str) -> None:
    if not is_valid_pin(pin):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="PIN must be 4 to 10 digits",
        )


def _clean_display_name(display_name: str) -> str:
    cleaned = display_name.strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Display name must not be blank",
        )
    return cleaned


async def ensure_pin_available(
    db: AsyncSession,
    family_id: uuid.UUID,
    pin: str,
    exclude_member_id: uuid.UUID | None = None,
) -> None:
    """Reject a PIN that another member of the family already uses.

    Hashes are salted, so the stored values never collide; the candidate
    is verified against every hash of the family instead. The family row
    stays locked until the transaction ends, so concurrent PIN changes in
    one family are checked one after another.

    Raises:
        HTTPException 409: If the PIN is taken.
    """
    await db.execute(
        select(Family.id).where(Family.id == family_id).with_for_update()
    )

    query = select(Member.pin_hash).where(Member.family_id == family_id)
    if exclude_member_id is not None:
        query = query.where(Member.id != exclude_member_id)

    for pin_hash in (await db.execute(query)).scalars():
        if verify_pin(pin_hash, pin).matched:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This PIN is already used in the family",
            )


async def check_member_pin(db: AsyncSession, member: Member, pin: str) -> bool:
    """Verify a member's PIN, upgrading a legacy hash after a match."""
    if not pin or not pin.strip():
        return False

    result = verify_pin(member.pin_hash, pin)
    if result == PinVerification.NO_MATCH:
        logger.warning("Failed PIN verification for member %s", member.id)
        return False

    if result == PinVerification.MATCH_NEEDS_REHASH:
        member.pin_hash = hash_pin(pin)
        await db.flush()
        logger.info("Rehashed legacy PIN hash for member %s", member.id)
    return True


async def list_members(db: AsyncSession, family_id: uuid.UUID) -> list[Member]:
    result = await db.execute(
        select(Member)
        .where(Member.family_id == family_id)
        .order_by(Member.display_name)
    )
    return list(result.scalars().all())


async def get_member(
    db: AsyncSession,
    family_id: uuid.UUID,
    member_id: uuid.UUID,
    role: MemberRole | None = None,
) -> Member | None:
    """Fetch a member scoped to a family, optionally of a given role."""
    query = select(Member).where(
        Member.id == member_id,
        Member.family_id == family_id,
    )
    if role is not None:
        query = query.where(Member.role == role)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def create_member(
    db: AsyncSession,
    family_id: uuid.UUID,
    display_name: str,
    pin: str,
    role: MemberRole = MemberRole.CHILD,
    avatar_key: str = "",
    is_active: bool = True,
    email: str | None = None,
    password_hash: str | None = None,
) -> Member:
    display_name = _clean_display_name(display_name)
    _require_valid_pin(pin)
    await ensure_pin_available(db, family_id, pin)

    member = Member(
        family_id=family_id,
        display_name=display_name,
        avatar_key=avatar_key.strip(),
        role=role,
        pin_hash=hash_pin(pin),
        is_active=is_active,
        email=email,
        password_hash=password_hash,
    )
    db.add(member)
    await db.flush()
    await db.refresh(member)

    logger.info("Member %s (%s) added to family %s", member.id, role.value, family_id)
    return member


async def update_member(db: AsyncSession, member: Member, changes: dict) -> Member:
    """Apply a partial update. A new PIN is checked and hashed; other keys are copied."""
    if changes.get("display_name") is not None:
        changes["display_name"] = _clean_display_name(changes["display_name"])
    if changes.get("avatar_key") is not None:
        changes["avatar_key"] = changes["avatar_key"].strip()

    pin = changes.pop("pin", None)
    if pin:
        _require_valid_pin(pin)
        await ensure_pin_available(db, member.family_id, pin, exclude_member_id=member.id)
        member.pin_hash = hash_pin(pin)

    for field, value in changes.items():
        if value is not None:
            setattr(member, field, value)

    await db.flush()
    await db.refresh(member)
    return member


async def delete_member(db: AsyncSession, member: Member) -> None:
    """Delete a member that no ledger row references.

    Raises:
        HTTPException 409: If point entries reference the member.
    """
    referenced = (await db.execute(
        select(exists().where(or_(
            PointEntry.child_id == member.id,
            PointEntry.created_by_id == member.id,
        )))
    )).scalar()
    if referenced:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Member has point history; deactivate instead",
        )

    await db.delete(member)
    await db.flush()
    logger.info("Member %s deleted from family %s", member.id, member.family_id)
