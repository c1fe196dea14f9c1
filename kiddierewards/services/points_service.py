"""Points Service.

Business logic for the points ledger: batch awards and deductions, entry
edits, totals, history and resets.

The ledger is append-only. A reset never deactivates or deletes earlier
rows; it adds one compensating entry whose value is the negated net, so
the running balance lands on zero while the full history stays visible.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from fastapi import HTTPException, status
from sqlalchemy import case, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.models.member import Member, MemberRole
from kiddierewards.models.point_entry import (
    POSITIVE_TYPES,
    PointEntry,
    PointEntryType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointsTotals:
    plus: int
    minus: int
    net: int


def normalize_points(entry_type: PointEntryType, points: int) -> int:
    """Apply the sign a type requires to the magnitude of ``points``.

    Good points and bonuses are positive, bad points and rewards negative;
    the sign given by the caller is ignored. Resets are computed from the
    ledger, so they normalise to 0 here.
    """
    if entry_type == PointEntryType.RESET:
        return 0

    magnitude = abs(points)
    if magnitude == 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Points must be non-zero for type '{entry_type.value}'",
        )
    return magnitude if entry_type in POSITIVE_TYPES else -magnitude


def _clean_reason(reason: str) -> str:
    trimmed = (reason or "").strip()
    if not trimmed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Reason is required",
        )
    return trimmed


def _totals_select(child_id: uuid.UUID, exclude_entry_id: uuid.UUID | None = None):
    stmt = select(
        func.coalesce(
            func.sum(case((PointEntry.points > 0, PointEntry.points), else_=0)), 0
        ).label("plus"),
        func.coalesce(
            func.sum(case((PointEntry.points < 0, -PointEntry.points), else_=0)), 0
        ).label("minus"),
    ).where(
        PointEntry.child_id == child_id,
        PointEntry.is_active.is_(True),
    )
    if exclude_entry_id is not None:
        stmt = stmt.where(PointEntry.id != exclude_entry_id)
    return stmt


async def _net_points(
    db: AsyncSession,
    child_id: uuid.UUID,
    exclude_entry_id: uuid.UUID | None = None,
) -> int:
    row = (await db.execute(_totals_select(child_id, exclude_entry_id))).one()
    return int(row.plus) - int(row.minus)


async def _lock_children(
    db: AsyncSession,
    child_ids: list[uuid.UUID],
    family_id: uuid.UUID | None = None,
) -> list[uuid.UUID]:
    """Lock the child rows for the rest of the transaction.

    Reading the net and inserting the compensating entry must not
    interleave with another writer for the same child. On PostgreSQL this
    is ``SELECT ... FOR UPDATE``; SQLite serialises writers on its own.
    Only active children (of ``family_id`` when given) are returned.
    """
    stmt = select(Member.id).where(
        Member.id.in_(child_ids),
        Member.role == MemberRole.CHILD,
        Member.is_active.is_(True),
    )
    if family_id is not None:
        stmt = stmt.where(Member.family_id == family_id)
    result = await db.execute(stmt.with_for_update())
    return list(result.scalars().all())


async def add_entries(
    db: AsyncSession,
    family_id: uuid.UUID,
    created_by_id: uuid.UUID,
    child_ids: Iterable[uuid.UUID],
    entry_type: PointEntryType,
    points: int,
    reason: str,
) -> list[PointEntry]:
    """Add one entry per child with the same type, reason and timestamp.

    All-or-nothing: a single unknown, foreign or inactive child rejects the
    whole batch before anything is written. For resets each child gets its
    own compensating value.
    """
    trimmed_reason = _clean_reason(reason)

    target_ids = list(dict.fromkeys(child_ids))
    if not target_ids:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="At least one child is required",
        )

    normalized = normalize_points(entry_type, points)

    valid_ids = await _lock_children(db, target_ids, family_id)
    if len(valid_ids) != len(target_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="One or more children are invalid or inactive",
        )

    created_at = datetime.now(timezone.utc)
    entries: list[PointEntry] = []
    for child_id in target_ids:
        if entry_type == PointEntryType.RESET:
            value = -await _net_points(db, child_id)
        else:
            value = normalized

        entries.append(PointEntry(
            family_id=family_id,
            child_id=child_id,
            created_by_id=created_by_id,
            points=value,
            type=entry_type,
            reason=trimmed_reason,
            is_active=True,
            created_at=created_at,
        ))

    db.add_all(entries)
    await db.flush()

    logger.info(
        "Added %d %s entries in family %s by member %s",
        len(entries), entry_type.value, family_id, created_by_id,
    )
    return entries


async def get_entry(
    db: AsyncSession,
    family_id: uuid.UUID,
    entry_id: uuid.UUID,
) -> PointEntry | None:
    """Fetch an entry scoped to a family."""
    result = await db.execute(
        select(PointEntry).where(
            PointEntry.id == entry_id,
            PointEntry.family_id == family_id,
        )
    )
    return result.scalar_one_or_none()


async def update_entry(
    db: AsyncSession,
    entry_id: uuid.UUID,
    entry_type: PointEntryType,
    points: int,
    reason: str,
    is_active: bool | None = None,
) -> PointEntry | None:
    """Retype, revalue or (de)activate an entry. Returns None if it does not exist.

    Values are normalised exactly as on creation. Retyping to a reset
    recomputes the compensating value from the child's net without this
    entry, so the entry never offsets itself.
    """
    trimmed_reason = _clean_reason(reason)

    result = await db.execute(select(PointEntry).where(PointEntry.id == entry_id))
    entry = result.scalar_one_or_none()
    if entry is None:
        return None

    if entry_type == PointEntryType.RESET:
        await db.execute(
            select(Member.id).where(Member.id == entry.child_id).with_for_update()
        )
        entry.points = -await _net_points(db, entry.child_id, exclude_entry_id=entry.id)
    else:
        entry.points = normalize_points(entry_type, points)

    entry.type = entry_type
    entry.reason = trimmed_reason
    if is_active is not None:
        entry.is_active = is_active

    await db.flush()
    await db.refresh(entry)

    logger.info("Updated point entry %s (%s, %d)", entry.id, entry.type.value, entry.points)
    return entry


async def get_totals(db: AsyncSession, child_id: uuid.UUID) -> PointsTotals:
    """Plus, minus (absolute) and net over the child's active entries."""
    row = (await db.execute(_totals_select(child_id))).one()
    plus = int(row.plus)
    minus = int(row.minus)
    return PointsTotals(plus=plus, minus=minus, net=plus - minus)


async def get_history(
    db: AsyncSession,
    child_id: uuid.UUID,
    include_inactive: bool = False,
) -> list[PointEntry]:
    """The child's entries, newest first."""
    query = select(PointEntry).where(PointEntry.child_id == child_id)
    if not include_inactive:
        query = query.where(PointEntry.is_active.is_(True))
    query = query.order_by(PointEntry.created_at.desc(), PointEntry.id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def apply_reset(
    db: AsyncSession,
    family_id: uuid.UUID,
    child_id: uuid.UUID,
    created_by_id: uuid.UUID,
    reason: str,
) -> PointEntry | None:
    """Bring the child's net to zero with one compensating entry.

    Returns None when the child has no active entries.
    """
    trimmed_reason = _clean_reason(reason)

    await _lock_children(db, [child_id])

    has_active = (await db.execute(
        select(exists().where(
            PointEntry.family_id == family_id,
            PointEntry.child_id == child_id,
            PointEntry.is_active.is_(True),
        ))
    )).scalar()
    if not has_active:
        return None

    reset_entry = PointEntry(
        family_id=family_id,
        child_id=child_id,
        created_by_id=created_by_id,
        points=-await _net_points(db, child_id),
        type=PointEntryType.RESET,
        reason=trimmed_reason,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(reset_entry)
    await db.flush()

    logger.info(
        "Reset child %s in family %s with %d points",
        child_id, family_id, reset_entry.points,
    )
    return reset_entry
