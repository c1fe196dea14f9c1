from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from kiddierewards.models.member import Member, MemberRole
from kiddierewards.models.point_entry import PointEntry, PointEntryType

HISTORY_PAGE_SIZE = 10


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _plus_expr():
    return func.coalesce(
        func.sum(case((PointEntry.points > 0, PointEntry.points), else_=0)), 0
    )


def _minus_expr():
    return func.coalesce(
        func.sum(case((PointEntry.points < 0, -PointEntry.points), else_=0)), 0
    )


async def _child_summaries(db: AsyncSession, family_id: uuid.UUID) -> list[dict]:
    """Active children ordered by display name, each with plus/minus/net."""
    children = (await db.execute(
        select(Member).where(
            Member.family_id == family_id,
            Member.role == MemberRole.CHILD,
            Member.is_active.is_(True),
        ).order_by(Member.display_name)
    )).scalars().all()

    totals_rows = (await db.execute(
        select(
            PointEntry.child_id,
            _plus_expr().label("plus"),
            _minus_expr().label("minus"),
        ).where(
            PointEntry.family_id == family_id,
            PointEntry.is_active.is_(True),
        ).group_by(PointEntry.child_id)
    )).all()
    totals = {row.child_id: (int(row.plus), int(row.minus)) for row in totals_rows}

    summaries = []
    for child in children:
        plus, minus = totals.get(child.id, (0, 0))
        summaries.append(dict(
            member_id=child.id,
            display_name=child.display_name,
            avatar_key=child.avatar_key,
            plus=plus,
            minus=minus,
            net=plus - minus,
        ))
    return summaries


async def _family_stats(db: AsyncSession, family_id: uuid.UUID) -> dict:
    """Family-wide totals. Single DB roundtrip using scalar subqueries."""
    week_start = datetime.now(timezone.utc) - timedelta(days=7)
    active = (PointEntry.family_id == family_id, PointEntry.is_active.is_(True))

    row = (await db.execute(select(
        select(_plus_expr()).where(*active).scalar_subquery().label("plus"),
        select(_minus_expr()).where(*active).scalar_subquery().label("minus"),
        select(func.coalesce(func.sum(PointEntry.points), 0)).where(
            *active,
            PointEntry.created_at >= week_start,
        ).scalar_subquery().label("weekly_net"),
    ))).one()

    plus = int(row.plus)
    minus = int(row.minus)
    return dict(plus=plus, minus=minus, net=plus - minus, weekly_net=int(row.weekly_net))


async def _history_page(
    db: AsyncSession,
    family_id: uuid.UUID,
    page: int,
    child_id: uuid.UUID | None,
) -> dict:
    """One page of the family history, active and inactive rows alike."""
    conditions = [PointEntry.family_id == family_id]
    if child_id is not None:
        conditions.append(PointEntry.child_id == child_id)

    total_count = (await db.execute(
        select(func.count(PointEntry.id)).where(*conditions)
    )).scalar_one()
    total_pages = max(1, math.ceil(total_count / HISTORY_PAGE_SIZE))
    current_page = min(max(page, 1), total_pages)

    child = aliased(Member)
    creator = aliased(Member)
    rows = (await db.execute(
        select(
            PointEntry,
            child.display_name.label("child_display_name"),
            creator.display_name.label("created_by_display_name"),
        )
        .join(child, PointEntry.child_id == child.id)
        .join(creator, PointEntry.created_by_id == creator.id)
        .where(*conditions)
        .order_by(PointEntry.created_at.desc(), PointEntry.id.desc())
        .offset((current_page - 1) * HISTORY_PAGE_SIZE)
        .limit(HISTORY_PAGE_SIZE)
    )).all()

    entries = [
        dict(
            point_entry_id=entry.id,
            child_id=entry.child_id,
            child_display_name=child_display_name,
            created_by_display_name=created_by_display_name,
            points=entry.points,
            reason=entry.reason,
            created_at=entry.created_at,
            is_active=entry.is_active,
            is_reset=entry.type == PointEntryType.RESET,
            type=entry.type,
        )
        for entry, child_display_name, created_by_display_name in rows
    ]

    return dict(
        entries=entries,
        current_page=current_page,
        total_pages=total_pages,
        page_size=HISTORY_PAGE_SIZE,
        total_count=total_count,
        selected_child_id=child_id,
    )


# ---------------------------------------------------------------------------
# Parent dashboard
# ---------------------------------------------------------------------------

async def build_parent_dashboard(
    db: AsyncSession,
    family_id: uuid.UUID,
    page: int = 1,
    child_id: uuid.UUID | None = None,
) -> dict:
    """Children with totals, family stats and one page of recent history.

    ``child_id`` filters the history only when it names one of the family's
    active children; any other value is ignored. ``page`` is clamped to the
    available pages.
    """
    children = await _child_summaries(db, family_id)

    selected_child_id = None
    if child_id is not None and any(c["member_id"] == child_id for c in children):
        selected_child_id = child_id

    return dict(
        family_id=family_id,
        children=children,
        stats=await _family_stats(db, family_id),
        history=await _history_page(db, family_id, page, selected_child_id),
    )
