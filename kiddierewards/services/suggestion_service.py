"""Suggestion Service.

Autocomplete for the "reason" field: previously used reasons of a family,
ranked by how often and how recently they were used.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.models.point_entry import PointEntry, PointEntryType


@dataclass(frozen=True)
class PointSuggestion:
    reason: str
    average_points: int
    use_count: int


async def get_suggestions(
    db: AsyncSession,
    family_id: uuid.UUID,
    label_filter: str | None = None,
    limit: int = 10,
) -> list[PointSuggestion]:
    """Return up to ``limit`` suggestions for a family.

    Reasons are grouped case- and whitespace-insensitively; each group is
    labelled with its most recently used spelling. Resets and inactive
    entries never count.
    """
    if limit <= 0:
        raise ValueError("limit must be greater than zero")

    key = func.lower(func.trim(PointEntry.reason))
    conditions = [
        PointEntry.family_id == family_id,
        PointEntry.is_active.is_(True),
        PointEntry.type != PointEntryType.RESET,
    ]
    needle = (label_filter or "").strip().lower()
    if needle:
        conditions.append(func.lower(PointEntry.reason).contains(needle, autoescape=True))

    grouped = await db.execute(
        select(
            key.label("key"),
            func.avg(PointEntry.points).label("average_points"),
            func.count(PointEntry.id).label("use_count"),
        )
        .where(*conditions)
        .group_by(key)
        .order_by(
            func.count(PointEntry.id).desc(),
            func.max(PointEntry.created_at).desc(),
        )
        .limit(limit)
    )
    rows = grouped.all()
    if not rows:
        return []

    # Latest spelling per group
    labels: dict[str, str] = {}
    spellings = await db.execute(
        select(key.label("key"), PointEntry.reason)
        .where(*conditions, key.in_([row.key for row in rows]))
        .order_by(PointEntry.created_at.desc())
    )
    for group_key, reason in spellings.all():
        labels.setdefault(group_key, reason.strip())

    return [
        PointSuggestion(
            reason=labels[row.key],
            # round() is half-to-even for both float and Decimal averages
            average_points=int(round(row.average_points)),
            use_count=row.use_count,
        )
        for row in rows
    ]
