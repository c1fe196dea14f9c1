from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from kiddierewards.models.point_entry import PointEntryType


class ChildDashboardItem(BaseModel):
    """Current totals for one active child."""

    member_id: uuid.UUID
    display_name: str
    avatar_key: str
    plus: int
    minus: int
    net: int
    model_config = ConfigDict(from_attributes=True)


class ParentDashboardStats(BaseModel):
    """Family-wide totals over active entries."""

    plus: int
    minus: int
    net: int
    weekly_net: int  # trailing 7 days
    model_config = ConfigDict(from_attributes=True)


class RecentPointEntryItem(BaseModel):
    """One history row with display names resolved."""

    point_entry_id: uuid.UUID
    child_id: uuid.UUID
    child_display_name: str
    created_by_display_name: str
    points: int
    reason: str
    created_at: datetime
    is_active: bool
    is_reset: bool
    type: PointEntryType
    model_config = ConfigDict(from_attributes=True)


class ParentDashboardHistory(BaseModel):
    """One page of family history, newest first."""

    entries: list[RecentPointEntryItem]
    current_page: int
    total_pages: int
    page_size: int
    total_count: int
    selected_child_id: uuid.UUID | None = None
    model_config = ConfigDict(from_attributes=True)


class ParentDashboardResponse(BaseModel):
    family_id: uuid.UUID
    children: list[ChildDashboardItem]
    stats: ParentDashboardStats
    history: ParentDashboardHistory
    model_config = ConfigDict(from_attributes=True)
