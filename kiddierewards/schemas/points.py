import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kiddierewards.models.point_entry import PointEntryType

_ZERO_POINTS_MESSAGE = (
    "Points must be non-zero; the sign is ignored and set from the entry type"
)


class PointEntryCreate(BaseModel):
    child_ids: list[uuid.UUID] = Field(min_length=1)
    type: PointEntryType = PointEntryType.GOOD_POINT
    points: int = Field(default=0, ge=-10000, le=10000)
    reason: str = Field(min_length=1, max_length=500)

    @model_validator(mode="after")
    def _check_points(self):
        if self.type != PointEntryType.RESET and self.points == 0:
            raise ValueError(_ZERO_POINTS_MESSAGE)
        if not self.reason.strip():
            raise ValueError("Reason must not be blank")
        return self


class PointEntryUpdate(BaseModel):
    type: PointEntryType
    points: int = Field(default=0, ge=-10000, le=10000)
    reason: str = Field(min_length=1, max_length=500)
    is_active: bool | None = None

    @model_validator(mode="after")
    def _check_points(self):
        if self.type != PointEntryType.RESET and self.points == 0:
            raise ValueError(_ZERO_POINTS_MESSAGE)
        if not self.reason.strip():
            raise ValueError("Reason must not be blank")
        return self


class ResetRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class PointEntryResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    child_id: uuid.UUID
    created_by_id: uuid.UUID
    points: int
    type: PointEntryType
    reason: str
    is_active: bool
    is_reset: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PointsTotalsResponse(BaseModel):
    plus: int
    minus: int
    net: int
    model_config = ConfigDict(from_attributes=True)


class ChildPointsResponse(BaseModel):
    child_id: uuid.UUID
    display_name: str
    avatar_key: str
    totals: PointsTotalsResponse
    history: list[PointEntryResponse]


class PointSuggestionResponse(BaseModel):
    reason: str
    average_points: int
    use_count: int
    model_config = ConfigDict(from_attributes=True)
