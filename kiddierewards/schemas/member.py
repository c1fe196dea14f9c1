import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from kiddierewards.core.pin import PIN_PATTERN
from kiddierewards.models.member import MemberRole


class MemberCreate(BaseModel):
    display_name: str = Field(min_length=1, max_length=100)
    avatar_key: str = Field(default="", max_length=100)
    role: MemberRole = MemberRole.CHILD
    is_active: bool = True
    pin: str = Field(pattern=PIN_PATTERN)  # 4-10 digits


class MemberUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    avatar_key: str | None = Field(default=None, max_length=100)
    role: MemberRole | None = None
    is_active: bool | None = None
    pin: str | None = Field(default=None, pattern=PIN_PATTERN)


class MemberResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    display_name: str
    avatar_key: str
    role: MemberRole
    is_active: bool
    email: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
