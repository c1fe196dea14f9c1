import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    is_active: bool | None = None


class FamilyResponse(BaseModel):
    id: uuid.UUID
    name: str
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
