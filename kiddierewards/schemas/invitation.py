import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class InvitationResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    code: str
    created_by_id: uuid.UUID | None = None
    created_at: datetime
    expires_at: datetime
    is_revoked: bool
    redeemed_by_id: uuid.UUID | None = None
    redeemed_at: datetime | None = None
    is_used: bool
    is_expired: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
