import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from kiddierewards.core.pin import PIN_PATTERN


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class PinLoginResponse(TokenResponse):
    pin_token: str
    pin_expires_at: datetime


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: str = Field(min_length=1, max_length=100)
    family_name: str = Field(min_length=1, max_length=200)  # creates new family
    pin: str = Field(pattern=PIN_PATTERN)
    avatar_key: str = Field(default="parent-star", max_length=100)


class RegisterWithInvitationRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirm: str = Field(min_length=8)
    display_name: str = Field(min_length=1, max_length=100)
    pin: str = Field(pattern=PIN_PATTERN)
    avatar_key: str = Field(default="parent-star", max_length=100)
    invitation_code: str


class PinLoginRequest(BaseModel):
    member_id: uuid.UUID
    pin: str


class PinVerifyRequest(BaseModel):
    pin: str = Field(min_length=1)


class PinSessionResponse(BaseModel):
    pin_token: str
    expires_at: datetime


class MeResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    display_name: str
    role: str
