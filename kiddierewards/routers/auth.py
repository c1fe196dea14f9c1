"""Authentication router.

Endpoints for registration, login, token refresh, logout and the PIN gate.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.config import settings
from kiddierewards.core.dependencies import get_current_member
from kiddierewards.core.rate_limit import LOGIN_RATE_LIMIT, PIN_RATE_LIMIT, limiter
from kiddierewards.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from kiddierewards.database import get_db
from kiddierewards.models.family import Family
from kiddierewards.models.member import Member, MemberRole, RefreshToken
from kiddierewards.schemas.auth import (
    LoginRequest,
    MeResponse,
    PinLoginRequest,
    PinLoginResponse,
    PinSessionResponse,
    PinVerifyRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterWithInvitationRequest,
    TokenResponse,
)
from kiddierewards.services.invitation_service import (
    get_active_invitation,
    redeem_invitation,
)
from kiddierewards.services.member_service import check_member_pin, create_member
from kiddierewards.services.pin_session_service import (
    close_pin_session,
    open_pin_session,
)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=MeResponse)
async def get_me(current_member: Member = Depends(get_current_member)):
    """Return basic info about the currently authenticated member."""
    return MeResponse(
        id=current_member.id,
        family_id=current_member.family_id,
        display_name=current_member.display_name,
        role=current_member.role.value,
    )


def _hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a raw token string."""
    return hashlib.sha256(token.encode()).hexdigest()


async def _create_tokens_for_member(
    db: AsyncSession, member: Member
) -> TokenResponse:
    """Create an access + refresh token pair and persist the refresh token."""
    access_token = create_access_token(data={"sub": str(member.id)})
    raw_refresh = create_refresh_token(data={"sub": str(member.id)})

    refresh_record = RefreshToken(
        member_id=member.id,
        token_hash=_hash_token(raw_refresh),
        expires_at=datetime.now(timezone.utc)
        + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(refresh_record)
    await db.flush()

    return TokenResponse(
        access_token=access_token,
        refresh_token=raw_refresh,
    )


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    existing = await db.execute(select(Member.id).where(Member.email == email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="E-mail already registered",
        )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate a parent with e-mail + password and return tokens."""
    result = await db.execute(select(Member).where(Member.email == body.email))
    member = result.scalar_one_or_none()

    if member is None or member.password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid e-mail or password",
        )

    if not verify_password(body.password, member.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid e-mail or password",
        )

    if not member.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member is deactivated",
        )

    return await _create_tokens_for_member(db, member)


@router.post("/register", response_model=TokenResponse)
async def register(
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a new family together with its first parent."""
    await _ensure_email_free(db, body.email)

    family = Family(name=body.family_name.strip())
    db.add(family)
    await db.flush()

    member = await create_member(
        db,
        family.id,
        display_name=body.display_name,
        pin=body.pin,
        role=MemberRole.PARENT,
        avatar_key=body.avatar_key,
        email=body.email,
        password_hash=get_password_hash(body.password),
    )

    return await _create_tokens_for_member(db, member)


@router.post("/register-with-invitation", response_model=TokenResponse)
async def register_with_invitation(
    body: RegisterWithInvitationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a new parent in an existing family using an invitation code."""
    if body.password != body.password_confirm:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Passwords do not match",
        )

    await _ensure_email_free(db, body.email)

    invitation = await get_active_invitation(db, body.invitation_code)
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation code is invalid or expired",
        )

    member = await create_member(
        db,
        invitation.family_id,
        display_name=body.display_name,
        pin=body.pin,
        role=MemberRole.PARENT,
        avatar_key=body.avatar_key,
        email=body.email,
        password_hash=get_password_hash(body.password),
    )
    await redeem_invitation(db, invitation, member.id)

    return await _create_tokens_for_member(db, member)


@router.post("/login-pin", response_model=PinLoginResponse)
@limiter.limit(PIN_RATE_LIMIT)
async def login_pin(
    request: Request,
    body: PinLoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate any member with member id + PIN.

    The PIN was just entered, so a PIN session is opened as well.
    """
    result = await db.execute(select(Member).where(Member.id == body.member_id))
    member = result.scalar_one_or_none()

    if member is None or not await check_member_pin(db, member, body.pin):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid member or PIN",
        )

    if not member.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member is deactivated",
        )

    tokens = await _create_tokens_for_member(db, member)
    pin_token, pin_expires_at = await open_pin_session(member.id)
    return PinLoginResponse(
        **tokens.model_dump(),
        pin_token=pin_token,
        pin_expires_at=pin_expires_at,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange a valid refresh token for a new token pair (rotation)."""
    # Decode the refresh JWT to get the member id
    try:
        payload = decode_token(body.refresh_token)
        member_id = payload.get("sub")
        token_type = payload.get("type")
        if member_id is None or token_type != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token",
            )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    # Look up the stored refresh token by hash
    token_hash = _hash_token(body.refresh_token)
    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked == False,  # noqa: E712
        )
    )
    stored_token = result.scalar_one_or_none()

    if stored_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found or already revoked",
        )

    expires = stored_token.expires_at
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    if expires < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired",
        )

    # Revoke the old token (rotation)
    stored_token.revoked = True
    await db.flush()

    member_result = await db.execute(
        select(Member).where(Member.id == uuid.UUID(member_id))
    )
    member = member_result.scalar_one_or_none()
    if member is None or not member.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Member not found",
        )

    return await _create_tokens_for_member(db, member)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke the provided refresh token."""
    token_hash = _hash_token(body.refresh_token)
    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked == False,  # noqa: E712
        )
    )
    stored_token = result.scalar_one_or_none()

    if stored_token is not None:
        stored_token.revoked = True
        await db.flush()

    # Always return 204 regardless of whether the token was found
    return None


# ---------------------------------------------------------------------------
# PIN gate
# ---------------------------------------------------------------------------

@router.post("/pin/verify", response_model=PinSessionResponse)
@limiter.limit(PIN_RATE_LIMIT)
async def verify_pin_session(
    request: Request,
    body: PinVerifyRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_member: Member = Depends(get_current_member),
):
    """Re-enter the PIN and receive a short-lived PIN session token."""
    if not await check_member_pin(db, current_member, body.pin):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect PIN",
        )

    pin_token, expires_at = await open_pin_session(current_member.id)
    return PinSessionResponse(pin_token=pin_token, expires_at=expires_at)


@router.delete("/pin/session", status_code=status.HTTP_204_NO_CONTENT)
async def end_pin_session(
    current_member: Member = Depends(get_current_member),
    x_pin_token: Annotated[str | None, Header()] = None,
):
    """Revoke the current PIN session (e.g. when the device is handed to a child)."""
    await close_pin_session(x_pin_token)
    return None
