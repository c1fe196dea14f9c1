"""Password hashing and JWT helpers."""

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from kiddierewards.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token. ``data`` is not mutated."""
    return _encode(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: dict) -> str:
    # jti keeps two refresh tokens issued in the same second distinct
    return _encode(
        {**data, "jti": uuid.uuid4().hex},
        "refresh",
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def create_pin_token(
    member_id: uuid.UUID,
    jti: str | None = None,
    server_side: bool = False,
) -> tuple[str, str, datetime]:
    """Create a PIN-session token for a member.

    Returns ``(token, jti, expires_at)``. ``server_side`` marks tokens whose
    session is also stored in Redis under the jti.
    """
    jti = jti or uuid.uuid4().hex
    expires_delta = timedelta(minutes=settings.PIN_SESSION_EXPIRE_MINUTES)
    claims = {"sub": str(member_id), "jti": jti}
    if server_side:
        claims["srv"] = True
    token = _encode(claims, "pin", expires_delta)
    return token, jti, datetime.now(timezone.utc) + expires_delta


def decode_token(token: str) -> dict:
    """Decode and verify a JWT. Raises ``jose.JWTError`` when invalid or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
