"""PIN Session Service.

A PIN session proves that a member re-entered their PIN recently. It is a
signed JWT (type ``pin``) with a short expiry. When Redis is reachable the
session is also stored server-side under its ``jti`` with the same TTL, so
it can be revoked before it expires, and the token carries ``srv: true``.

Tokens issued without Redis are never looked up there. If Redis fails
while checking a server-side session, the signed token alone decides,
the same as running without Redis.
"""

import logging
import uuid
from datetime import datetime

from jose import JWTError
from redis.exceptions import RedisError

from kiddierewards.config import settings
from kiddierewards.core.redis_client import get_redis
from kiddierewards.core.security import create_pin_token, decode_token

logger = logging.getLogger(__name__)

_KEY_PREFIX = "pin_session:"


def _session_key(jti: str) -> str:
    return f"{_KEY_PREFIX}{jti}"


async def open_pin_session(member_id: uuid.UUID) -> tuple[str, datetime]:
    """Issue a PIN-session token for a member. Returns ``(token, expires_at)``."""
    jti = uuid.uuid4().hex
    stored = False

    redis = await get_redis()
    if redis is not None:
        try:
            await redis.set(
                _session_key(jti),
                str(member_id),
                ex=settings.PIN_SESSION_EXPIRE_MINUTES * 60,
            )
            stored = True
        except RedisError:
            logger.warning("Could not store PIN session in Redis, issuing token-only session")

    token, _, expires_at = create_pin_token(member_id, jti=jti, server_side=stored)
    logger.info("PIN session opened for member %s", member_id)
    return token, expires_at


async def is_pin_session_valid(token: str | None, member_id: uuid.UUID) -> bool:
    """Return True when ``token`` is a live PIN session for ``member_id``."""
    if not token:
        return False

    try:
        payload = decode_token(token)
    except JWTError:
        return False

    if payload.get("type") != "pin" or payload.get("sub") != str(member_id):
        return False

    jti = payload.get("jti")
    if not jti:
        return False

    if not payload.get("srv"):
        return True

    redis = await get_redis()
    if redis is None:
        return True
    try:
        return await redis.get(_session_key(jti)) == str(member_id)
    except RedisError:
        logger.warning("Redis error while checking PIN session %s, trusting the token", jti)
        return True


async def close_pin_session(token: str | None) -> None:
    """Revoke a PIN session server-side. A no-op without Redis or a valid token."""
    if not token:
        return

    try:
        payload = decode_token(token)
    except JWTError:
        return

    jti = payload.get("jti")
    if not jti or not payload.get("srv"):
        return

    redis = await get_redis()
    if redis is None:
        return
    try:
        await redis.delete(_session_key(jti))
    except RedisError:
        logger.warning("Could not revoke PIN session %s in Redis", jti)
        return
    logger.info("PIN session closed for member %s", payload.get("sub"))
