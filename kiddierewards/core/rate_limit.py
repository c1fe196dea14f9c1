"""Shared rate limiter instance.

Guards the credential endpoints (password login, PIN login, PIN gate)
against brute force. Uses Redis-backed storage when Redis is available so
counters survive restarts and are shared between workers; falls back to
in-memory storage in development and tests.
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

LOGIN_RATE_LIMIT = "10/minute"
PIN_RATE_LIMIT = "10/minute"


def _create_limiter() -> Limiter:
    from kiddierewards.config import settings

    try:
        client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        client.ping()
        client.close()
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(
            key_func=get_remote_address,
            default_limits=["100/minute"],
            storage_uri=settings.REDIS_URL,
        )
    except Exception:
        logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=["100/minute"])


limiter = _create_limiter()
