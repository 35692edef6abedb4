from __future__ import annotations

import structlog
from redis import Redis
from redis.connection import ConnectionPool
from redis.exceptions import RedisError

from eventboard.core.config import settings

logger = structlog.get_logger()

# Redis only backs the rate limiter; requests must never wait long on it
SOCKET_TIMEOUT_SECONDS = 0.5

_pool: ConnectionPool | None = None


def _build_pool() -> ConnectionPool:
    return ConnectionPool.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
    )


def get_redis() -> Redis:
    global _pool
    if _pool is None:
        _pool = _build_pool()
    return Redis(connection_pool=_pool)


def redis_status() -> str:
    """Return ok or down, or disabled when rate limiting is switched off."""
    if not settings.rate_limit_enabled:
        return "disabled"
    try:
        get_redis().ping()
    except RedisError as exc:
        logger.warning("redis_unreachable", error=str(exc))
        return "down"
    return "ok"
