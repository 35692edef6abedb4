from __future__ import annotations

import time

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from eventboard.core.config import settings
from eventboard.redis_client import get_redis

logger = structlog.get_logger()

_WINDOWS = {
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(rate: str) -> tuple[int, int]:
    """
    Parse "<limit>/<window>", e.g. "60/minute" or "10/second".
    Returns: (limit, window_seconds)
    """
    raw = rate.strip().lower()
    if "/" not in raw:
        raise ValueError(f"Invalid rate format: {rate}")

    limit_str, window_str = raw.split("/", 1)
    limit = int(limit_str)
    if limit <= 0:
        raise ValueError(f"Invalid rate limit: {rate}")

    window = _WINDOWS.get(window_str.strip())
    if window is None:
        raise ValueError(f"Invalid rate window: {window_str}")
    return limit, window


def bucket_for(path: str) -> tuple[str, str]:
    """Pick the (name, rate) bucket a path is counted against."""
    if path.startswith(settings.rate_limit_auth_prefix):
        return "auth", settings.rate_limit_auth
    return "default", settings.rate_limit_default


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if not settings.rate_limit_enabled or request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if path in set(settings.rate_limit_exempt_paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket_name, rate = bucket_for(path)

        try:
            limit, window_seconds = parse_rate(rate)
        except ValueError:
            # Misconfigured rate => fail open
            logger.warning("rate_limit_misconfigured", rate=rate)
            return await call_next(request)

        now = int(time.time())
        window = now // window_seconds
        key = f"rl:{bucket_name}:{client_ip}:{request.method}:{path}:{window_seconds}:{window}"

        try:
            r = get_redis()
            count = r.incr(key)
            if count == 1:
                r.expire(key, window_seconds)
        except RedisError:
            # Redis down must not take the API down with it
            logger.warning("rate_limit_unavailable")
            return await call_next(request)

        remaining = max(0, limit - int(count))
        reset = (window + 1) * window_seconds

        if count > limit:
            logger.info("rate_limited", bucket=bucket_name, path=path, client_ip=client_ip)
            return JSONResponse(
                status_code=429,
                content={"detail": {"code": "RATE_LIMITED", "message": "rate limit exceeded"}},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                    "Retry-After": str(max(0, reset - now)),
                },
            )

        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Limit", str(limit))
        response.headers.setdefault("X-RateLimit-Remaining", str(remaining))
        response.headers.setdefault("X-RateLimit-Reset", str(reset))
        return response
