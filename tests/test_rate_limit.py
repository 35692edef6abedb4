from __future__ import annotations

import dataclasses

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from eventboard.middleware import rate_limit
from eventboard.middleware.rate_limit import RateLimitMiddleware, bucket_for, parse_rate


class FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.counts: dict[str, int] = {}
        self.fail = fail

    def incr(self, key: str) -> int:
        if self.fail:
            raise RedisConnectionError("down")
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, seconds: int) -> bool:
        return True


@pytest.mark.parametrize(
    "rate,expected",
    [
        ("60/minute", (60, 60)),
        ("10/second", (10, 1)),
        (" 5/Hours ", (5, 3600)),
        ("100/day", (100, 86400)),
    ],
)
def test_parse_rate(rate, expected):
    assert parse_rate(rate) == expected


@pytest.mark.parametrize("rate", ["60", "0/minute", "-1/minute", "ten/minute", "5/fortnight"])
def test_parse_rate_rejects_garbage(rate):
    with pytest.raises(ValueError):
        parse_rate(rate)


def test_auth_paths_use_the_stricter_bucket():
    assert bucket_for("/v1/auth/login")[0] == "auth"
    assert bucket_for("/v1/events")[0] == "default"


def _limited_app(monkeypatch, redis: FakeRedis) -> TestClient:
    limited = dataclasses.replace(
        rate_limit.settings,
        rate_limit_enabled=True,
        rate_limit_default="2/minute",
        rate_limit_exempt_paths=["/health"],
    )
    monkeypatch.setattr(rate_limit, "settings", limited)
    monkeypatch.setattr(rate_limit, "get_redis", lambda: redis)

    app = FastAPI()
    app.add_middleware(RateLimitMiddleware)

    @app.get("/things")
    def things():
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return TestClient(app)


def test_requests_over_the_limit_get_429(monkeypatch):
    client = _limited_app(monkeypatch, FakeRedis())

    first = client.get("/things")
    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert client.get("/things").status_code == 200

    blocked = client.get("/things")
    assert blocked.status_code == 429
    assert blocked.json()["detail"]["code"] == "RATE_LIMITED"
    assert "Retry-After" in blocked.headers

    for _ in range(5):
        assert client.get("/health").status_code == 200


def test_limiter_fails_open_when_redis_is_down(monkeypatch):
    client = _limited_app(monkeypatch, FakeRedis(fail=True))
    for _ in range(5):
        assert client.get("/things").status_code == 200
