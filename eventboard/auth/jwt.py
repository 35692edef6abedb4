from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from jwt import (
    ExpiredSignatureError,
    InvalidSignatureError,
    MissingRequiredClaimError,
    PyJWTError,
)

from eventboard.auth.principal import Principal
from eventboard.core.config import settings
from eventboard.services.exceptions import (
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
    UnauthenticatedError,
)

BEARER_PREFIX = "Bearer "
_REQUIRED_CLAIMS = ["sub", "email", "username", "role_id", "role_name", "iat", "exp"]


@dataclass(frozen=True)
class ClaimSet:
    user_id: uuid.UUID
    email: str
    username: str
    role_id: int
    role_name: str
    issued_at: datetime
    expires_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


def issue_access_token(principal: Principal, ttl_seconds: int | None = None) -> str:
    now = _now()
    exp = now + timedelta(seconds=ttl_seconds or settings.access_token_ttl_seconds)
    payload = {
        "sub": str(principal.id),
        "email": principal.email,
        "username": principal.username,
        "role_id": principal.role_id,
        "role_name": principal.role_name,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> ClaimSet:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={"require": _REQUIRED_CLAIMS},
        )
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except InvalidSignatureError as exc:
        raise TokenSignatureError() from exc
    except MissingRequiredClaimError as exc:
        raise TokenMalformedError(f"token is missing claim {exc.claim!r}") from exc
    except PyJWTError as exc:
        raise TokenMalformedError() from exc

    try:
        return ClaimSet(
            user_id=uuid.UUID(str(payload["sub"])),
            email=str(payload["email"]),
            username=str(payload["username"]),
            role_id=int(payload["role_id"]),
            role_name=str(payload["role_name"]),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (TypeError, ValueError) as exc:
        raise TokenMalformedError("token claims have the wrong shape") from exc


def parse_bearer(header: str | None) -> str:
    if header is None or not header.strip():
        raise UnauthenticatedError()
    if not header.startswith(BEARER_PREFIX):
        raise TokenMalformedError("expected 'Bearer <token>' authorization header")

    token = header.removeprefix(BEARER_PREFIX).strip()
    if not token:
        raise TokenMalformedError("empty bearer token")
    return token
