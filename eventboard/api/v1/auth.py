from __future__ import annotations

from fastapi import APIRouter, status

from eventboard.api.v1.schemas.auth import AuthTokensOut, LoginIn, MeOut
from eventboard.api.v1.schemas.users import UserCreate, UserOut
from eventboard.auth.credentials import verify_credentials
from eventboard.auth.deps import CurrentPrincipal, DBSession
from eventboard.auth.jwt import issue_access_token
from eventboard.auth.permissions import serialize_permissions
from eventboard.auth.roles import RoleRegistry
from eventboard.core.config import settings
from eventboard.services import users_service
from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import (
    AuthenticationError,
    UnknownAccountError,
    WrongPasswordError,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _tokens_for(db: DBSession, user) -> AuthTokensOut:
    principal = RoleRegistry.load(db).principal_for(user)
    return AuthTokensOut(
        access_token=issue_access_token(principal),
        expires_in=settings.access_token_ttl_seconds,
        user=UserOut.model_validate(user),
    )


@router.post("/signup", response_model=AuthTokensOut, status_code=status.HTTP_201_CREATED)
def signup(payload: UserCreate, db: DBSession):
    user = users_service.create_user(db, payload)
    return _tokens_for(db, user)


@router.post("/login", response_model=AuthTokensOut)
def login(payload: LoginIn, db: DBSession):
    try:
        principal = verify_credentials(db, payload.email, payload.password)
    except (UnknownAccountError, WrongPasswordError) as exc:
        # Don't tell callers which half of the pair was wrong
        raise AuthenticationError(
            ErrorCode.INVALID_CREDENTIALS, "invalid email or password"
        ) from exc

    user = users_service.get_user(db, principal.id)
    return AuthTokensOut(
        access_token=issue_access_token(principal),
        expires_in=settings.access_token_ttl_seconds,
        user=UserOut.model_validate(user),
    )


@router.get("/me", response_model=MeOut)
def me(principal: CurrentPrincipal):
    return MeOut(
        user_id=principal.id,
        username=principal.username,
        email=principal.email,
        role_id=principal.role_id,
        role_name=principal.role_name,
        permissions=serialize_permissions(principal.permissions),
    )
