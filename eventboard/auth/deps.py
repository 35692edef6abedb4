from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from eventboard.auth.permissions import Permission
from eventboard.auth.policy import (
    authenticate,
    ensure_any_permission,
    ensure_any_role,
)
from eventboard.auth.principal import Principal
from eventboard.db import get_db

DBSession = Annotated[Session, Depends(get_db)]


def get_current_principal(request: Request, db: DBSession) -> Principal:
    return authenticate(db, request.headers.get("Authorization"))


def get_optional_principal(request: Request, db: DBSession) -> Principal | None:
    # Anonymous readers are fine; a header that is present must still be valid
    header = request.headers.get("Authorization")
    if header is None:
        return None
    return authenticate(db, header)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


def require_any_permission(*permissions: Permission) -> Callable[..., Principal]:
    def _dependency(principal: CurrentPrincipal) -> Principal:
        return ensure_any_permission(principal, permissions)

    return _dependency


def require_permission(permission: Permission) -> Callable[..., Principal]:
    return require_any_permission(permission)


def require_any_role(*role_names: str) -> Callable[..., Principal]:
    def _dependency(principal: CurrentPrincipal) -> Principal:
        return ensure_any_role(principal, role_names)

    return _dependency


def require_role(role_name: str) -> Callable[..., Principal]:
    return require_any_role(role_name)
