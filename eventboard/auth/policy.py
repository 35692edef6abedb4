from __future__ import annotations

import uuid
from collections.abc import Iterable

import structlog
from sqlalchemy.orm import Session

from eventboard.auth.jwt import parse_bearer, verify_access_token
from eventboard.auth.permissions import Permission, grants, grants_any
from eventboard.auth.principal import Principal
from eventboard.auth.roles import RoleRegistry
from eventboard.models import User
from eventboard.services.exceptions import (
    AccountDeactivatedError,
    PermissionDeniedError,
    TokenInvalidError,
)

logger = structlog.get_logger()


def authenticate(db: Session, authorization: str | None) -> Principal:
    """Resolve a bearer header into a fresh Principal.

    The token only proves who the caller was when it was issued. The account
    and its role are re-read here so deactivation and role changes apply on
    the very next request.
    """
    token = parse_bearer(authorization)
    claims = verify_access_token(token)

    user = db.get(User, claims.user_id)
    if user is None:
        raise TokenInvalidError()
    if not user.is_active:
        logger.info("token_rejected", reason="deactivated", user_id=str(user.id))
        raise AccountDeactivatedError()

    return RoleRegistry.load(db).principal_for(user)


def has_permission(principal: Principal | None, permission: Permission) -> bool:
    if principal is None or not principal.is_active:
        return False
    return grants(principal.permissions, permission)


def has_any_permission(principal: Principal | None, permissions: Iterable[Permission]) -> bool:
    if principal is None or not principal.is_active:
        return False
    return grants_any(principal.permissions, permissions)


def has_role(principal: Principal | None, role_name: str) -> bool:
    return has_any_role(principal, [role_name])


def has_any_role(principal: Principal | None, role_names: Iterable[str]) -> bool:
    if principal is None or not principal.is_active:
        return False
    # A wildcard holder passes role gates too
    if Permission.ALL in principal.permissions:
        return True
    return principal.role_name in set(role_names)


def is_owner(principal: Principal | None, owner_id: uuid.UUID | None) -> bool:
    if principal is None or owner_id is None:
        return False
    return principal.id == owner_id


def is_privileged(principal: Principal | None, permissions: Iterable[Permission]) -> bool:
    return has_any_permission(principal, permissions)


def can_act_on(
    principal: Principal | None,
    owner_id: uuid.UUID | None,
    *,
    required: Iterable[Permission] = (),
    owner_bypass: bool = True,
) -> bool:
    """Ownership-or-permission gate shared by every record-level action."""
    if principal is None or not principal.is_active:
        return False
    if owner_bypass and is_owner(principal, owner_id):
        return True
    return is_privileged(principal, required)


def ensure_permission(principal: Principal | None, permission: Permission) -> Principal:
    if not has_permission(principal, permission):
        raise PermissionDeniedError(f"requires permission {permission.value!r}")
    return principal


def ensure_any_permission(
    principal: Principal | None, permissions: Iterable[Permission]
) -> Principal:
    permissions = list(permissions)
    if not has_any_permission(principal, permissions):
        names = ", ".join(p.value for p in permissions)
        raise PermissionDeniedError(f"requires one of: {names}")
    return principal


def ensure_any_role(principal: Principal | None, role_names: Iterable[str]) -> Principal:
    role_names = list(role_names)
    if not has_any_role(principal, role_names):
        raise PermissionDeniedError(f"requires role: {', '.join(role_names)}")
    return principal


def ensure_can_act_on(
    principal: Principal | None,
    owner_id: uuid.UUID | None,
    *,
    required: Iterable[Permission] = (),
    owner_bypass: bool = True,
    message: str | None = None,
) -> Principal:
    if not can_act_on(principal, owner_id, required=required, owner_bypass=owner_bypass):
        raise PermissionDeniedError(message)
    return principal
