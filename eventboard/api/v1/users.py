from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from eventboard.api.v1.schemas.users import RoleChangeIn, UserOut, UserUpdate
from eventboard.auth.deps import CurrentPrincipal, DBSession, require_role
from eventboard.auth.permissions import Permission
from eventboard.auth.policy import ensure_can_act_on
from eventboard.auth.principal import Principal
from eventboard.services import users_service
from eventboard.services.exceptions import ValidationError

router = APIRouter(prefix="/users", tags=["users"])

AdminPrincipal = Annotated[Principal, Depends(require_role("admin"))]

# Self-service or account managers
SELF_OR_MANAGER = (Permission.MANAGE_USERS,)


@router.get("", response_model=list[UserOut])
def list_users(
    db: DBSession,
    admin: AdminPrincipal,
    query: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=50, ge=1, le=200),
):
    return users_service.list_users(db, query=query, limit=limit)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: uuid.UUID, db: DBSession, principal: CurrentPrincipal):
    ensure_can_act_on(principal, user_id, required=SELF_OR_MANAGER)
    return users_service.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: DBSession,
    principal: CurrentPrincipal,
):
    ensure_can_act_on(
        principal,
        user_id,
        required=SELF_OR_MANAGER,
        message="you can only update your own profile",
    )
    return users_service.update_profile(db, user_id, payload)


@router.put("/{user_id}/role", response_model=UserOut)
def change_role(user_id: uuid.UUID, payload: RoleChangeIn, db: DBSession, admin: AdminPrincipal):
    if user_id == admin.id:
        raise ValidationError("cannot change own role", field="user_id")
    return users_service.change_role(db, user_id, payload.role_id)


@router.post("/{user_id}/toggle-active", response_model=UserOut)
def toggle_active(user_id: uuid.UUID, db: DBSession, admin: AdminPrincipal):
    if user_id == admin.id:
        raise ValidationError("cannot deactivate own account", field="user_id")
    return users_service.toggle_active(db, user_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    db: DBSession,
    admin: AdminPrincipal,
):
    if user_id == admin.id:
        raise ValidationError("cannot delete own account", field="user_id")
    users_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
