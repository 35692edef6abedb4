from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from eventboard.api.v1.schemas.users import RoleIn, RoleOut, RoleUpdate
from eventboard.auth.deps import DBSession, require_role
from eventboard.services import roles_service

router = APIRouter(
    prefix="/roles",
    tags=["roles"],
    dependencies=[Depends(require_role("admin"))],
)


@router.get("", response_model=list[RoleOut])
def list_roles(db: DBSession):
    return roles_service.list_roles(db)


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(payload: RoleIn, db: DBSession):
    return roles_service.create_role(db, payload)


@router.patch("/{role_id}", response_model=RoleOut)
def update_role(role_id: int, payload: RoleUpdate, db: DBSession):
    return roles_service.update_role(db, role_id, payload)


@router.delete("/{role_id}")
def delete_role(role_id: int, db: DBSession):
    moved = roles_service.delete_role(db, role_id)
    return {"status": "deleted", "users_reassigned": moved}
