from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventboard.api.v1.schemas.users import RoleIn, RoleUpdate
from eventboard.auth.permissions import parse_permissions, serialize_permissions
from eventboard.auth.roles import RoleRegistry
from eventboard.core.config import settings
from eventboard.models import Role, User
from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = structlog.get_logger()


def _clean_permissions(tokens: Iterable[str]) -> list[str]:
    tokens = list(tokens)
    permissions = parse_permissions(tokens)
    if len(permissions) != len({t.strip().lower() for t in tokens if t.strip()}):
        raise ValidationError("unknown permission in list", field="permissions")
    return serialize_permissions(permissions)


def _clean_name(name: str) -> str:
    cleaned = name.strip().lower()
    if not cleaned:
        raise ValidationError("role name is required", field="name")
    return cleaned


def list_roles(db: Session) -> list[Role]:
    return RoleRegistry.load(db).roles()


def get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError(ErrorCode.ROLE_NOT_FOUND, "role not found")
    return role


def _commit_role(db: Session, role: Role) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(ErrorCode.DUPLICATE_ROLE, f"role {role.name!r} already exists") from exc


def create_role(db: Session, payload: RoleIn) -> Role:
    name = _clean_name(payload.name)
    if db.scalar(select(Role.id).where(Role.name == name)) is not None:
        raise ConflictError(ErrorCode.DUPLICATE_ROLE, f"role {name!r} already exists")

    role = Role(
        name=name,
        description=payload.description,
        permissions=_clean_permissions(payload.permissions),
    )
    db.add(role)
    _commit_role(db, role)
    db.refresh(role)

    logger.info("role_created", role_id=role.id, role=role.name)
    return role


def update_role(db: Session, role_id: int, payload: RoleUpdate) -> Role:
    role = get_role(db, role_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("no changes provided")

    if "name" in changes and changes["name"] is not None:
        name = _clean_name(changes["name"])
        if role.name == settings.default_role_name and name != role.name:
            raise ValidationError("the default role cannot be renamed", field="name")
        clash = db.scalar(select(Role.id).where(Role.name == name, Role.id != role.id))
        if clash is not None:
            raise ConflictError(ErrorCode.DUPLICATE_ROLE, f"role {name!r} already exists")
        role.name = name
    if "description" in changes:
        role.description = changes["description"]
    if "permissions" in changes and changes["permissions"] is not None:
        role.permissions = _clean_permissions(changes["permissions"])

    db.add(role)
    _commit_role(db, role)
    db.refresh(role)

    logger.info("role_updated", role_id=role.id, fields=sorted(changes))
    return role


def delete_role(db: Session, role_id: int) -> int:
    """Delete a role, moving its users to the default role. Returns users moved."""
    role = get_role(db, role_id)
    registry = RoleRegistry.load(db)
    fallback = registry.resolve_role_by_name(settings.default_role_name)
    if fallback.id == role.id:
        raise ValidationError("the default role cannot be deleted", field="role_id")

    result = db.execute(
        update(User)
        .where(User.role_id == role.id)
        .values(role_id=fallback.id)
        .execution_options(synchronize_session=False)
    )
    db.delete(role)
    db.commit()
    # Users loaded earlier in this session still point at the old role
    db.expire_all()

    moved = result.rowcount or 0
    logger.info("role_deleted", role_id=role_id, users_reassigned=moved)
    return moved
