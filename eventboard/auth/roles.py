from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from eventboard.auth.permissions import (
    DEFAULT_ROLES,
    PermissionSet,
    parse_permissions,
    serialize_permissions,
)
from eventboard.auth.principal import Principal
from eventboard.models import Role, User
from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger()


class RoleRegistry:
    """Role -> permission lookup over one snapshot of the roles table.

    Load a fresh registry per request so a permission check never runs
    against a role definition older than the request itself.
    """

    def __init__(self, roles: Iterable[Role]) -> None:
        self._by_id: dict[int, Role] = {}
        self._by_name: dict[str, Role] = {}
        self._permissions: dict[int, PermissionSet] = {}
        for role in roles:
            self._by_id[role.id] = role
            self._by_name[role.name] = role
            self._permissions[role.id] = parse_permissions(role.permissions)

    @classmethod
    def load(cls, db: Session) -> RoleRegistry:
        return cls(db.scalars(select(Role)).all())

    def roles(self) -> list[Role]:
        return sorted(self._by_id.values(), key=lambda r: r.id)

    def require_role_id(self, role_id: int) -> Role:
        role = self._by_id.get(role_id)
        if role is None:
            raise ValidationError(
                f"role {role_id} does not exist",
                field="role_id",
                code=ErrorCode.INVALID_ROLE,
            )
        return role

    def resolve_permissions(self, role_id: int) -> PermissionSet:
        self.require_role_id(role_id)
        return self._permissions[role_id]

    def resolve_role_by_name(self, name: str) -> Role:
        role = self._by_name.get(name)
        if role is None:
            raise NotFoundError(ErrorCode.ROLE_NOT_FOUND, f"role {name!r} not found")
        return role

    def principal_for(self, user: User) -> Principal:
        role = self.require_role_id(user.role_id)
        return Principal(
            id=user.id,
            username=user.username,
            email=user.email,
            role_id=role.id,
            role_name=role.name,
            permissions=self._permissions[role.id],
            is_active=user.is_active,
        )


def seed_default_roles(db: Session) -> list[Role]:
    existing = {r.name for r in db.scalars(select(Role)).all()}
    created: list[Role] = []
    for name, (description, permissions) in DEFAULT_ROLES.items():
        if name in existing:
            continue
        role = Role(
            name=name,
            description=description,
            permissions=serialize_permissions(permissions),
        )
        db.add(role)
        created.append(role)

    if created:
        db.commit()
        logger.info("roles_seeded", roles=[r.name for r in created])
    return created
