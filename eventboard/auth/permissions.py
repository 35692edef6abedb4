from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

import structlog

logger = structlog.get_logger()


class Permission(str, Enum):
    READ_OWN_EVENTS = "read_own_events"
    CREATE_OWN_EVENTS = "create_own_events"
    UPDATE_OWN_EVENTS = "update_own_events"
    DELETE_OWN_EVENTS = "delete_own_events"
    READ_ALL_EVENTS = "read_all_events"
    APPROVE_EVENTS = "approve_events"
    UPDATE_ANY_EVENT = "update_any_event"
    DELETE_ANY_EVENT = "delete_any_event"
    MANAGE_USERS = "manage_users"

    # Wildcard: grants every capability
    ALL = "all"


PermissionSet = frozenset[Permission]


def parse_permissions(tokens: Iterable[str] | str | None) -> PermissionSet:
    """Turn stored permission tokens into a PermissionSet.

    Accepts a list of tokens or the legacy comma-separated string form
    (``"read_all_events,approve_events"``). Unknown tokens are dropped so a
    typo in the roles table can never widen access.
    """
    if tokens is None:
        return frozenset()
    if isinstance(tokens, str):
        tokens = tokens.split(",")

    parsed: set[Permission] = set()
    for raw in tokens:
        token = str(raw).strip().lower()
        if not token:
            continue
        try:
            parsed.add(Permission(token))
        except ValueError:
            logger.warning("unknown_permission_token", token=token)
    return frozenset(parsed)


def grants(permissions: PermissionSet, permission: Permission) -> bool:
    return Permission.ALL in permissions or permission in permissions


def grants_any(permissions: PermissionSet, candidates: Iterable[Permission]) -> bool:
    if Permission.ALL in permissions:
        return True
    return any(p in permissions for p in candidates)


def serialize_permissions(permissions: Iterable[Permission]) -> list[str]:
    return sorted(p.value for p in permissions)


# Seeded at bootstrap; ids are assigned by the store
DEFAULT_ROLES: dict[str, tuple[str, PermissionSet]] = {
    "admin": ("Administrator with full access", frozenset({Permission.ALL})),
    "user": (
        "Regular user with limited access",
        frozenset(
            {
                Permission.READ_OWN_EVENTS,
                Permission.CREATE_OWN_EVENTS,
                Permission.UPDATE_OWN_EVENTS,
                Permission.DELETE_OWN_EVENTS,
            }
        ),
    ),
    "moderator": (
        "Moderator with approval and management access",
        frozenset(
            {
                Permission.READ_ALL_EVENTS,
                Permission.APPROVE_EVENTS,
                Permission.DELETE_ANY_EVENT,
                Permission.UPDATE_ANY_EVENT,
            }
        ),
    ),
}
