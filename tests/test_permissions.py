from __future__ import annotations

import uuid

import pytest

from eventboard.auth.permissions import DEFAULT_ROLES, Permission, parse_permissions
from eventboard.auth.policy import (
    can_act_on,
    ensure_any_role,
    ensure_permission,
    has_any_permission,
    has_any_role,
    has_permission,
    has_role,
    is_owner,
)
from eventboard.auth.principal import Principal
from eventboard.auth.roles import RoleRegistry
from eventboard.services.exceptions import NotFoundError, PermissionDeniedError, ValidationError


def _principal(role_name: str, permissions, *, is_active: bool = True) -> Principal:
    return Principal(
        id=uuid.uuid4(),
        username=f"{role_name}_user",
        email=f"{role_name}@example.com",
        role_id=1,
        role_name=role_name,
        permissions=frozenset(permissions),
        is_active=is_active,
    )


def test_parse_permissions_accepts_list_and_csv():
    assert parse_permissions(["approve_events", " READ_ALL_EVENTS "]) == {
        Permission.APPROVE_EVENTS,
        Permission.READ_ALL_EVENTS,
    }
    assert parse_permissions("read_own_events,create_own_events") == {
        Permission.READ_OWN_EVENTS,
        Permission.CREATE_OWN_EVENTS,
    }
    assert parse_permissions(None) == frozenset()


def test_parse_permissions_drops_unknown_tokens():
    # "all_events" contains "all" but must not be read as the wildcard
    assert parse_permissions(["all_events", "approve_events"]) == {Permission.APPROVE_EVENTS}


@pytest.mark.parametrize("role_name", sorted(DEFAULT_ROLES))
def test_wildcard_grants_everything_and_only_wildcard_does(role_name):
    _, permissions = DEFAULT_ROLES[role_name]
    principal = _principal(role_name, permissions)

    grants_all = all(has_permission(principal, p) for p in Permission)
    assert grants_all == (Permission.ALL in permissions)


def test_any_permission_matches_one_of_many():
    moderator = _principal("moderator", DEFAULT_ROLES["moderator"][1])
    user = _principal("user", DEFAULT_ROLES["user"][1])

    wanted = [Permission.UPDATE_ANY_EVENT, Permission.MANAGE_USERS]
    assert has_any_permission(moderator, wanted)
    assert not has_any_permission(user, wanted)
    assert not has_any_permission(None, wanted)


def test_role_checks_are_exact_but_wildcard_passes():
    moderator = _principal("moderator", DEFAULT_ROLES["moderator"][1])
    superuser = _principal("superuser", {Permission.ALL})

    assert has_role(moderator, "moderator")
    assert not has_role(moderator, "mod")
    assert not has_role(moderator, "admin")
    assert has_any_role(moderator, ["admin", "moderator"])
    assert has_role(superuser, "admin")


def test_inactive_principal_fails_every_gate():
    admin = _principal("admin", {Permission.ALL}, is_active=False)

    assert not has_permission(admin, Permission.READ_ALL_EVENTS)
    assert not has_role(admin, "admin")
    assert not can_act_on(admin, admin.id)


def test_can_act_on_owner_or_permission():
    user = _principal("user", DEFAULT_ROLES["user"][1])
    moderator = _principal("moderator", DEFAULT_ROLES["moderator"][1])
    owner_id = user.id

    assert is_owner(user, owner_id)
    assert can_act_on(user, owner_id, required=[Permission.UPDATE_ANY_EVENT])
    assert can_act_on(moderator, owner_id, required=[Permission.UPDATE_ANY_EVENT])
    assert not can_act_on(user, uuid.uuid4(), required=[Permission.UPDATE_ANY_EVENT])
    assert not can_act_on(user, owner_id, required=[], owner_bypass=False)


def test_ensure_helpers_raise_permission_denied():
    user = _principal("user", DEFAULT_ROLES["user"][1])

    with pytest.raises(PermissionDeniedError):
        ensure_permission(user, Permission.APPROVE_EVENTS)
    with pytest.raises(PermissionDeniedError):
        ensure_any_role(user, ["admin"])
    assert ensure_permission(user, Permission.READ_OWN_EVENTS) is user


def test_registry_resolves_seeded_roles(db_session):
    registry = RoleRegistry.load(db_session)

    admin = registry.resolve_role_by_name("admin")
    assert registry.resolve_permissions(admin.id) == {Permission.ALL}

    moderator = registry.resolve_role_by_name("moderator")
    assert Permission.APPROVE_EVENTS in registry.resolve_permissions(moderator.id)

    with pytest.raises(NotFoundError):
        registry.resolve_role_by_name("ghost")
    with pytest.raises(ValidationError) as exc:
        registry.resolve_permissions(9999)
    assert exc.value.code == "INVALID_ROLE"
