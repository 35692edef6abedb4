from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from eventboard.models import Role, User
from tests.conftest import auth_headers, event_payload, login, make_account, signup


def test_signup_returns_token_and_user(client: TestClient):
    resp = signup(client, "reg1", "Reg1@Example.com")
    assert resp.status_code == 201
    body = resp.json()
    assert body["access_token"]
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 900
    assert body["user"]["email"] == "reg1@example.com"
    assert body["user"]["role_name"] == "user"
    assert "password_hash" not in body["user"]


def test_signup_duplicate_email_is_conflict_without_new_row(client: TestClient, db_session):
    assert signup(client, "reg2", "reg2@example.com").status_code == 201

    resp = signup(client, "reg2b", "REG2@example.com")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "DUPLICATE_EMAIL"
    assert db_session.scalar(select(func.count()).select_from(User)) == 1


def test_signup_invalid_fields_are_400(client: TestClient):
    resp = signup(client, "reg3", "not-an-email")
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "email"

    resp = signup(client, "reg3", "reg3@example.com", password="short")
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "password"

    resp = client.post("/v1/auth/signup", json={"username": "reg3"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_login_then_me(client: TestClient):
    signup(client, "reg4", "reg4@example.com")

    resp = login(client, "reg4@example.com")
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    me = client.get("/v1/auth/me", headers=auth_headers(token))
    assert me.status_code == 200
    body = me.json()
    assert body["username"] == "reg4"
    assert body["role_name"] == "user"
    assert "create_own_events" in body["permissions"]


def test_login_does_not_reveal_which_credential_was_wrong(client: TestClient):
    signup(client, "reg5", "reg5@example.com")

    wrong_password = login(client, "reg5@example.com", "WrongPass999")
    unknown = login(client, "ghost@example.com")

    assert wrong_password.status_code == unknown.status_code == 401
    assert wrong_password.json()["detail"]["code"] == "INVALID_CREDENTIALS"
    assert unknown.json()["detail"]["code"] == "INVALID_CREDENTIALS"
    assert wrong_password.headers["www-authenticate"] == "Bearer"


def test_deactivated_account_cannot_login_and_loses_access(client: TestClient, db_session):
    user_token = make_account(client, db_session, "victim")
    admin_token = make_account(client, db_session, "root", role_name="admin")
    victim = db_session.scalar(select(User).where(User.username == "victim"))

    resp = client.post(
        f"/v1/users/{victim.id}/toggle-active", headers=auth_headers(admin_token)
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    # The old token is still well-formed but the account state is re-read per request
    me = client.get("/v1/auth/me", headers=auth_headers(user_token))
    assert me.status_code == 401
    assert me.json()["detail"]["code"] == "ACCOUNT_DEACTIVATED"

    relogin = login(client, "victim@example.com")
    assert relogin.status_code == 401
    assert relogin.json()["detail"]["code"] == "ACCOUNT_DEACTIVATED"


def test_role_change_takes_effect_on_next_request(client: TestClient, db_session):
    user_token = make_account(client, db_session, "climber")
    admin_token = make_account(client, db_session, "root", role_name="admin")
    organizer_token = make_account(client, db_session, "host")

    event = client.post("/v1/events", json=event_payload(), headers=auth_headers(organizer_token))
    assert event.status_code == 201
    event_id = event.json()["id"]

    denied = client.post(f"/v1/events/{event_id}/approve", headers=auth_headers(user_token))
    assert denied.status_code == 403

    moderator_id = db_session.scalar(select(Role.id).where(Role.name == "moderator"))
    climber = db_session.scalar(select(User).where(User.username == "climber"))
    resp = client.put(
        f"/v1/users/{climber.id}/role",
        json={"role_id": moderator_id},
        headers=auth_headers(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["role_name"] == "moderator"

    # Same token, new role
    allowed = client.post(f"/v1/events/{event_id}/approve", headers=auth_headers(user_token))
    assert allowed.status_code == 200
    assert allowed.json()["is_approved"] is True


def test_missing_or_bad_authorization_is_401(client: TestClient):
    assert client.get("/v1/auth/me").json()["detail"]["code"] == "UNAUTHENTICATED"

    cases = {
        "Token abc": "TOKEN_MALFORMED",
        "Bearer not-a-jwt": "TOKEN_MALFORMED",
    }
    for header, code in cases.items():
        resp = client.get("/v1/auth/me", headers={"Authorization": header})
        assert resp.status_code == 401
        assert resp.json()["detail"]["code"] == code

    # A present but invalid header is rejected even on public reads
    resp = client.get("/v1/events", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_token_for_deleted_user_is_invalid(client: TestClient, db_session):
    token = make_account(client, db_session, "gone")
    admin_token = make_account(client, db_session, "root", role_name="admin")
    gone = db_session.scalar(select(User).where(User.username == "gone"))

    assert client.delete(f"/v1/users/{gone.id}", headers=auth_headers(admin_token)).status_code == 204

    resp = client.get("/v1/auth/me", headers=auth_headers(token))
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "TOKEN_INVALID"


def test_admin_routes_blocked_for_user_and_moderator(client: TestClient, db_session):
    for username, role in (("plain", "user"), ("mod", "moderator")):
        token = make_account(client, db_session, username, role_name=role)
        assert client.get("/v1/users", headers=auth_headers(token)).status_code == 403
        assert client.get("/v1/roles", headers=auth_headers(token)).status_code == 403


def test_admin_allowed_everywhere(client: TestClient, db_session):
    token = make_account(client, db_session, "root", role_name="admin")

    users = client.get("/v1/users", headers=auth_headers(token))
    assert users.status_code == 200
    assert [u["username"] for u in users.json()] == ["root"]

    roles = client.get("/v1/roles", headers=auth_headers(token))
    assert roles.status_code == 200
    assert {r["name"] for r in roles.json()} == {"admin", "user", "moderator"}

    ev = client.post("/v1/events", json=event_payload(), headers=auth_headers(token))
    assert ev.status_code == 201


def test_users_can_read_and_edit_only_themselves(client: TestClient, db_session):
    token = make_account(client, db_session, "self")
    make_account(client, db_session, "neighbour")
    me = db_session.scalar(select(User).where(User.username == "self"))
    other = db_session.scalar(select(User).where(User.username == "neighbour"))

    assert client.get(f"/v1/users/{me.id}", headers=auth_headers(token)).status_code == 200
    assert client.get(f"/v1/users/{other.id}", headers=auth_headers(token)).status_code == 403

    resp = client.patch(
        f"/v1/users/{me.id}", json={"username": "myself"}, headers=auth_headers(token)
    )
    assert resp.status_code == 200
    assert resp.json()["username"] == "myself"

    resp = client.patch(
        f"/v1/users/{other.id}", json={"username": "hacked"}, headers=auth_headers(token)
    )
    assert resp.status_code == 403

    # role is not a self-service field
    resp = client.patch(f"/v1/users/{me.id}", json={"role_id": 1}, headers=auth_headers(token))
    assert resp.status_code == 400


def test_admin_cannot_lock_themselves_out(client: TestClient, db_session):
    token = make_account(client, db_session, "root", role_name="admin")
    root = db_session.scalar(select(User).where(User.username == "root"))

    assert client.post(
        f"/v1/users/{root.id}/toggle-active", headers=auth_headers(token)
    ).status_code == 400
    assert client.delete(f"/v1/users/{root.id}", headers=auth_headers(token)).status_code == 400


def test_role_admin_roundtrip(client: TestClient, db_session):
    token = make_account(client, db_session, "root", role_name="admin")

    created = client.post(
        "/v1/roles",
        json={"name": "curator", "permissions": ["read_all_events"]},
        headers=auth_headers(token),
    )
    assert created.status_code == 201
    role_id = created.json()["id"]

    dup = client.post("/v1/roles", json={"name": "curator"}, headers=auth_headers(token))
    assert dup.status_code == 409

    bad = client.post(
        "/v1/roles", json={"name": "wizard", "permissions": ["fly"]}, headers=auth_headers(token)
    )
    assert bad.status_code == 400

    deleted = client.delete(f"/v1/roles/{role_id}", headers=auth_headers(token))
    assert deleted.status_code == 200
    assert deleted.json() == {"status": "deleted", "users_reassigned": 0}
