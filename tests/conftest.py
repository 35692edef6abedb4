from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select, update

# Ensure the app is configured for tests before it is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test_jwt_secret_32_chars_minimum!")
os.environ.setdefault("ACCESS_TOKEN_TTL_SECONDS", "900")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from eventboard.api.v1.schemas.users import UserCreate  # noqa: E402
from eventboard.auth.roles import RoleRegistry, seed_default_roles  # noqa: E402
from eventboard.db import SessionLocal, engine  # noqa: E402
from eventboard.main import app  # noqa: E402
from eventboard.models import Base, Role, User  # noqa: E402
from eventboard.services import users_service  # noqa: E402

DEFAULT_PASSWORD = "StrongPass123"


@pytest.fixture(autouse=True)
def clean_db():
    # Fresh schema and seed roles for every test
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_roles(db)
    finally:
        db.close()
    yield


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def future_iso(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def event_payload(**overrides) -> dict:
    payload = {
        "title": "Meetup",
        "description": "A ten+ char description",
        "date": future_iso(),
        "address": "123 Main Street",
    }
    payload.update(overrides)
    return payload


def signup(client: TestClient, username: str, email: str, password: str = DEFAULT_PASSWORD):
    return client.post(
        "/v1/auth/signup",
        json={"username": username, "email": email, "password": password},
    )


def login(client: TestClient, email: str, password: str = DEFAULT_PASSWORD):
    return client.post("/v1/auth/login", json={"email": email, "password": password})


def set_role(db_session, email: str, role_name: str) -> None:
    role = db_session.scalar(select(Role).where(Role.name == role_name))
    db_session.execute(update(User).where(User.email == email).values(role_id=role.id))
    db_session.commit()


def make_account(client: TestClient, db_session, username: str, role_name: str = "user") -> str:
    """Sign up, promote to role_name, and return a fresh access token."""
    email = f"{username}@example.com"
    resp = signup(client, username, email)
    assert resp.status_code == 201, resp.text
    if role_name != "user":
        set_role(db_session, email, role_name)
    resp = login(client, email)
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def create_user(db_session, username: str, role_name: str = "user") -> User:
    user = users_service.create_user(
        db_session,
        UserCreate(username=username, email=f"{username}@example.com", password=DEFAULT_PASSWORD),
    )
    if role_name != "user":
        role = RoleRegistry.load(db_session).resolve_role_by_name(role_name)
        user = users_service.change_role(db_session, user.id, role.id)
    return user


def principal_for(db_session, user: User):
    return RoleRegistry.load(db_session).principal_for(
        db_session.get(User, user.id, populate_existing=True)
    )
