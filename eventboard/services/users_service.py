from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventboard.api.v1.schemas.users import UserCreate, UserUpdate
from eventboard.auth.credentials import normalize_email
from eventboard.auth.password import hash_password, validate_password
from eventboard.auth.roles import RoleRegistry
from eventboard.core.config import settings
from eventboard.db import LIKE_ESCAPE, escape_like
from eventboard.models import Event, User
from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import (
    ConflictError,
    MalformedEmailError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger()

USERNAME_MIN = 3
USERNAME_MAX = 30


def _clean_username(value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationError("username is required", field="username")
    username = value.strip()
    if len(username) < USERNAME_MIN:
        raise ValidationError(
            f"username must be at least {USERNAME_MIN} characters long", field="username"
        )
    if len(username) > USERNAME_MAX:
        raise ValidationError(
            f"username must be at most {USERNAME_MAX} characters long", field="username"
        )
    return username


def _clean_email(value: str | None) -> str:
    try:
        return normalize_email(value)
    except MalformedEmailError as exc:
        raise ValidationError(exc.message, field="email") from exc


def _ensure_unique(
    db: Session,
    *,
    username: str | None = None,
    email: str | None = None,
    exclude_id: uuid.UUID | None = None,
) -> None:
    # A record never collides with itself
    if email is not None:
        stmt = select(User.id).where(User.email == email)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if db.scalar(stmt) is not None:
            raise ConflictError(ErrorCode.DUPLICATE_EMAIL, "email already registered")

    if username is not None:
        stmt = select(User.id).where(User.username == username)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if db.scalar(stmt) is not None:
            raise ConflictError(ErrorCode.DUPLICATE_USERNAME, "username already taken")


def _commit_unique(db: Session, user: User, *, username: str, email: str) -> None:
    """Commit, translating a store-level uniqueness violation into a conflict."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # Lost a race with a concurrent writer; report it like the pre-check would
        _ensure_unique(db, username=username, email=email, exclude_id=user.id)
        # Not a uniqueness clash, e.g. the role vanished before the commit
        logger.warning("user_write_conflict", user_id=str(user.id), error=str(exc.orig))
        raise ConflictError(
            ErrorCode.CONFLICT, "the change conflicts with a concurrent update; retry"
        ) from exc


def get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "user not found")
    return user


def list_users(db: Session, query: str | None = None, limit: int = 50) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc()).limit(limit)
    if query:
        like = f"%{escape_like(query.strip().lower())}%"
        stmt = stmt.where(
            or_(
                User.email.ilike(like, escape=LIKE_ESCAPE),
                User.username.ilike(like, escape=LIKE_ESCAPE),
            )
        )
    return list(db.scalars(stmt).all())


def create_user(db: Session, payload: UserCreate, role_id: int | None = None) -> User:
    username = _clean_username(payload.username)
    email = _clean_email(payload.email)
    validate_password(payload.password)

    registry = RoleRegistry.load(db)
    if role_id is None:
        role = registry.resolve_role_by_name(settings.default_role_name)
    else:
        role = registry.require_role_id(role_id)

    _ensure_unique(db, username=username, email=email)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(payload.password),
        role_id=role.id,
        is_active=True,
    )
    db.add(user)
    _commit_unique(db, user, username=username, email=email)
    db.refresh(user)

    logger.info("user_created", user_id=str(user.id), role=role.name)
    return user


def update_profile(
    db: Session, user_id: uuid.UUID, payload: UserUpdate | Mapping[str, Any]
) -> User:
    if isinstance(payload, UserUpdate):
        changes = payload.model_dump(exclude_unset=True)
    else:
        changes = dict(payload)

    if not changes:
        raise ValidationError("no changes provided")
    unknown = sorted(set(changes) - {"username", "email", "password"})
    if unknown:
        raise ValidationError(f"{unknown[0]} cannot be changed here", field=unknown[0])

    user = get_user(db, user_id)

    username = _clean_username(changes["username"]) if "username" in changes else None
    email = _clean_email(changes["email"]) if "email" in changes else None
    _ensure_unique(db, username=username, email=email, exclude_id=user.id)

    if username is not None:
        user.username = username
    if email is not None:
        user.email = email
    if "password" in changes:
        validate_password(changes["password"])
        user.password_hash = hash_password(changes["password"])

    db.add(user)
    _commit_unique(db, user, username=user.username, email=user.email)
    db.refresh(user)

    logger.info("user_updated", user_id=str(user.id), fields=sorted(changes))
    return user


def change_role(db: Session, user_id: uuid.UUID, role_id: int) -> User:
    user = get_user(db, user_id)
    role = RoleRegistry.load(db).require_role_id(role_id)

    user.role_id = role.id
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("user_role_changed", user_id=str(user.id), role=role.name)
    return user


def toggle_active(db: Session, user_id: uuid.UUID) -> User:
    user = get_user(db, user_id)
    user.is_active = not user.is_active
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(
        "user_activated" if user.is_active else "user_deactivated",
        user_id=str(user.id),
    )
    return user


def delete_user(db: Session, user_id: uuid.UUID) -> None:
    """Delete a user together with every event they organize."""
    user = get_user(db, user_id)

    result = db.execute(
        delete(Event)
        .where(Event.organizer_id == user.id)
        .execution_options(synchronize_session=False)
    )
    event_count = result.rowcount or 0
    db.delete(user)
    db.commit()

    logger.info("user_deleted", user_id=str(user_id), events_deleted=event_count)
