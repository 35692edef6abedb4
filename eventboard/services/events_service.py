from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Select, func, or_, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventboard.api.v1.schemas.events import EventCreate, EventUpdate, ensure_utc
from eventboard.auth.permissions import Permission
from eventboard.auth.policy import (
    ensure_can_act_on,
    ensure_permission,
    is_privileged,
)
from eventboard.auth.principal import Principal
from eventboard.db import LIKE_ESCAPE, escape_like
from eventboard.models import Event
from eventboard.services.error_codes import ErrorCode
from eventboard.services.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)

logger = structlog.get_logger()

FIELD_LIMITS: dict[str, tuple[int, int]] = {
    "title": (3, 100),
    "description": (10, 1000),
    "address": (5, 200),
}
EDITABLE_FIELDS = ("title", "description", "date", "address")

# Holders of any of these see pending and rejected events too
READ_ALL = (Permission.READ_ALL_EVENTS, Permission.APPROVE_EVENTS)
EDIT_ANY = (Permission.UPDATE_ANY_EVENT, Permission.APPROVE_EVENTS)
DELETE_ANY = (Permission.DELETE_ANY_EVENT, Permission.APPROVE_EVENTS)

MAX_PAGE_SIZE = 100


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- validation ------------------------------------------------------------


def _clean_text(field: str, value: Any) -> str:
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field} is required", field=field)

    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be just blanks or whitespace", field=field)

    low, high = FIELD_LIMITS[field]
    if len(trimmed) < low:
        raise ValidationError(f"{field} must be at least {low} characters long", field=field)
    if len(trimmed) > high:
        raise ValidationError(f"{field} must be at most {high} characters long", field=field)
    return trimmed


def _clean_date(value: Any, now: datetime) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError("please provide a valid date", field="date") from exc
    if not isinstance(value, datetime):
        raise ValidationError("please provide a valid date", field="date")

    value = ensure_utc(value)
    if value <= now:
        raise ValidationError("event date must be in the future", field="date")
    return value


def _clean_fields(data: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for field, value in data.items():
        if field == "date":
            cleaned[field] = _clean_date(value, now)
        else:
            cleaned[field] = _clean_text(field, value)
    return cleaned


# --- visibility ------------------------------------------------------------


def can_read_all(principal: Principal | None) -> bool:
    return is_privileged(principal, READ_ALL)


def visibility_clause(principal: Principal | None) -> ColumnElement[bool]:
    if can_read_all(principal):
        return true()
    return Event.is_approved.is_(True)


def visible_events(principal: Principal | None) -> Select[tuple[Event]]:
    """Base query for every read path; nothing reads events without it."""
    return select(Event).where(visibility_clause(principal))


def _ordered(stmt: Select[tuple[Event]]) -> Select[tuple[Event]]:
    return stmt.order_by(Event.date.asc(), Event.created_at.asc())


# --- reads -----------------------------------------------------------------


def get_event(db: Session, principal: Principal | None, event_id: uuid.UUID) -> Event:
    event = db.scalar(visible_events(principal).where(Event.id == event_id))
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found")
    return event


def list_events(
    db: Session,
    principal: Principal | None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Event], int]:
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

    base = visible_events(principal)
    total = int(db.scalar(select(func.count()).select_from(base.subquery())) or 0)
    items = db.scalars(
        _ordered(base).offset((page - 1) * page_size).limit(page_size)
    ).all()
    return list(items), total


def list_events_by_organizer(
    db: Session, principal: Principal | None, organizer_id: uuid.UUID
) -> list[Event]:
    stmt = visible_events(principal).where(Event.organizer_id == organizer_id)
    return list(db.scalars(_ordered(stmt)).all())


def search_events(db: Session, principal: Principal | None, term: str | None) -> list[Event]:
    if term is None or not term.strip():
        raise ValidationError("search term is required", field="q")

    like = f"%{escape_like(term.strip())}%"
    stmt = visible_events(principal).where(
        or_(
            Event.title.ilike(like, escape=LIKE_ESCAPE),
            Event.description.ilike(like, escape=LIKE_ESCAPE),
        )
    )
    return list(db.scalars(_ordered(stmt)).all())


def list_upcoming_events(db: Session, principal: Principal | None) -> list[Event]:
    stmt = visible_events(principal).where(Event.date > _now())
    return list(db.scalars(_ordered(stmt)).all())


def list_events_in_range(
    db: Session,
    principal: Principal | None,
    start: datetime,
    end: datetime,
) -> list[Event]:
    start_utc = ensure_utc(start)
    end_utc = ensure_utc(end)
    if start_utc > end_utc:
        raise ValidationError("end must not be before start", field="end")

    stmt = visible_events(principal).where(Event.date.between(start_utc, end_utc))
    return list(db.scalars(_ordered(stmt)).all())


# --- transitions -----------------------------------------------------------


def _load_for_update(db: Session, event_id: uuid.UUID) -> Event:
    stmt = (
        select(Event)
        .where(Event.id == event_id)
        .with_for_update(of=Event)
        .execution_options(populate_existing=True)
    )
    event = db.scalar(stmt)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found")
    return event


def create_event(db: Session, principal: Principal | None, payload: EventCreate) -> Event:
    if principal is None:
        raise UnauthenticatedError()

    fields = _clean_fields(payload.model_dump(include=set(EDITABLE_FIELDS)), _now())
    event = Event(
        **fields,
        organizer_id=principal.id,
        is_approved=False,
        approved_by=None,
        approved_at=None,
    )
    db.add(event)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "organizer not found") from exc

    db.refresh(event)
    logger.info("event_created", event_id=str(event.id), organizer_id=str(principal.id))
    return event


def update_event(
    db: Session,
    principal: Principal,
    event_id: uuid.UUID,
    patch: EventUpdate | Mapping[str, Any],
) -> Event:
    if isinstance(patch, EventUpdate):
        patch_data = patch.model_dump(exclude_unset=True)
    else:
        patch_data = dict(patch)

    if "organizer_id" in patch_data:
        raise ValidationError("organizer_id cannot be changed", field="organizer_id")
    unknown = sorted(set(patch_data) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"{unknown[0]} is not editable", field=unknown[0])

    event = _load_for_update(db, event_id)
    ensure_can_act_on(
        principal,
        event.organizer_id,
        required=EDIT_ANY,
        message="you can only update your own events",
    )

    # Approval state is untouched by edits
    for key, value in _clean_fields(patch_data, _now()).items():
        setattr(event, key, value)

    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info(
        "event_updated",
        event_id=str(event.id),
        actor_id=str(principal.id),
        fields=sorted(patch_data),
    )
    return event


def delete_event(db: Session, principal: Principal, event_id: uuid.UUID) -> None:
    event = _load_for_update(db, event_id)
    ensure_can_act_on(
        principal,
        event.organizer_id,
        required=DELETE_ANY,
        message="you can only delete your own events",
    )

    db.delete(event)
    db.commit()
    logger.info("event_deleted", event_id=str(event_id), actor_id=str(principal.id))


def _reload(db: Session, event_id: uuid.UUID) -> Event:
    event = db.get(Event, event_id, populate_existing=True)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND, "event not found")
    return event


def approve_event(db: Session, principal: Principal, event_id: uuid.UUID) -> Event:
    ensure_permission(principal, Permission.APPROVE_EVENTS)

    # Flag and approver fields flip together or not at all
    result = db.execute(
        update(Event)
        .where(Event.id == event_id, Event.is_approved.is_(False))
        .values(is_approved=True, approved_by=principal.id, approved_at=_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        _reload(db, event_id)
        raise ConflictError(ErrorCode.ALREADY_APPROVED, "event is already approved")

    db.commit()
    logger.info("event_approved", event_id=str(event_id), actor_id=str(principal.id))
    return _reload(db, event_id)


def reject_event(db: Session, principal: Principal, event_id: uuid.UUID) -> Event:
    ensure_permission(principal, Permission.APPROVE_EVENTS)

    result = db.execute(
        update(Event)
        .where(Event.id == event_id, Event.is_approved.is_(True))
        .values(is_approved=False, approved_by=None, approved_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        _reload(db, event_id)
        raise ConflictError(ErrorCode.ALREADY_UNAPPROVED, "event is already unapproved")

    db.commit()
    logger.info("event_rejected", event_id=str(event_id), actor_id=str(principal.id))
    return _reload(db, event_id)
