from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status

from eventboard.api.v1.schemas.events import EventCreate, EventListOut, EventOut, EventUpdate
from eventboard.auth.deps import (
    CurrentPrincipal,
    DBSession,
    OptionalPrincipal,
    require_permission,
)
from eventboard.auth.permissions import Permission
from eventboard.services import events_service

router = APIRouter(prefix="/events", tags=["events"])


# Static paths are declared before /{event_id} so they are not read as ids


@router.get("", response_model=EventListOut)
def list_events(
    db: DBSession,
    principal: OptionalPrincipal,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=events_service.MAX_PAGE_SIZE),
):
    items, total = events_service.list_events(db, principal, page=page, page_size=page_size)
    return EventListOut(
        items=[EventOut.model_validate(item) for item in items],
        page=page,
        page_size=page_size,
        total=total,
    )


@router.get("/search", response_model=list[EventOut])
def search_events(db: DBSession, principal: OptionalPrincipal, q: str = Query(min_length=1)):
    return events_service.search_events(db, principal, q)


@router.get("/upcoming", response_model=list[EventOut])
def upcoming_events(db: DBSession, principal: OptionalPrincipal):
    return events_service.list_upcoming_events(db, principal)


@router.get("/range", response_model=list[EventOut])
def events_in_range(
    db: DBSession,
    principal: OptionalPrincipal,
    start: datetime,
    end: datetime,
):
    return events_service.list_events_in_range(db, principal, start, end)


@router.get("/mine", response_model=list[EventOut])
def my_events(db: DBSession, principal: CurrentPrincipal):
    return events_service.list_events_by_organizer(db, principal, principal.id)


@router.get("/organizer/{organizer_id}", response_model=list[EventOut])
def events_by_organizer(organizer_id: uuid.UUID, db: DBSession, principal: OptionalPrincipal):
    return events_service.list_events_by_organizer(db, principal, organizer_id)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: uuid.UUID, db: DBSession, principal: OptionalPrincipal):
    return events_service.get_event(db, principal, event_id)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: DBSession, principal: CurrentPrincipal):
    return events_service.create_event(db, principal, payload)


@router.api_route("/{event_id}", methods=["PUT", "PATCH"], response_model=EventOut)
def update_event(
    event_id: uuid.UUID,
    payload: EventUpdate,
    db: DBSession,
    principal: CurrentPrincipal,
):
    return events_service.update_event(db, principal, event_id, payload)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: uuid.UUID, db: DBSession, principal: CurrentPrincipal):
    events_service.delete_event(db, principal, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/approve", response_model=EventOut)
def approve_event(
    event_id: uuid.UUID,
    db: DBSession,
    principal=Depends(require_permission(Permission.APPROVE_EVENTS)),
):
    return events_service.approve_event(db, principal, event_id)


@router.post("/{event_id}/reject", response_model=EventOut)
def reject_event(
    event_id: uuid.UUID,
    db: DBSession,
    principal=Depends(require_permission(Permission.APPROVE_EVENTS)),
):
    return events_service.reject_event(db, principal, event_id)
