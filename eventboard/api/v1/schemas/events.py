from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventboard.models.event import EventStatus


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and normalize aware ones to UTC."""
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class UTCMixin(BaseModel):
    @field_validator(
        "date",
        "approved_at",
        "created_at",
        "updated_at",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class EventCreate(UTCMixin, SchemaBase):
    # Lengths and blank checks live in the workflow so they raise field-named errors
    title: str
    description: str
    date: datetime
    address: str


class EventUpdate(UTCMixin, SchemaBase):
    # organizer_id is not editable; unknown keys are rejected outright
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    title: str | None = None
    description: str | None = None
    date: datetime | None = None
    address: str | None = None


class EventOut(UTCMixin, SchemaBase):
    id: UUID
    title: str
    description: str
    date: datetime
    address: str
    organizer_id: UUID
    organizer_username: str | None = None
    status: EventStatus
    is_approved: bool
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EventListOut(SchemaBase):
    items: list[EventOut]
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total: int = Field(ge=0)
