from __future__ import annotations

import enum
import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventboard.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from eventboard.models.user import User


class EventStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.Index("ix_events_date", "date"),
        sa.Index("ix_events_is_approved", "is_approved"),
        # is_approved <=> approved_by and approved_at are both set
        sa.CheckConstraint(
            "(is_approved AND approved_by IS NOT NULL AND approved_at IS NOT NULL)"
            " OR (NOT is_approved AND approved_by IS NULL AND approved_at IS NULL)",
            name="ck_events_approval_fields",
        ),
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Plain id, not a foreign key: the approval record outlives the approver's account
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    organizer: Mapped[User] = relationship(lazy="joined")

    @property
    def status(self) -> EventStatus:
        return EventStatus.APPROVED if self.is_approved else EventStatus.PENDING

    @property
    def organizer_username(self) -> str | None:
        return self.organizer.username if self.organizer is not None else None
