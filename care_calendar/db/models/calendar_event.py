"""Hair calendar event ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from care_calendar.db.base import Base
from care_calendar.db.types import JSONBCompat, WallClockDateTime


class CalendarEvent(Base):
    __tablename__ = "hair_calendar_events"
    __table_args__ = (
        Index("ix_hair_calendar_events_user_id", "user_id"),
        Index("ix_hair_calendar_events_user_start", "user_id", "scheduled_start"),
        Index("ix_hair_calendar_events_status", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    event_category = Column(String(length=50), nullable=False)
    event_type = Column(String(length=50), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    scheduled_start = Column(WallClockDateTime(), nullable=False)
    scheduled_end = Column(WallClockDateTime(), nullable=False)
    load_level = Column(String(length=20), nullable=True)
    requires_rest_buffer = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    recommended_rest_hours_after = Column(Integer, nullable=True)
    status = Column(String(length=20), nullable=False, server_default=sa_text("'PLANNED'"), default="PLANNED")
    completion_quality = Column(String(length=20), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    linked_ritual_id = Column(Text, nullable=True)
    linked_booking_id = Column(UUID(as_uuid=True), nullable=True)
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONBCompat, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def duration(self):
        return self.scheduled_end - self.scheduled_start
