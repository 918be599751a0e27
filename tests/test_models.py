from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from care_calendar.db.base import Base
from care_calendar.db import models  # noqa: F401  ensure models are loaded
from care_calendar.db.models.calendar_event import CalendarEvent
from care_calendar.db.session import enable_sqlite_savepoints


def test_metadata_contains_calendar_table() -> None:
    assert "hair_calendar_events" in Base.metadata.tables


def test_metadata_column_keeps_database_name() -> None:
    table = Base.metadata.tables["hair_calendar_events"]

    assert "metadata" in table.columns
    assert CalendarEvent.__table__.c.metadata.key == "metadata_json"


def test_event_duration_is_window_length() -> None:
    start = datetime(2026, 3, 7, 9, 0)
    event = CalendarEvent(scheduled_start=start, scheduled_end=start + timedelta(minutes=90))

    assert event.duration == timedelta(minutes=90)


def test_scheduled_times_are_stored_as_wall_clock() -> None:
    engine = enable_sqlite_savepoints(
        create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool, future=True)
    )
    CalendarEvent.__table__.create(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    aware = datetime(2026, 3, 7, 9, 0, tzinfo=timezone(timedelta(hours=-5)))

    with SessionLocal() as db:
        event = CalendarEvent(
            user_id=uuid4(),
            event_category="HAIR_RITUAL",
            event_type="WASH_DAY_FULL",
            title="Wash Day",
            scheduled_start=aware,
            scheduled_end=aware + timedelta(hours=3),
        )
        db.add(event)
        db.commit()
        event_id = event.id

    with SessionLocal() as db:
        stored = db.get(CalendarEvent, event_id)
        assert stored.scheduled_start == datetime(2026, 3, 7, 9, 0)
        assert stored.scheduled_end == datetime(2026, 3, 7, 12, 0)
        assert stored.status == "PLANNED"
        assert stored.requires_rest_buffer is False
