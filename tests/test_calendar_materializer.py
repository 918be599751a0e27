from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from care_calendar.api.schemas.profile import HairProfile
from care_calendar.core.enums import CompletionQuality, ConflictResolution, EventCategory, EventStatus
from care_calendar.db.models.calendar_event import CalendarEvent
from care_calendar.db.session import enable_sqlite_savepoints
from care_calendar.services import calendar_materializer, calendar_store
from care_calendar.services.calendar_materializer import ScheduleGenerationOptions
from care_calendar.services.calendar_store import SqlCalendarEventStore, StorageError

# Plan for this profile: heavy coily wash day Saturday 09:00-12:00 plus a
# ten-minute moisture refresh on Tuesday, Thursday and Friday mornings.
PROFILE = HairProfile(pattern_family="COILY", porosity_level="HIGH")
WASH_DAY = "Full Wash Day (Coily)"
REFRESH = "Daily Moisture Refresh"

# 2026-03-01 is a Sunday.
WEEK_START = datetime(2026, 3, 1)
BEFORE_WEEK = datetime(2026, 2, 27, 12, 0)


@pytest.fixture()
def session():
    engine = enable_sqlite_savepoints(
        create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    CalendarEvent.__table__.create(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def store(session):
    return SqlCalendarEventStore(session)


def _event_fields(user_id, start, minutes=60, **overrides) -> dict:
    fields = {
        "user_id": user_id,
        "event_category": EventCategory.HAIR_RITUAL.value,
        "event_type": "SALON_TRIM",
        "title": "Salon Trim",
        "scheduled_start": start,
        "scheduled_end": start + timedelta(minutes=minutes),
        "load_level": "STANDARD",
        "status": EventStatus.PLANNED.value,
    }
    fields.update(overrides)
    return fields


def _add_event(session, user_id, start, minutes=60, **overrides) -> CalendarEvent:
    event = CalendarEvent(**_event_fields(user_id, start, minutes, **overrides))
    session.add(event)
    session.commit()
    return event


def _events(session, user_id, category=None):
    query = session.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)
    if category is not None:
        query = query.filter(CalendarEvent.event_category == category.value)
    return query.order_by(CalendarEvent.scheduled_start.asc()).all()


def _generate(store, user_id, weeks=1, now=BEFORE_WEEK, **option_overrides):
    options = ScheduleGenerationOptions(start_date=WEEK_START, weeks_to_generate=weeks, **option_overrides)
    return calendar_materializer.generate_calendar(store, user_id, PROFILE, options, now=now)


@pytest.mark.parametrize("weeks", [0, 5])
def test_generation_options_reject_out_of_range_weeks(weeks: int) -> None:
    with pytest.raises(ValueError):
        ScheduleGenerationOptions(weeks_to_generate=weeks)


def test_windows_overlap_is_half_open() -> None:
    nine, ten, eleven = (datetime(2026, 3, 3, hour) for hour in (9, 10, 11))

    assert calendar_materializer.windows_overlap(nine, ten, nine, eleven) is True
    assert calendar_materializer.windows_overlap(nine, ten, ten, eleven) is False
    assert calendar_materializer.windows_overlap(ten, eleven, nine, ten) is False


def test_generate_single_week(session, store) -> None:
    user_id = uuid4()

    result = _generate(store, user_id)

    assert result.success is True
    assert result.events_created == 8
    assert result.events_skipped == 0
    assert result.conflicts == []
    assert result.next_scheduled_date == datetime(2026, 3, 3, 9, 0)
    assert result.weekly_load_score == 105

    rituals = _events(session, user_id, EventCategory.HAIR_RITUAL)
    assert [(event.title, event.scheduled_start) for event in rituals] == [
        (REFRESH, datetime(2026, 3, 3, 9, 0)),
        (REFRESH, datetime(2026, 3, 5, 9, 0)),
        (REFRESH, datetime(2026, 3, 6, 9, 0)),
        (WASH_DAY, datetime(2026, 3, 7, 9, 0)),
    ]
    wash = rituals[-1]
    assert wash.event_type == "WASH_DAY_FULL"
    assert wash.scheduled_end == datetime(2026, 3, 7, 12, 0)
    assert wash.load_level == "HEAVY"
    assert wash.requires_rest_buffer is True
    assert wash.recommended_rest_hours_after == 28
    assert wash.linked_ritual_id == "wash-day-full-coily"
    assert wash.metadata_json == {"template_id": "wash-day-full-coily", "time_of_day": "MORNING", "week_index": 0}
    assert all(event.status == EventStatus.PLANNED.value for event in rituals)
    assert rituals[0].requires_rest_buffer is False

    [rest] = _events(session, user_id, EventCategory.REST_BUFFER)
    assert rest.title == "Recovery Day"
    assert rest.event_type == "REST_DAY"
    assert rest.scheduled_start == datetime(2026, 3, 7, 13, 0)
    assert rest.scheduled_end == datetime(2026, 3, 8, 13, 0)
    assert rest.linked_ritual_id == "wash-day-full-coily"

    prompts = _events(session, user_id, EventCategory.EDUCATION_PROMPT)
    assert [(event.title, event.scheduled_start) for event in prompts] == [
        ("Understanding Your Porosity", datetime(2026, 3, 3, 20, 0)),
        ("Protein-Moisture Balance", datetime(2026, 3, 5, 20, 0)),
        ("Protective Styling Tips", datetime(2026, 3, 7, 20, 0)),
    ]
    assert all(event.scheduled_end - event.scheduled_start == timedelta(minutes=15) for event in prompts)


def test_education_prompts_only_in_first_week(session, store) -> None:
    user_id = uuid4()

    result = _generate(store, user_id, weeks=2)

    assert result.events_created == 13
    assert len(_events(session, user_id, EventCategory.EDUCATION_PROMPT)) == 3
    second_week = [event for event in _events(session, user_id) if event.metadata_json and event.metadata_json["week_index"] == 1]
    assert len(second_week) == 4


def test_optional_event_kinds_can_be_turned_off(session, store) -> None:
    user_id = uuid4()

    result = _generate(store, user_id, include_rest_buffers=False, include_education_prompts=False)

    assert result.events_created == 4
    assert {event.event_category for event in _events(session, user_id)} == {EventCategory.HAIR_RITUAL.value}


def test_conflicting_placements_are_skipped(session, store) -> None:
    user_id = uuid4()
    _add_event(session, user_id, datetime(2026, 3, 7, 10, 0), title="Braiding Appointment")
    # Ends exactly when the Tuesday refresh starts.
    _add_event(session, user_id, datetime(2026, 3, 3, 8, 0), title="Early Trim")
    _add_event(session, user_id, datetime(2026, 3, 5, 9, 0), title="Skipped Trim", status=EventStatus.SKIPPED.value)
    _add_event(session, user_id, datetime(2026, 3, 3, 20, 0), title="Evening Detangle")

    result = _generate(store, user_id)

    assert result.events_created == 5
    assert result.events_skipped == 2
    assert [(conflict.proposed_event, conflict.existing_event) for conflict in result.conflicts] == [
        (WASH_DAY, "Braiding Appointment"),
        ("Understanding Your Porosity", "Evening Detangle"),
    ]
    assert all(conflict.resolution == ConflictResolution.SKIPPED for conflict in result.conflicts)
    assert result.conflicts[0].date == datetime(2026, 3, 7, 9, 0)
    # No rest buffer without the heavy ritual it follows.
    assert _events(session, user_id, EventCategory.REST_BUFFER) == []


def test_other_users_events_do_not_conflict(session, store) -> None:
    _add_event(session, uuid4(), datetime(2026, 3, 7, 10, 0), title="Someone Else")
    user_id = uuid4()

    result = _generate(store, user_id)

    assert result.events_created == 8
    assert result.conflicts == []


def test_regenerate_replaces_future_rituals_only(session, store) -> None:
    user_id = uuid4()
    _generate(store, user_id)
    booking = _add_event(
        session,
        user_id,
        datetime(2026, 3, 7, 15, 0),
        title="Booked Silk Press",
        linked_booking_id=uuid4(),
    )
    now = datetime(2026, 3, 4, 12, 0)

    result = calendar_materializer.regenerate_on_profile_change(store, user_id, PROFILE, now=now)

    assert result.events_created == 9
    assert result.events_skipped == 0
    assert result.conflicts == []
    rituals = _events(session, user_id, EventCategory.HAIR_RITUAL)
    first_week = [event for event in rituals if event.scheduled_start < datetime(2026, 3, 8)]
    assert [event.scheduled_start for event in first_week] == [
        datetime(2026, 3, 3, 9, 0),
        datetime(2026, 3, 5, 9, 0),
        datetime(2026, 3, 6, 9, 0),
        datetime(2026, 3, 7, 9, 0),
        datetime(2026, 3, 7, 15, 0),
    ]
    assert booking.id in {event.id for event in rituals}
    assert len(rituals) == 9
    # Prompts from the first generation survive and none are added.
    assert len(_events(session, user_id, EventCategory.EDUCATION_PROMPT)) == 3


def test_failed_insert_is_counted_and_batch_continues(session) -> None:
    class FlakyStore(SqlCalendarEventStore):
        def create_event(self, **fields):
            if fields.get("title") == WASH_DAY:
                raise StorageError("disk full")
            return super().create_event(**fields)

    user_id = uuid4()

    result = _generate(FlakyStore(session), user_id)

    assert result.success is True
    assert result.events_created == 6
    assert result.events_skipped == 1
    assert _events(session, user_id, EventCategory.REST_BUFFER) == []


def test_generation_rolls_back_when_the_batch_fails(session) -> None:
    class FailsAfterInserts(SqlCalendarEventStore):
        def list_events(self, user_id, **filters):
            if filters.get("limit") == 1:
                raise StorageError("connection lost")
            return super().list_events(user_id, **filters)

    user_id = uuid4()

    with pytest.raises(StorageError):
        _generate(FailsAfterInserts(session), user_id)

    assert _events(session, user_id) == []


def test_store_transaction_rolls_back_on_error(session, store) -> None:
    user_id = uuid4()

    with pytest.raises(RuntimeError, match="boom"):
        with store.transaction(user_id):
            store.create_event(**_event_fields(user_id, WEEK_START + timedelta(hours=9)))
            store.create_event(**_event_fields(user_id, WEEK_START + timedelta(days=1, hours=9)))
            raise RuntimeError("boom")

    assert _events(session, user_id) == []


def test_nested_store_transactions_commit_once(session, store) -> None:
    user_id = uuid4()

    with store.transaction(user_id):
        with store.transaction(user_id):
            store.create_event(**_event_fields(user_id, WEEK_START + timedelta(hours=9)))
        with pytest.raises(RuntimeError):
            with store.transaction(user_id):
                raise RuntimeError("inner failure")
        store.create_event(**_event_fields(user_id, WEEK_START + timedelta(days=1, hours=9)))

    session.expire_all()
    assert len(_events(session, user_id)) == 2


def test_same_user_generations_are_serialised(tmp_path) -> None:
    engine = enable_sqlite_savepoints(
        create_engine(
            f"sqlite:///{tmp_path / 'calendar.db'}",
            connect_args={"check_same_thread": False},
            future=True,
        )
    )
    CalendarEvent.__table__.create(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    user_id = uuid4()
    timeline: list = []

    class RecordingStore(SqlCalendarEventStore):
        @contextmanager
        def transaction(self, user_id):
            with super().transaction(user_id):
                timeline.append("enter")
                # Hold the lock while the other thread arrives.
                time.sleep(0.05)
                try:
                    yield
                finally:
                    timeline.append("exit")

    start = threading.Barrier(2)
    results = []
    errors = []

    def _run() -> None:
        start.wait()
        try:
            with SessionLocal() as db:
                results.append(_generate(RecordingStore(db), user_id))
        except Exception as exc:  # reported by the errors assertion
            errors.append(exc)

    threads = [threading.Thread(target=_run) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    assert timeline == ["enter", "exit", "enter", "exit"]
    assert sorted(result.events_created for result in results) == [0, 8]
    assert sorted(result.events_skipped for result in results) == [0, 7]
    with SessionLocal() as db:
        assert len(_events(db, user_id)) == 8
    assert user_id not in calendar_store._user_locks
    engine.dispose()


def test_user_lock_is_reentrant_and_released() -> None:
    user_id = uuid4()

    with calendar_store.user_lock(user_id):
        with calendar_store.user_lock(user_id):
            assert calendar_store._user_locks[user_id].holders == 2

    assert user_id not in calendar_store._user_locks


def test_complete_event_records_quality(session, store) -> None:
    user_id = uuid4()
    event = _add_event(session, user_id, datetime(2026, 3, 3, 9, 0))

    result = calendar_materializer.complete_event(store, user_id, str(event.id), CompletionQuality.GOOD)

    assert result.success is True
    assert result.error is None
    assert result.event.status == EventStatus.COMPLETED.value
    assert result.event.completion_quality == "GOOD"
    assert result.event.completed_at is not None

    again = calendar_materializer.complete_event(store, user_id, event.id, CompletionQuality.POOR)
    assert again.success is False
    assert again.error == "invalid_transition"


@pytest.mark.parametrize("event_id,error", [("not-a-uuid", "invalid_event_id"), (str(uuid4()), "event_not_found")])
def test_mutations_report_unknown_events(store, event_id, error) -> None:
    user_id = uuid4()

    assert calendar_materializer.complete_event(store, user_id, event_id, CompletionQuality.GOOD).error == error
    assert calendar_materializer.skip_event(store, user_id, event_id).error == error
    rescheduled = calendar_materializer.reschedule_event(store, user_id, event_id, datetime(2026, 3, 4), PROFILE)
    assert rescheduled.success is False
    assert rescheduled.error == error


def test_events_of_other_users_are_not_found(session, store) -> None:
    event = _add_event(session, uuid4(), datetime(2026, 3, 3, 9, 0))

    result = calendar_materializer.skip_event(store, uuid4(), event.id)

    assert result.error == "event_not_found"


def test_skip_event_appends_reason_and_suggests_makeup(session, store) -> None:
    user_id = uuid4()
    event = _add_event(session, user_id, datetime(2026, 3, 3, 9, 0), description="Auto-scheduled light ritual")

    result = calendar_materializer.skip_event(store, user_id, event.id, "Travelling")

    assert result.success is True
    assert result.event.status == EventStatus.SKIPPED.value
    assert result.event.description == "Auto-scheduled light ritual\n\nSkipped: Travelling"
    assert result.suggested_makeup == datetime(2026, 3, 5, 9, 0)

    assert calendar_materializer.skip_event(store, user_id, event.id).error == "invalid_transition"


def test_skip_without_reason_keeps_description(session, store) -> None:
    user_id = uuid4()
    event = _add_event(session, user_id, datetime(2026, 3, 3, 9, 0), description="Keep me")

    result = calendar_materializer.skip_event(store, user_id, event.id)

    assert result.event.description == "Keep me"


def test_reschedule_keeps_duration_and_allows_later_completion(session, store) -> None:
    user_id = uuid4()
    event = _add_event(session, user_id, datetime(2026, 3, 3, 9, 0), minutes=10, event_type="MOISTURE_REFRESH")
    new_start = datetime(2026, 3, 4, 18, 0, tzinfo=timezone.utc)

    result = calendar_materializer.reschedule_event(store, user_id, event.id, new_start, PROFILE)

    assert result.success is True
    assert result.can_schedule is True
    assert result.warnings == []
    assert result.event.status == EventStatus.RESCHEDULED.value
    assert result.event.scheduled_start == datetime(2026, 3, 4, 18, 0)
    assert result.event.scheduled_end == datetime(2026, 3, 4, 18, 10)

    completed = calendar_materializer.complete_event(store, user_id, event.id, CompletionQuality.EXCELLENT)
    assert completed.success is True


def test_reschedule_applies_move_even_when_load_says_no(session, store) -> None:
    user_id = uuid4()
    _add_event(session, user_id, datetime(2026, 3, 7, 9, 0), minutes=180, event_type="WASH_DAY_FULL", title=WASH_DAY)
    protein = _add_event(session, user_id, datetime(2026, 3, 10, 19, 0), event_type="PROTEIN_TREATMENT")

    result = calendar_materializer.reschedule_event(
        store, user_id, protein.id, datetime(2026, 3, 7, 16, 0), HairProfile()
    )

    assert result.success is True
    assert result.can_schedule is False
    assert result.warnings == [
        "Daily load exceeds recommended maximum. Hair may be stressed.",
        "Insufficient rest since last event (4h vs 12h minimum required).",
    ]
    assert result.event.scheduled_start == datetime(2026, 3, 7, 16, 0)


def test_upcoming_rituals_window_and_weekly_load(session, store) -> None:
    user_id = uuid4()
    _generate(store, user_id)
    now = datetime(2026, 3, 4, 8, 0)

    response = calendar_materializer.get_upcoming_rituals(store, user_id, now=now)

    assert response.total_upcoming == 5
    assert [ritual.name for ritual in response.rituals] == [REFRESH, REFRESH, REFRESH, WASH_DAY, "Recovery Day"]
    overdue = response.rituals[0]
    assert overdue.is_overdue is True
    assert overdue.days_until == 0
    assert response.rituals[1].is_overdue is False
    assert response.next_wash_day == datetime(2026, 3, 7, 9, 0)
    assert response.weekly_load_status.current == 120
    assert response.weekly_load_status.max == 150
    assert response.weekly_load_status.percentage == 80


def test_upcoming_rituals_uses_profile_capacity_and_days_ahead(session, store) -> None:
    user_id = uuid4()
    _generate(store, user_id)
    now = datetime(2026, 3, 4, 8, 0)

    response = calendar_materializer.get_upcoming_rituals(store, user_id, days_ahead=1, profile=PROFILE, now=now)

    assert [ritual.scheduled_start for ritual in response.rituals] == [datetime(2026, 3, 3, 9, 0)]
    assert response.next_wash_day is None
    assert response.weekly_load_status.max == 225


def test_calendar_summary(session, store) -> None:
    user_id = uuid4()
    _generate(store, user_id)
    tuesday = _events(session, user_id, EventCategory.HAIR_RITUAL)[0]
    calendar_materializer.complete_event(store, user_id, tuesday.id, CompletionQuality.GOOD)
    now = datetime(2026, 3, 4, 8, 0)

    summary = calendar_materializer.get_calendar_summary(store, user_id, PROFILE, now=now)

    assert summary.this_week_load == 105
    assert summary.max_week_load == 225
    assert summary.overdue_count == 0
    assert summary.completed_this_week == 1
    assert summary.streak_days == 1
    assert summary.next_ritual is not None
    assert summary.next_ritual.scheduled_start == datetime(2026, 3, 5, 9, 0)

    thursday = _events(session, user_id, EventCategory.HAIR_RITUAL)[1]
    calendar_materializer.skip_event(store, user_id, thursday.id, "Busy")

    summary = calendar_materializer.get_calendar_summary(store, user_id, PROFILE, now=now)
    assert summary.this_week_load == 90
    assert summary.next_ritual.scheduled_start == datetime(2026, 3, 6, 9, 0)


def test_streak_counts_consecutive_completed_days(session, store) -> None:
    user_id = uuid4()
    for day in (2, 3, 5):
        _add_event(session, user_id, datetime(2026, 3, day, 9, 0), status=EventStatus.COMPLETED.value)
    # A gap on March 4th breaks the run ending yesterday.
    summary = calendar_materializer.get_calendar_summary(store, user_id, PROFILE, now=datetime(2026, 3, 6, 12, 0))
    assert summary.streak_days == 1

    summary = calendar_materializer.get_calendar_summary(store, user_id, PROFILE, now=datetime(2026, 3, 4, 12, 0))
    assert summary.streak_days == 2
    assert summary.completed_this_week == 3
