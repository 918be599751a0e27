"""Turn weekly ritual plans into dated calendar events and manage their lifecycle."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from care_calendar.api.schemas.calendar import (
    CalendarEventRead,
    CalendarSummary,
    EventMutationResult,
    RescheduleEventResult,
    ScheduleConflict,
    ScheduleGenerationResult,
    SkipEventResult,
    UpcomingRitual,
    UpcomingRitualsResponse,
    WeeklyLoadSnapshot,
)
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.core.config import settings
from care_calendar.core.context import bind_user
from care_calendar.core.enums import (
    CompletionQuality,
    ConflictResolution,
    EventCategory,
    EventStatus,
    LoadFactor,
    RitualType,
    TimeOfDay,
)
from care_calendar.core.numbers import round_half_up
from care_calendar.db.models.calendar_event import CalendarEvent
from care_calendar.observability.tracing import trace
from care_calendar.services import load_accountant, profile_analyzer
from care_calendar.services.calendar_store import CalendarEventStore, StorageError
from care_calendar.services.event_status import EventAction, InvalidTransition, apply_transition
from care_calendar.services.weekly_schedule import LOAD_SCORES, generate_ritual_plan, max_weekly_capacity

logger = logging.getLogger(__name__)

MIN_WEEKS = 1
MAX_WEEKS = 4

TIME_SLOTS: Dict[TimeOfDay, time] = {
    TimeOfDay.MORNING: time(9, 0),
    TimeOfDay.AFTERNOON: time(14, 0),
    TimeOfDay.EVENING: time(19, 0),
}

EVENT_TYPE_BY_RITUAL: Dict[RitualType, str] = {
    RitualType.WASH_DAY: "WASH_DAY_FULL",
    RitualType.DEEP_CONDITION: "DEEP_CONDITION",
    RitualType.PROTEIN_TREATMENT: "PROTEIN_TREATMENT",
    RitualType.SCALP_TREATMENT: "SCALP_TREATMENT",
    RitualType.MOISTURE_REFRESH: "MOISTURE_REFRESH",
    RitualType.STYLE_REFRESH: "STYLE_REFRESH",
    RitualType.HOT_OIL: "HOT_OIL_TREATMENT",
    RitualType.PROTECTIVE_STYLE: "STYLE_PROTECTIVE",
    RitualType.DETANGLE: "DETANGLE_LIGHT",
}

REST_BUFFER_EVENT_TYPE = "REST_DAY"
REST_BUFFER_GAP = timedelta(hours=1)
REST_BUFFER_LENGTH = timedelta(hours=24)

EDUCATION_EVENT_TYPE = "LEARNING_PROMPT"
EDUCATION_TIME = time(20, 0)
EDUCATION_LENGTH = timedelta(minutes=15)


@dataclass(frozen=True)
class EducationPrompt:
    title: str
    body: str
    day_of_week: int


EDUCATION_PROMPTS: Tuple[EducationPrompt, ...] = (
    EducationPrompt(
        title="Understanding Your Porosity",
        body=(
            "Your porosity level affects how your hair absorbs and retains moisture. "
            "Take a moment to observe how quickly your hair absorbs water."
        ),
        day_of_week=2,
    ),
    EducationPrompt(
        title="Protein-Moisture Balance",
        body=(
            "Healthy hair needs a balance of protein (strength) and moisture (flexibility). "
            "Notice how your hair feels today."
        ),
        day_of_week=4,
    ),
    EducationPrompt(
        title="Protective Styling Tips",
        body="Low manipulation helps retain length. Consider if your current style is protecting your ends.",
        day_of_week=6,
    ),
)

MAKEUP_DELAY = timedelta(days=2)


@dataclass
class ScheduleGenerationOptions:
    start_date: Optional[datetime] = None
    weeks_to_generate: int = 2
    replace_existing: bool = False
    include_rest_buffers: bool = True
    include_education_prompts: bool = True

    def __post_init__(self) -> None:
        if not MIN_WEEKS <= self.weeks_to_generate <= MAX_WEEKS:
            raise ValueError(
                f"weeks_to_generate must be between {MIN_WEEKS} and {MAX_WEEKS}, got {self.weeks_to_generate}"
            )


def wall_clock(moment: datetime) -> datetime:
    """Drop tzinfo while keeping the wall-clock reading."""
    return moment.replace(tzinfo=None) if moment.tzinfo else moment


def windows_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open windows [start, end) overlap; touching endpoints do not."""
    return start_a < end_b and start_b < end_a


def find_conflict(start: datetime, end: datetime, existing: Sequence[Any]) -> Optional[Any]:
    for event in existing:
        if windows_overlap(start, end, event.scheduled_start, event.scheduled_end):
            return event
    return None


def _at(day: date, slot: time) -> datetime:
    return datetime.combine(day, slot)


def _parse_event_id(event_id: str | UUID) -> Optional[UUID]:
    if isinstance(event_id, UUID):
        return event_id
    try:
        return UUID(str(event_id))
    except ValueError:
        return None


def _level_load(load_level: Optional[str]) -> int:
    try:
        return LOAD_SCORES[LoadFactor(load_level or LoadFactor.STANDARD.value)]
    except ValueError:
        return 0


def _max_week_load(profile: HairProfile) -> int:
    return max_weekly_capacity(profile_analyzer.weekly_load_capacity(profile))


def _days_until(start: datetime, now: datetime) -> int:
    return math.ceil((start - now).total_seconds() / 86400)


def _upcoming(event: CalendarEvent, now: datetime) -> UpcomingRitual:
    return UpcomingRitual(
        id=event.id,
        name=event.title,
        scheduled_start=event.scheduled_start,
        scheduled_end=event.scheduled_end,
        load_level=event.load_level or LoadFactor.STANDARD.value,
        event_type=event.event_type,
        status=event.status,
        is_overdue=event.scheduled_start < now and event.status == EventStatus.PLANNED.value,
        days_until=_days_until(event.scheduled_start, now),
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate_calendar(
    store: CalendarEventStore,
    user_id: UUID,
    profile: HairProfile,
    options: Optional[ScheduleGenerationOptions] = None,
    *,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> ScheduleGenerationResult:
    """
    Materialise the profile's weekly plan into PLANNED calendar events.

    Without ``replace_existing`` a placement overlapping any non-skipped event
    already stored for the user is skipped and reported as a conflict. With
    it, future unlinked HAIR_RITUAL events in range are deleted first and
    only future placements are created. A failed insert is counted as skipped
    and the batch carries on.
    """
    options = options or ScheduleGenerationOptions()
    now = wall_clock(now or datetime.now())
    plan = generate_ritual_plan(profile)
    week_start = load_accountant.start_of_week(wall_clock(options.start_date or now))
    range_end = week_start + timedelta(days=7 * options.weeks_to_generate)

    created = 0
    skipped = 0
    conflicts: List[ScheduleConflict] = []

    def _create(**fields: Any) -> bool:
        nonlocal created, skipped
        try:
            store.create_event(user_id=user_id, status=EventStatus.PLANNED.value, **fields)
        except StorageError:
            logger.exception(
                "Failed to persist calendar event",
                extra={"title": fields.get("title")},
            )
            skipped += 1
            return False
        created += 1
        return True

    def _conflicts_with(title: str, start: datetime, end: datetime, existing: Sequence[Any]) -> bool:
        nonlocal skipped
        clash = find_conflict(start, end, existing)
        if clash is None:
            return False
        conflicts.append(
            ScheduleConflict(
                date=start,
                proposed_event=title,
                existing_event=clash.title,
                resolution=ConflictResolution.SKIPPED,
            )
        )
        skipped += 1
        logger.debug("Skipped conflicting placement", extra={"title": title})
        return True

    metadata = {
        "weeks_to_generate": options.weeks_to_generate,
        "replace_existing": options.replace_existing,
        "week_start": week_start.isoformat(),
        "weekly_load": plan.load_summary.total_weekly_load,
    }
    with bind_user(user_id), trace(
        "calendar.generate",
        metadata=metadata,
        request_id=request_id,
    ) as generation_trace:
        with store.transaction(user_id):
            existing: Sequence[CalendarEvent] = []
            if options.replace_existing:
                store.delete_events(
                    user_id,
                    start=max(week_start, now),
                    end=range_end,
                    category=EventCategory.HAIR_RITUAL.value,
                )
            else:
                existing = store.list_events(
                    user_id,
                    start=week_start,
                    end=range_end,
                    exclude_statuses=[EventStatus.SKIPPED.value],
                )

            for week_index in range(options.weeks_to_generate):
                current_week = week_start + timedelta(days=7 * week_index)
                for slot in plan.weekly_schedule:
                    if slot.is_rest_day or not slot.rituals:
                        continue
                    day = (current_week + timedelta(days=slot.day_of_week)).date()
                    for ritual in slot.rituals:
                        start = _at(day, TIME_SLOTS[ritual.time_of_day])
                        end = start + timedelta(minutes=ritual.estimated_minutes)
                        if options.replace_existing:
                            # Past windows were not cleared, so they are left untouched.
                            if start < now:
                                continue
                        elif _conflicts_with(ritual.name, start, end, existing):
                            continue

                        event_type = EVENT_TYPE_BY_RITUAL[ritual.ritual_type]
                        is_heavy = ritual.load_level == LoadFactor.HEAVY
                        rest = load_accountant.calculate_rest_buffer(profile, event_type, now=now)
                        persisted = _create(
                            event_category=EventCategory.HAIR_RITUAL.value,
                            event_type=event_type,
                            title=ritual.name,
                            description=f"Auto-scheduled {ritual.load_level.value.lower()} ritual",
                            scheduled_start=start,
                            scheduled_end=end,
                            load_level=ritual.load_level.value,
                            requires_rest_buffer=is_heavy,
                            recommended_rest_hours_after=rest.recommended_hours,
                            linked_ritual_id=ritual.template_id,
                            metadata_json={
                                "template_id": ritual.template_id,
                                "time_of_day": ritual.time_of_day.value,
                                "week_index": week_index,
                            },
                        )
                        if persisted and is_heavy and options.include_rest_buffers:
                            rest_start = end + REST_BUFFER_GAP
                            _create(
                                event_category=EventCategory.REST_BUFFER.value,
                                event_type=REST_BUFFER_EVENT_TYPE,
                                title="Recovery Day",
                                description="Rest period after intensive ritual. Keep manipulation minimal.",
                                scheduled_start=rest_start,
                                scheduled_end=rest_start + REST_BUFFER_LENGTH,
                                load_level=LoadFactor.LIGHT.value,
                                requires_rest_buffer=False,
                                linked_ritual_id=ritual.template_id,
                            )

                if week_index == 0 and options.include_education_prompts:
                    for prompt in EDUCATION_PROMPTS:
                        start = _at((current_week + timedelta(days=prompt.day_of_week)).date(), EDUCATION_TIME)
                        end = start + EDUCATION_LENGTH
                        if not options.replace_existing and _conflicts_with(prompt.title, start, end, existing):
                            continue
                        _create(
                            event_category=EventCategory.EDUCATION_PROMPT.value,
                            event_type=EDUCATION_EVENT_TYPE,
                            title=prompt.title,
                            description=prompt.body,
                            scheduled_start=start,
                            scheduled_end=end,
                            load_level=LoadFactor.LIGHT.value,
                            requires_rest_buffer=False,
                        )

            upcoming = store.list_events(user_id, start=now, statuses=[EventStatus.PLANNED.value], limit=1)
            next_date = upcoming[0].scheduled_start if upcoming else None

        if generation_trace:
            generation_trace.update(
                metadata={"events_created": created, "events_skipped": skipped, "conflicts": len(conflicts)}
            )

    logger.info(
        "Calendar generated",
        extra={"user_id": str(user_id), "events_created": created, "events_skipped": skipped},
    )
    return ScheduleGenerationResult(
        success=True,
        events_created=created,
        events_skipped=skipped,
        conflicts=conflicts,
        next_scheduled_date=next_date,
        weekly_load_score=plan.load_summary.total_weekly_load,
    )


def regenerate_on_profile_change(
    store: CalendarEventStore,
    user_id: UUID,
    profile: HairProfile,
    *,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> ScheduleGenerationResult:
    """Replace future generated rituals after a profile update."""
    now = wall_clock(now or datetime.now())
    options = ScheduleGenerationOptions(
        start_date=now,
        weeks_to_generate=2,
        replace_existing=True,
        include_rest_buffers=True,
        include_education_prompts=False,
    )
    return generate_calendar(store, user_id, profile, options, now=now, request_id=request_id)


# ---------------------------------------------------------------------------
# Event mutations
# ---------------------------------------------------------------------------


def _resolve(
    store: CalendarEventStore, user_id: UUID, event_id: str | UUID, action: EventAction
) -> Tuple[Optional[CalendarEvent], Optional[EventStatus], Optional[str]]:
    parsed = _parse_event_id(event_id)
    if parsed is None:
        return None, None, "invalid_event_id"
    event = store.get_event(user_id, parsed)
    if event is None:
        return None, None, "event_not_found"
    try:
        target = apply_transition(event.status, action)
    except InvalidTransition as exc:
        logger.debug("Rejected event transition: %s", exc, extra={"event_id": str(parsed)})
        return event, None, "invalid_transition"
    return event, target, None


def complete_event(
    store: CalendarEventStore,
    user_id: UUID,
    event_id: str | UUID,
    quality: CompletionQuality,
    *,
    request_id: Optional[str] = None,
) -> EventMutationResult:
    with bind_user(user_id), trace(
        "calendar.complete",
        metadata={"event_id": str(event_id), "quality": quality.value},
        request_id=request_id,
    ):
        with store.transaction(user_id):
            event, target, error = _resolve(store, user_id, event_id, EventAction.COMPLETE)
            if error:
                return EventMutationResult(success=False, error=error)
            store.update_event(
                event,
                status=target.value,
                completion_quality=quality.value,
                completed_at=datetime.now(timezone.utc),
            )
    return EventMutationResult(success=True, event=CalendarEventRead.model_validate(event))


def skip_event(
    store: CalendarEventStore,
    user_id: UUID,
    event_id: str | UUID,
    reason: Optional[str] = None,
    *,
    request_id: Optional[str] = None,
) -> SkipEventResult:
    with bind_user(user_id), trace(
        "calendar.skip",
        metadata={"event_id": str(event_id), "has_reason": bool(reason)},
        request_id=request_id,
    ):
        with store.transaction(user_id):
            event, target, error = _resolve(store, user_id, event_id, EventAction.SKIP)
            if error:
                return SkipEventResult(success=False, error=error)
            description = event.description
            if reason:
                description = f"{event.description or ''}\n\nSkipped: {reason}"
            store.update_event(event, status=target.value, description=description)
            makeup = event.scheduled_start + MAKEUP_DELAY
    return SkipEventResult(success=True, event=CalendarEventRead.model_validate(event), suggested_makeup=makeup)


def reschedule_event(
    store: CalendarEventStore,
    user_id: UUID,
    event_id: str | UUID,
    new_start: datetime,
    profile: HairProfile,
    *,
    request_id: Optional[str] = None,
) -> RescheduleEventResult:
    """
    Move an event to ``new_start`` keeping its duration.

    The load assessment is advisory: the move is always applied and the
    verdict is reported through ``can_schedule`` and ``warnings``.
    """
    new_start = wall_clock(new_start)
    with bind_user(user_id), trace(
        "calendar.reschedule",
        metadata={"event_id": str(event_id), "new_start": new_start.isoformat()},
        request_id=request_id,
    ):
        with store.transaction(user_id):
            event, target, error = _resolve(store, user_id, event_id, EventAction.RESCHEDULE)
            if error:
                return RescheduleEventResult(success=False, error=error)
            others = store.list_events(
                user_id,
                exclude_statuses=[EventStatus.SKIPPED.value],
                exclude_id=event.id,
            )
            assessment = load_accountant.assess_event_load(profile, event.event_type, new_start, others)
            duration = event.duration
            store.update_event(
                event,
                scheduled_start=new_start,
                scheduled_end=new_start + duration,
                status=target.value,
            )
    return RescheduleEventResult(
        success=True,
        event=CalendarEventRead.model_validate(event),
        can_schedule=assessment.can_schedule,
        warnings=assessment.warnings,
    )


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------

UPCOMING_CATEGORIES = (EventCategory.HAIR_RITUAL.value, EventCategory.REST_BUFFER.value)


def get_upcoming_rituals(
    store: CalendarEventStore,
    user_id: UUID,
    days_ahead: Optional[int] = None,
    profile: Optional[HairProfile] = None,
    *,
    now: Optional[datetime] = None,
) -> UpcomingRitualsResponse:
    """Rituals and rest buffers from yesterday through ``days_ahead`` days out."""
    now = wall_clock(now or datetime.now())
    days_ahead = settings.upcoming_days_ahead if days_ahead is None else days_ahead
    skipped = [EventStatus.SKIPPED.value]

    events = store.list_events(
        user_id,
        start=now - timedelta(days=1),
        end=now + timedelta(days=days_ahead),
        end_inclusive=True,
        categories=UPCOMING_CATEGORIES,
        exclude_statuses=skipped,
    )
    rituals = [_upcoming(event, now) for event in events]
    next_wash = next(
        (event.scheduled_start for event in events if "WASH" in event.event_type and event.scheduled_start >= now),
        None,
    )

    week_start = load_accountant.start_of_week(now)
    week_events = store.list_events(
        user_id,
        start=week_start,
        end=week_start + timedelta(days=7),
        categories=UPCOMING_CATEGORIES,
        exclude_statuses=skipped,
    )
    current = sum(_level_load(event.load_level) for event in week_events)
    maximum = _max_week_load(profile) if profile is not None else settings.default_max_week_load
    percentage = round_half_up(current / maximum * 100) if maximum else 0

    return UpcomingRitualsResponse(
        rituals=rituals,
        total_upcoming=len(rituals),
        next_wash_day=next_wash,
        weekly_load_status=WeeklyLoadSnapshot(current=current, max=maximum, percentage=percentage),
    )


def _completion_streak(store: CalendarEventStore, user_id: UUID, now: datetime) -> int:
    lookback = settings.streak_lookback_days
    today = now.date()
    window_start = _at(today - timedelta(days=lookback), time.min)
    completed = store.list_events(
        user_id,
        start=window_start,
        end=_at(today, time.min),
        statuses=[EventStatus.COMPLETED.value],
    )
    completed_days = {event.scheduled_start.date() for event in completed}
    streak = 0
    day = today - timedelta(days=1)
    while streak < lookback and day in completed_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def get_calendar_summary(
    store: CalendarEventStore,
    user_id: UUID,
    profile: HairProfile,
    *,
    now: Optional[datetime] = None,
) -> CalendarSummary:
    now = wall_clock(now or datetime.now())
    week_start = load_accountant.start_of_week(now)
    week_events = store.list_events(
        user_id,
        start=week_start,
        end=week_start + timedelta(days=7),
        categories=[EventCategory.HAIR_RITUAL.value],
    )
    this_week_load = sum(
        _level_load(event.load_level) for event in week_events if event.status != EventStatus.SKIPPED.value
    )
    overdue = sum(
        1 for event in week_events if event.scheduled_start < now and event.status == EventStatus.PLANNED.value
    )
    completed = sum(1 for event in week_events if event.status == EventStatus.COMPLETED.value)

    upcoming = store.list_events(
        user_id,
        start=now,
        categories=[EventCategory.HAIR_RITUAL.value],
        statuses=[EventStatus.PLANNED.value],
        limit=1,
    )
    next_ritual = None
    if upcoming:
        next_ritual = _upcoming(upcoming[0], now)

    return CalendarSummary(
        next_ritual=next_ritual,
        this_week_load=this_week_load,
        max_week_load=_max_week_load(profile),
        overdue_count=overdue,
        completed_this_week=completed,
        streak_days=_completion_streak(store, user_id, now),
    )
