"""Load scores, rest buffers and scheduling feasibility for hair events.

Events passed in are duck-typed: anything with ``event_type``,
``scheduled_start`` and ``scheduled_end`` attributes works, including the
``CalendarEvent`` ORM model. Datetimes are naive wall-clock values.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from care_calendar.api.schemas.analysis import WeeklyLoadCapacity
from care_calendar.api.schemas.load import (
    EventLoadAssessment,
    EventLoadLevel,
    LoadLevel,
    RestBufferResult,
    WeeklyLoadStatus,
)
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.core.enums import LoadBand, RestUrgency, ThreeLevel
from care_calendar.core.numbers import round_half_up
from care_calendar.services import profile_analyzer

DEFAULT_EVENT_TYPE = "DEFAULT"

EVENT_LOAD_SCORES: Dict[str, int] = {
    "SALON_CHEMICAL": 100,
    "HEAT_FLAT_IRON": 85,
    "SALON_COLOR": 80,
    "PROTEIN_TREATMENT": 75,
    "WASH_DAY_CLARIFY": 70,
    "STYLE_INSTALL": 70,
    "SALON_BRAIDS": 70,
    "SALON_EXTENSIONS": 70,
    "HEAT_BLOWDRY": 65,
    "HEAT_CURLING": 65,
    "WASH_DAY_FULL": 55,
    "STYLE_TAKEDOWN": 50,
    "DEEP_CONDITION": 45,
    "STYLE_PROTECTIVE": 40,
    "SALON_TRIM": 35,
    "SALON_LOCS_MAINTENANCE": 35,
    "HOT_OIL_TREATMENT": 30,
    "WASH_DAY_COWASH": 25,
    "SCALP_TREATMENT": 20,
    "STYLE_REFRESH": 15,
    "DETANGLE_LIGHT": 15,
    "MOISTURE_REFRESH": 5,
    "OIL_SCALP": 5,
    DEFAULT_EVENT_TYPE: 30,
}

BASE_REST_HOURS: Dict[str, int] = {
    "WASH_DAY_FULL": 24,
    "WASH_DAY_COWASH": 12,
    "WASH_DAY_CLARIFY": 36,
    "DEEP_CONDITION": 12,
    "STYLE_INSTALL": 48,
    "STYLE_PROTECTIVE": 24,
    "STYLE_REFRESH": 6,
    "STYLE_TAKEDOWN": 24,
    "PROTEIN_TREATMENT": 48,
    "HOT_OIL_TREATMENT": 12,
    "SCALP_TREATMENT": 12,
    "SALON_TRIM": 24,
    "SALON_COLOR": 72,
    "SALON_CHEMICAL": 168,
    "SALON_EXTENSIONS": 48,
    "SALON_BRAIDS": 48,
    "SALON_LOCS_MAINTENANCE": 24,
    "HEAT_BLOWDRY": 48,
    "HEAT_FLAT_IRON": 72,
    "HEAT_CURLING": 48,
    "MOISTURE_REFRESH": 0,
    "OIL_SCALP": 0,
    "DETANGLE_LIGHT": 6,
    DEFAULT_EVENT_TYPE: 12,
}

# Lower bound of each band, checked highest first.
LOAD_BANDS: Tuple[Tuple[int, LoadBand], ...] = (
    (80, LoadBand.EXTREME),
    (60, LoadBand.HEAVY),
    (30, LoadBand.MEDIUM),
    (10, LoadBand.LIGHT),
)
HEAVY_THRESHOLD = 60
MEDIUM_THRESHOLD = 30
LIGHT_THRESHOLD = 10

# (profile attribute, level, factor); absent attributes contribute 1.0.
MULTIPLIER_FACTORS: Tuple[Tuple[str, ThreeLevel, float], ...] = (
    ("manipulation_tolerance", ThreeLevel.LOW, 1.5),
    ("manipulation_tolerance", ThreeLevel.HIGH, 0.8),
    ("tension_sensitivity", ThreeLevel.HIGH, 1.3),
    ("scalp_sensitivity", ThreeLevel.HIGH, 1.2),
    ("strand_thickness", ThreeLevel.LOW, 1.25),
    ("strand_thickness", ThreeLevel.HIGH, 0.9),
    ("porosity_level", ThreeLevel.HIGH, 1.15),
)

RECENT_LOAD_WINDOW = timedelta(hours=48)
# (cumulative recent load strictly above, recommended-hours scale, urgency)
CUMULATIVE_ESCALATIONS: Tuple[Tuple[int, float, RestUrgency], ...] = (
    (100, 1.5, RestUrgency.CRITICAL),
    (60, 1.25, RestUrgency.IMPORTANT),
)
DAILY_LOAD_LIMIT = 100
WEEKLY_HEAVY_WEIGHT = 80
WEEKLY_MEDIUM_WEIGHT = 45


def event_load_score(event_type: str) -> int:
    return EVENT_LOAD_SCORES.get(event_type, EVENT_LOAD_SCORES[DEFAULT_EVENT_TYPE])


def base_rest_hours(event_type: str) -> int:
    return BASE_REST_HOURS.get(event_type, BASE_REST_HOURS[DEFAULT_EVENT_TYPE])


def score_to_band(score: int) -> LoadBand:
    for threshold, band in LOAD_BANDS:
        if score >= threshold:
            return band
    return LoadBand.NONE


def load_level(score: int) -> LoadLevel:
    return LoadLevel(level=score_to_band(score), score=score)


def is_heavy(score: int) -> bool:
    return score >= HEAVY_THRESHOLD


def is_medium(score: int) -> bool:
    return MEDIUM_THRESHOLD <= score < HEAVY_THRESHOLD


def profile_multiplier(profile: HairProfile) -> float:
    """Product of the profile's rest factors."""
    multiplier = 1.0
    for attribute, level, factor in MULTIPLIER_FACTORS:
        if getattr(profile, attribute) == level:
            multiplier *= factor
    return multiplier


def start_of_week(moment: datetime) -> datetime:
    """Sunday 00:00 of the week containing ``moment``."""
    days_since_sunday = (moment.weekday() + 1) % 7
    return datetime.combine((moment - timedelta(days=days_since_sunday)).date(), datetime.min.time())


def _events_in_window(events: Iterable[Any], start: datetime, end: datetime) -> List[Any]:
    return [event for event in events if start <= event.scheduled_start < end]


def _rest_reasoning(profile: HairProfile, event_type: str, base_hours: int, cumulative_load: int) -> str:
    parts = ["Based on your hair profile,"]
    if profile.manipulation_tolerance == ThreeLevel.LOW:
        parts.append("low manipulation tolerance requires extended rest.")
    if profile.tension_sensitivity == ThreeLevel.HIGH:
        parts.append("high tension sensitivity means gentle recovery is important.")
    if cumulative_load > 60:
        parts.append(f"Recent high-load events ({cumulative_load} load score) suggest extra rest.")
    else:
        readable = event_type.replace("_", " ").lower()
        parts.append(f"{readable} typically needs {base_hours}h recovery.")
    return " ".join(parts)


def calculate_rest_buffer(
    profile: HairProfile,
    event_type: str,
    recent_events: Optional[Sequence[Any]] = None,
    now: Optional[datetime] = None,
) -> RestBufferResult:
    """
    Rest needed after an event of ``event_type``.

    Heavy events that ended within the last 48 hours escalate the recommended
    rest: above 100 combined load by 1.5x (CRITICAL), above 60 by 1.25x
    (IMPORTANT).
    """
    now = now or datetime.now()
    base_hours = base_rest_hours(event_type)
    # Rest hours are quoted from the multiplier at two decimals.
    multiplier = round(profile_multiplier(profile), 2)
    required_hours = round_half_up(base_hours * 0.5 * multiplier)
    recommended_hours = round_half_up(base_hours * multiplier)

    cumulative_load = 0
    if recent_events:
        window_start = now - RECENT_LOAD_WINDOW
        cumulative_load = sum(
            event_load_score(event.event_type)
            for event in recent_events
            if event.scheduled_end > window_start and is_heavy(event_load_score(event.event_type))
        )

    urgency = RestUrgency.SUGGESTED if required_hours > 0 else RestUrgency.NONE
    for threshold, scale, escalated in CUMULATIVE_ESCALATIONS:
        if cumulative_load > threshold:
            recommended_hours = round_half_up(recommended_hours * scale)
            urgency = escalated
            break

    return RestBufferResult(
        required_hours=required_hours,
        recommended_hours=recommended_hours,
        reasoning=_rest_reasoning(profile, event_type, base_hours, cumulative_load),
        urgency=urgency,
        next_available_slot=now + timedelta(hours=recommended_hours),
    )


def max_weekly_load(capacity: WeeklyLoadCapacity) -> int:
    return capacity.max_heavy_days * WEEKLY_HEAVY_WEIGHT + capacity.max_medium_days * WEEKLY_MEDIUM_WEIGHT


def _latest_prior_event(events: Iterable[Any], moment: datetime) -> Optional[Any]:
    prior = [event for event in events if event.scheduled_end <= moment]
    if not prior:
        return None
    return max(prior, key=lambda event: event.scheduled_end)


def assess_event_load(
    profile: HairProfile,
    event_type: str,
    proposed_date: datetime,
    existing_events: Sequence[Any],
    capacity: Optional[WeeklyLoadCapacity] = None,
) -> EventLoadAssessment:
    """Judge whether an event of ``event_type`` can start at ``proposed_date``."""
    capacity = capacity or profile_analyzer.weekly_load_capacity(profile)
    score = event_load_score(event_type)
    warnings: List[str] = []
    can_schedule = True

    day_start = datetime.combine(proposed_date.date(), datetime.min.time())
    same_day = _events_in_window(existing_events, day_start, day_start + timedelta(days=1))
    cumulative_today = score + sum(event_load_score(event.event_type) for event in same_day)

    week_start = start_of_week(proposed_date)
    week_events = _events_in_window(existing_events, week_start, week_start + timedelta(days=7))
    week_scores = [event_load_score(event.event_type) for event in week_events]
    heavy_this_week = sum(1 for value in week_scores if is_heavy(value))
    medium_this_week = sum(1 for value in week_scores if is_medium(value))

    if is_heavy(score) and heavy_this_week >= capacity.max_heavy_days:
        can_schedule = False
        warnings.append(
            f"Weekly limit of {capacity.max_heavy_days} heavy events reached. Consider rescheduling."
        )
    if is_medium(score) and medium_this_week >= capacity.max_medium_days:
        warnings.append(f"Approaching weekly limit of {capacity.max_medium_days} medium events.")
    if cumulative_today > DAILY_LOAD_LIMIT:
        warnings.append("Daily load exceeds recommended maximum. Hair may be stressed.")

    last_event = _latest_prior_event(existing_events, proposed_date)
    if last_event is not None:
        hours_since = (proposed_date - last_event.scheduled_end).total_seconds() / 3600
        required_rest = base_rest_hours(last_event.event_type) * profile_multiplier(profile)
        if hours_since < required_rest * 0.5:
            can_schedule = False
            warnings.append(
                f"Insufficient rest since last event ({round_half_up(hours_since)}h vs "
                f"{round_half_up(required_rest * 0.5)}h minimum required)."
            )
        elif hours_since < required_rest:
            warnings.append(
                f"Less than recommended rest since last event. "
                f"{round_half_up(required_rest - hours_since)}h more rest would be ideal."
            )

    remaining = max(0, max_weekly_load(capacity) - sum(week_scores) - score)
    return EventLoadAssessment(
        event_type=event_type,
        load_level=load_level(score),
        rest_buffer_hours=base_rest_hours(event_type),
        cumulative_load_today=cumulative_today,
        weekly_load_remaining=remaining,
        can_schedule=can_schedule,
        warnings=warnings,
    )


def weekly_load_status(
    profile: HairProfile,
    week_start: datetime,
    events: Sequence[Any],
    capacity: Optional[WeeklyLoadCapacity] = None,
) -> WeeklyLoadStatus:
    capacity = capacity or profile_analyzer.weekly_load_capacity(profile)
    week_events = _events_in_window(events, week_start, week_start + timedelta(days=7))
    scores = [(event, event_load_score(event.event_type)) for event in week_events]

    heavy_used = sum(1 for _, value in scores if is_heavy(value))
    medium_used = sum(1 for _, value in scores if is_medium(value))
    current_load = sum(value for _, value in scores)
    max_load = max_weekly_load(capacity)
    busy_days = {event.scheduled_start.date() for event, value in scores if value >= LIGHT_THRESHOLD}
    rest_days = 7 - len(busy_days)
    overloaded = current_load > max_load or heavy_used > capacity.max_heavy_days

    if overloaded:
        recommendation = (
            "Your hair needs more rest this week. Consider rescheduling some events or keeping them low-manipulation."
        )
    elif rest_days < capacity.recommended_rest_days:
        recommendation = f"Try to keep at least {capacity.recommended_rest_days - rest_days} more days free for rest."
    elif heavy_used == capacity.max_heavy_days:
        recommendation = "You've used all heavy event slots. Keep remaining days light."
    else:
        recommendation = "Your weekly load is balanced. Keep up the good routine!"

    return WeeklyLoadStatus(
        current_load=current_load,
        max_load=max_load,
        heavy_events_used=heavy_used,
        heavy_events_remaining=max(0, capacity.max_heavy_days - heavy_used),
        medium_events_used=medium_used,
        medium_events_remaining=max(0, capacity.max_medium_days - medium_used),
        rest_days_this_week=rest_days,
        rest_days_needed=capacity.recommended_rest_days,
        overloaded=overloaded,
        recommendation=recommendation,
    )


def suggest_optimal_time(
    profile: HairProfile,
    event_type: str,
    existing_events: Sequence[Any],
    preferred_start: Optional[datetime] = None,
) -> datetime:
    """Earliest start at or after ``preferred_start`` that honours the last event's full rest."""
    preferred_start = preferred_start or datetime.now()
    last_event = _latest_prior_event(existing_events, preferred_start)
    if last_event is None:
        return preferred_start
    rest = timedelta(hours=base_rest_hours(last_event.event_type) * profile_multiplier(profile))
    return max(preferred_start, last_event.scheduled_end + rest)


def all_event_load_levels() -> List[EventLoadLevel]:
    levels = [
        EventLoadLevel(event_type=event_type, load_level=load_level(score))
        for event_type, score in EVENT_LOAD_SCORES.items()
        if event_type != DEFAULT_EVENT_TYPE
    ]
    levels.sort(key=lambda entry: entry.load_level.score, reverse=True)
    return levels
