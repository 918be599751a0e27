"""Greedy placement of ritual recommendations into a Sunday-first week."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from care_calendar.api.schemas.analysis import WeeklyLoadCapacity
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.api.schemas.rituals import (
    LoadSummary,
    PlacedRitual,
    RitualPlan,
    RitualRecommendation,
    WeeklyRitualSlot,
)
from care_calendar.core.enums import (
    LoadBalance,
    LoadFactor,
    PatternFamily,
    RitualFrequency,
    RitualPriority,
    RitualType,
    ThreeLevel,
    TimeOfDay,
)
from care_calendar.services import profile_analyzer, ritual_matcher

logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)

LOAD_SCORES: Dict[LoadFactor, int] = {
    LoadFactor.LIGHT: 15,
    LoadFactor.STANDARD: 35,
    LoadFactor.HEAVY: 60,
}
HEAVY_CAPACITY_WEIGHT = 60
MEDIUM_CAPACITY_WEIGHT = 35
OPTIMAL_RATIO = 0.6

REFRESH_TYPES = frozenset({RitualType.MOISTURE_REFRESH, RitualType.STYLE_REFRESH})
REFRESH_DAYS = (TUESDAY, THURSDAY, FRIDAY)
# Wash day and protein are only placed from these priorities.
CORE_PRIORITIES = frozenset({RitualPriority.ESSENTIAL, RitualPriority.RECOMMENDED})


def _empty_week() -> List[WeeklyRitualSlot]:
    return [WeeklyRitualSlot(day_of_week=index, day_name=name) for index, name in enumerate(DAY_NAMES)]


def _first_of_type(
    recommendations: Sequence[RitualRecommendation],
    ritual_types: frozenset,
    priorities: Optional[frozenset] = None,
) -> Optional[RitualRecommendation]:
    # Recommendations arrive sorted by priority, so the first hit ranks highest.
    return next(
        (
            rec
            for rec in recommendations
            if rec.template.ritual_type in ritual_types and (priorities is None or rec.priority in priorities)
        ),
        None,
    )


def _place(slot: WeeklyRitualSlot, recommendation: RitualRecommendation, time_of_day: TimeOfDay) -> None:
    template = recommendation.template
    slot.rituals.append(
        PlacedRitual(
            template_id=template.id,
            name=template.name,
            ritual_type=template.ritual_type,
            load_level=template.load_level,
            estimated_minutes=template.default_duration_minutes,
            time_of_day=time_of_day,
        )
    )
    slot.total_load += LOAD_SCORES[template.load_level]


def _carries_heavy(slot: WeeklyRitualSlot) -> bool:
    return any(ritual.load_level == LoadFactor.HEAVY for ritual in slot.rituals)


def build_weekly_schedule(
    recommendations: Sequence[RitualRecommendation],
    capacity: WeeklyLoadCapacity,
) -> List[WeeklyRitualSlot]:
    """
    Place rituals into a fixed seven-slot week (index 0 is Sunday).

    Placement order: an essential or recommended wash day Saturday morning
    (a HEAVY wash day rests Sunday), an essential or recommended protein
    treatment Wednesday evening within the heavy-day budget, scalp
    Monday evening, refresh rituals on empty Tuesday/Thursday/Friday
    mornings, then the lowest-load days become rest days until the
    recommended count is met.
    """
    week = _empty_week()
    heavy_days_used = 0

    wash_day = _first_of_type(recommendations, frozenset({RitualType.WASH_DAY}), CORE_PRIORITIES)
    if wash_day is not None:
        _place(week[SATURDAY], wash_day, TimeOfDay.MORNING)
        if wash_day.template.load_level == LoadFactor.HEAVY:
            heavy_days_used += 1
            week[SUNDAY].is_rest_day = True

    protein = _first_of_type(recommendations, frozenset({RitualType.PROTEIN_TREATMENT}), CORE_PRIORITIES)
    if protein is not None and protein.suggested_frequency != RitualFrequency.MONTHLY:
        protein_is_heavy = protein.template.load_level == LoadFactor.HEAVY
        if not protein_is_heavy or heavy_days_used < capacity.max_heavy_days:
            _place(week[WEDNESDAY], protein, TimeOfDay.EVENING)
            if protein_is_heavy:
                heavy_days_used += 1

    scalp = _first_of_type(recommendations, frozenset({RitualType.SCALP_TREATMENT}))
    if scalp is not None:
        _place(week[MONDAY], scalp, TimeOfDay.EVENING)

    refresh = _first_of_type(recommendations, REFRESH_TYPES)
    if refresh is not None and refresh.suggested_frequency != RitualFrequency.WEEKLY:
        for day in REFRESH_DAYS:
            slot = week[day]
            if not slot.rituals and not slot.is_rest_day:
                _place(slot, refresh, TimeOfDay.MORNING)

    rest_days = sum(1 for slot in week if slot.is_rest_day)
    if rest_days < capacity.recommended_rest_days:
        candidates = sorted(
            (slot for slot in week if not slot.is_rest_day and not _carries_heavy(slot)),
            key=lambda slot: (slot.total_load, slot.day_of_week),
        )
        for slot in candidates[: capacity.recommended_rest_days - rest_days]:
            slot.is_rest_day = True

    return week


def max_weekly_capacity(capacity: WeeklyLoadCapacity) -> int:
    return capacity.max_heavy_days * HEAVY_CAPACITY_WEIGHT + capacity.max_medium_days * MEDIUM_CAPACITY_WEIGHT


def calculate_load_summary(week: Sequence[WeeklyRitualSlot], capacity: WeeklyLoadCapacity) -> LoadSummary:
    total = sum(slot.total_load for slot in week)
    max_capacity = max_weekly_capacity(capacity)
    if total > max_capacity:
        balance = LoadBalance.OVER
    elif total >= max_capacity * OPTIMAL_RATIO:
        balance = LoadBalance.OPTIMAL
    else:
        balance = LoadBalance.UNDER
    return LoadSummary(total_weekly_load=total, max_capacity=max_capacity, balance=balance)


PATTERN_REASONS = {
    PatternFamily.COILY: "Coily textures thrive with regular moisture and minimal manipulation.",
    PatternFamily.KINKY: "Coily textures thrive with regular moisture and minimal manipulation.",
    PatternFamily.CURLY: "Curly hair benefits from balanced protein and moisture routines.",
    PatternFamily.WAVY: "Wavy textures do well with lightweight products and regular clarifying.",
}
POROSITY_REASONS = {
    ThreeLevel.HIGH: "High porosity requires frequent sealing to retain moisture.",
    ThreeLevel.LOW: "Low porosity benefits from heat during conditioning to open cuticles.",
}
BALANCE_REASONS = {
    LoadBalance.OPTIMAL: "Your weekly load is well balanced for your hair's tolerance.",
    LoadBalance.OVER: "Consider spreading heavy rituals across more days or simplifying some steps.",
    LoadBalance.UNDER: "You have room for additional treatments if needed.",
}


def plan_reasoning(
    profile: HairProfile,
    recommendations: Sequence[RitualRecommendation],
    summary: LoadSummary,
) -> List[str]:
    reasons: List[str] = []
    if profile.pattern_family in PATTERN_REASONS:
        reasons.append(PATTERN_REASONS[profile.pattern_family])
    if profile.porosity_level in POROSITY_REASONS:
        reasons.append(POROSITY_REASONS[profile.porosity_level])
    essential = sum(1 for rec in recommendations if rec.priority == RitualPriority.ESSENTIAL)
    if essential:
        reasons.append(f"{essential} essential ritual(s) address your hair's critical needs.")
    reasons.append(BALANCE_REASONS[summary.balance])
    return reasons


def generate_ritual_plan(profile: HairProfile) -> RitualPlan:
    """Analyse, match and place rituals for one profile."""
    analysis = profile_analyzer.analyze_profile(profile)
    recommendations = ritual_matcher.match_rituals(
        profile, analysis.care_needs, analysis.health_score.overall
    )
    week = build_weekly_schedule(recommendations, analysis.weekly_load_capacity)
    summary = calculate_load_summary(week, analysis.weekly_load_capacity)
    logger.debug(
        "Ritual plan built",
        extra={"recommendations": len(recommendations), "weekly_load": summary.total_weekly_load},
    )
    return RitualPlan(
        recommendations=recommendations,
        weekly_schedule=week,
        load_summary=summary,
        reasoning=plan_reasoning(profile, recommendations, summary),
    )
