from __future__ import annotations

from care_calendar.api.schemas.analysis import WeeklyLoadCapacity
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.api.schemas.rituals import RitualRecommendation
from care_calendar.core.enums import (
    LoadBalance,
    LoadFactor,
    RitualFrequency,
    RitualPriority,
    TimeOfDay,
    WashDayFrequency,
)
from care_calendar.services import ritual_catalog, weekly_schedule


def _capacity(heavy: int = 2, medium: int = 3, rest: int = 2) -> WeeklyLoadCapacity:
    return WeeklyLoadCapacity(
        max_heavy_days=heavy,
        max_medium_days=medium,
        recommended_rest_days=rest,
        wash_day_frequency=WashDayFrequency.WEEKLY,
    )


def _rec(template_id: str, priority: RitualPriority = RitualPriority.ESSENTIAL, **template_updates) -> RitualRecommendation:
    template = ritual_catalog.get_template(template_id)
    if template_updates:
        template = template.model_copy(update=template_updates)
    return RitualRecommendation(
        template=template,
        priority=priority,
        reasoning="test",
        suggested_frequency=template.frequency,
    )


def _rest_days(week) -> list:
    return [slot.day_name for slot in week if slot.is_rest_day]


def test_week_has_seven_slots_starting_sunday() -> None:
    week = weekly_schedule.build_weekly_schedule([], _capacity(rest=0))

    assert [slot.day_of_week for slot in week] == list(range(7))
    assert week[0].day_name == "Sunday"
    assert week[6].day_name == "Saturday"
    assert all(not slot.rituals and slot.total_load == 0 for slot in week)


def test_heavy_wash_day_rests_sunday_and_backfills_earliest_days() -> None:
    week = weekly_schedule.build_weekly_schedule([_rec("wash-day-full-coily")], _capacity(heavy=1, medium=2, rest=4))

    saturday = week[weekly_schedule.SATURDAY]
    assert [ritual.template_id for ritual in saturday.rituals] == ["wash-day-full-coily"]
    assert saturday.rituals[0].time_of_day == TimeOfDay.MORNING
    assert saturday.total_load == 60
    assert saturday.is_rest_day is False
    assert _rest_days(week) == ["Sunday", "Monday", "Tuesday", "Wednesday"]


def test_light_wash_day_does_not_force_sunday_rest() -> None:
    week = weekly_schedule.build_weekly_schedule([_rec("cowash-refresh")], _capacity(rest=0))

    assert week[weekly_schedule.SATURDAY].total_load == 15
    assert _rest_days(week) == []


def test_heavy_protein_respects_heavy_day_budget() -> None:
    recommendations = [
        _rec("wash-day-full-coily"),
        _rec("protein-treatment-light", load_level=LoadFactor.HEAVY),
    ]

    tight = weekly_schedule.build_weekly_schedule(recommendations, _capacity(heavy=1, rest=0))
    roomy = weekly_schedule.build_weekly_schedule(recommendations, _capacity(heavy=2, rest=0))

    assert tight[weekly_schedule.WEDNESDAY].rituals == []
    wednesday = roomy[weekly_schedule.WEDNESDAY]
    assert [ritual.template_id for ritual in wednesday.rituals] == ["protein-treatment-light"]
    assert wednesday.rituals[0].time_of_day == TimeOfDay.EVENING
    assert wednesday.total_load == 60


def test_monthly_protein_is_not_placed_weekly() -> None:
    week = weekly_schedule.build_weekly_schedule([_rec("protein-treatment-intensive")], _capacity(rest=0))

    assert week[weekly_schedule.WEDNESDAY].rituals == []


def test_only_the_top_ranked_ritual_of_a_type_is_placed() -> None:
    recommendations = [_rec("protein-treatment-intensive"), _rec("protein-treatment-light")]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(rest=0))

    assert all(not slot.rituals for slot in week)


def test_optional_wash_day_and_protein_are_not_placed() -> None:
    recommendations = [
        _rec("wash-day-wavy", priority=RitualPriority.OPTIONAL),
        _rec("protein-treatment-light", priority=RitualPriority.OPTIONAL),
    ]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(rest=0))

    assert all(not slot.rituals for slot in week)


def test_recommended_wash_day_outranks_optional_one() -> None:
    recommendations = [
        _rec("wash-day-wavy", priority=RitualPriority.OPTIONAL),
        _rec("cowash-refresh", priority=RitualPriority.RECOMMENDED),
    ]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(rest=0))

    assert [ritual.template_id for ritual in week[weekly_schedule.SATURDAY].rituals] == ["cowash-refresh"]


def test_optional_scalp_ritual_is_still_placed() -> None:
    week = weekly_schedule.build_weekly_schedule(
        [_rec("scalp-detox", priority=RitualPriority.OPTIONAL)], _capacity(rest=0)
    )

    assert [ritual.template_id for ritual in week[weekly_schedule.MONDAY].rituals] == ["scalp-detox"]


def test_wavy_profile_leaves_saturday_empty() -> None:
    plan = weekly_schedule.generate_ritual_plan(HairProfile(pattern_family="WAVY"))

    assert plan.weekly_schedule[weekly_schedule.SATURDAY].rituals == []


def test_scalp_and_refresh_rituals_fill_their_days() -> None:
    recommendations = [
        _rec("cowash-refresh"),
        _rec("scalp-treatment-sensitive"),
        _rec("moisture-refresh-daily"),
    ]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(rest=2))

    monday = week[weekly_schedule.MONDAY]
    assert [ritual.template_id for ritual in monday.rituals] == ["scalp-treatment-sensitive"]
    assert monday.rituals[0].time_of_day == TimeOfDay.EVENING
    for day in (weekly_schedule.TUESDAY, weekly_schedule.THURSDAY, weekly_schedule.FRIDAY):
        assert [ritual.template_id for ritual in week[day].rituals] == ["moisture-refresh-daily"]
        assert week[day].rituals[0].time_of_day == TimeOfDay.MORNING
    assert _rest_days(week) == ["Sunday", "Wednesday"]

    summary = weekly_schedule.calculate_load_summary(week, _capacity(rest=2))
    assert summary.total_weekly_load == 75
    assert summary.max_capacity == 225
    assert summary.balance == LoadBalance.UNDER


def test_weekly_refresh_is_not_repeated() -> None:
    recommendations = [_rec("refresh-style", frequency=RitualFrequency.WEEKLY)]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(rest=0))

    assert all(not slot.rituals for slot in week)


def test_backfill_never_rests_a_heavy_day() -> None:
    recommendations = [
        _rec("wash-day-full-coily"),
        _rec("protein-treatment-light", load_level=LoadFactor.HEAVY),
    ]

    week = weekly_schedule.build_weekly_schedule(recommendations, _capacity(heavy=2, rest=5))

    assert week[weekly_schedule.SATURDAY].is_rest_day is False
    assert week[weekly_schedule.WEDNESDAY].is_rest_day is False
    assert _rest_days(week) == ["Sunday", "Monday", "Tuesday", "Thursday", "Friday"]


def test_load_summary_balance_bands() -> None:
    week = weekly_schedule.build_weekly_schedule([_rec("wash-day-full-coily")], _capacity(rest=0))

    assert weekly_schedule.calculate_load_summary(week, _capacity(heavy=0, medium=0, rest=0)).balance == LoadBalance.OVER
    assert weekly_schedule.calculate_load_summary(week, _capacity(heavy=1, medium=0, rest=0)).balance == LoadBalance.OPTIMAL
    assert weekly_schedule.calculate_load_summary(week, _capacity(heavy=1, medium=1, rest=0)).balance == LoadBalance.OPTIMAL
    assert weekly_schedule.calculate_load_summary(week, _capacity(heavy=2, medium=3, rest=0)).balance == LoadBalance.UNDER


def test_generated_plan_is_consistent() -> None:
    profile = HairProfile(pattern_family="COILY", porosity_level="HIGH")

    plan = weekly_schedule.generate_ritual_plan(profile)

    week = plan.weekly_schedule
    assert len(week) == 7
    assert [ritual.template_id for ritual in week[weekly_schedule.SATURDAY].rituals] == ["wash-day-full-coily"]
    assert week[weekly_schedule.SUNDAY].is_rest_day is True
    assert sum(slot.total_load for slot in week) == plan.load_summary.total_weekly_load
    assert plan.reasoning[0] == weekly_schedule.PATTERN_REASONS[profile.pattern_family]
    assert plan.reasoning[1] == "High porosity requires frequent sealing to retain moisture."
    assert plan.reasoning[-1] == weekly_schedule.BALANCE_REASONS[plan.load_summary.balance]
