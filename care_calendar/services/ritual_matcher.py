"""Match catalog ritual templates against a profile's derived care needs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from care_calendar.api.schemas.analysis import CareNeed
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.api.schemas.rituals import RitualCriteria, RitualRecommendation, RitualTemplate
from care_calendar.core.enums import NeedLevel, RitualPriority, RitualType
from care_calendar.services import profile_analyzer
from care_calendar.services.ritual_catalog import RITUAL_TEMPLATES

URGENT_NEED_LEVELS = frozenset({NeedLevel.HIGH, NeedLevel.CRITICAL})


def _humanize(value: str) -> str:
    return value.lower().replace("_", " ")


@dataclass
class MatchContext:
    """Everything a criteria group needs to judge one template."""

    profile: HairProfile
    care_needs: Sequence[CareNeed]
    health_score: int
    reasons: List[str] = field(default_factory=list)
    signals: List[RitualPriority] = field(default_factory=list)


# Each group returns False when the template is ruled out. Groups may append
# reasoning fragments and priority signals; the final priority is the highest
# signal raised (OPTIONAL when none).

def _texture_group(criteria: RitualCriteria, ctx: MatchContext) -> bool:
    if criteria.texture_classes is None:
        return True
    return ctx.profile.texture_class in criteria.texture_classes


def _pattern_group(criteria: RitualCriteria, ctx: MatchContext) -> bool:
    if criteria.pattern_families is None:
        return True
    if ctx.profile.pattern_family not in criteria.pattern_families:
        return False
    ctx.reasons.append(f"Designed for {_humanize(ctx.profile.pattern_family.value)} textures.")
    return True


def _porosity_group(criteria: RitualCriteria, ctx: MatchContext) -> bool:
    if criteria.porosity_levels is None:
        return True
    porosity = ctx.profile.porosity_level
    if porosity is None:
        # Unknown porosity stays eligible without a priority bump.
        return True
    if porosity not in criteria.porosity_levels:
        return False
    ctx.reasons.append(f"Optimized for {_humanize(porosity.value)} porosity.")
    ctx.signals.append(RitualPriority.RECOMMENDED)
    return True


def _care_need_group(criteria: RitualCriteria, ctx: MatchContext) -> bool:
    if criteria.care_needs is None:
        return True
    matching = [need for need in ctx.care_needs if need.category in criteria.care_needs]
    if not matching:
        return False
    urgent = [need for need in matching if need.level in URGENT_NEED_LEVELS]
    if urgent:
        ctx.signals.append(RitualPriority.ESSENTIAL)
        ctx.reasons.append(f"Addresses critical {_humanize(urgent[0].category.value)} needs.")
    else:
        ctx.signals.append(RitualPriority.RECOMMENDED)
        first = next(category for category in criteria.care_needs if any(n.category == category for n in matching))
        ctx.reasons.append(f"Supports {_humanize(first.value)} care.")
    return True


def _health_group(criteria: RitualCriteria, ctx: MatchContext) -> bool:
    if criteria.min_health_score is not None and ctx.health_score < criteria.min_health_score:
        return False
    if criteria.max_health_score is not None:
        if ctx.health_score > criteria.max_health_score:
            return False
        # A satisfied upper bound marks the ritual as a recovery treatment.
        ctx.signals.append(RitualPriority.ESSENTIAL)
        ctx.reasons.append("Recovery treatment for damaged hair.")
    return True


CriteriaGroup = Callable[[RitualCriteria, MatchContext], bool]

CRITERIA_GROUPS: tuple[CriteriaGroup, ...] = (
    _texture_group,
    _pattern_group,
    _porosity_group,
    _care_need_group,
    _health_group,
)


def _resolve_priority(signals: Iterable[RitualPriority]) -> RitualPriority:
    return min(signals, key=lambda priority: priority.rank, default=RitualPriority.OPTIONAL)


def evaluate_template(template: RitualTemplate, ctx: MatchContext) -> Optional[RitualRecommendation]:
    """Return a recommendation when every declared criteria group is satisfied."""
    for group in CRITERIA_GROUPS:
        if not group(template.criteria, ctx):
            return None
    reasoning = " ".join(ctx.reasons) or f"General {_humanize(template.ritual_type.value)} routine."
    return RitualRecommendation(
        template=template,
        priority=_resolve_priority(ctx.signals),
        reasoning=reasoning,
        suggested_frequency=template.frequency,
    )


def match_rituals(
    profile: HairProfile,
    care_needs: Sequence[CareNeed],
    health_score: int | None = None,
    templates: Sequence[RitualTemplate] = RITUAL_TEMPLATES,
) -> List[RitualRecommendation]:
    """
    Filter and rank templates for a profile.

    Results are ordered ESSENTIAL, RECOMMENDED, OPTIONAL; ties keep catalog order.
    """
    if health_score is None:
        health_score = profile_analyzer.quick_health_score(profile).overall

    recommendations: List[RitualRecommendation] = []
    for template in templates:
        ctx = MatchContext(profile=profile, care_needs=care_needs, health_score=health_score)
        recommendation = evaluate_template(template, ctx)
        if recommendation is not None:
            recommendations.append(recommendation)
    recommendations.sort(key=lambda rec: rec.priority.rank)
    return recommendations


def recommendations_for_profile(profile: HairProfile) -> List[RitualRecommendation]:
    analysis = profile_analyzer.analyze_profile(profile)
    return match_rituals(profile, analysis.care_needs, analysis.health_score.overall)


def recommended_ritual(profile: HairProfile, ritual_type: RitualType) -> Optional[RitualRecommendation]:
    """Highest-ranked recommendation of the given ritual type, if any."""
    for recommendation in recommendations_for_profile(profile):
        if recommendation.template.ritual_type == ritual_type:
            return recommendation
    return None
