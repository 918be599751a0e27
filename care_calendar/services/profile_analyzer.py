"""Rules-based scoring and classification of hair profiles.

Every function here is pure: the same profile always produces the same
analysis, and nothing is read from or written to shared state. The archetype,
risk and care-need rules are ordered tables so they can be enumerated and
tested one by one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from care_calendar.api.schemas.analysis import (
    CareNeed,
    HairArchetype,
    HealthCategories,
    HealthScore,
    ProfileAnalysis,
    RiskAssessment,
    RiskFactor,
    WeeklyLoadCapacity,
)
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.core.enums import (
    CareNeedCategory,
    LoadFactor,
    NeedLevel,
    PatternFamily,
    RiskCategory,
    RiskSeverity,
    RoutineType,
    ThreeLevel,
    WashDayFrequency,
)
from care_calendar.core.numbers import round_half_up

ProfilePredicate = Callable[[HairProfile], bool]

LEVEL_SCORES: Dict[Optional[ThreeLevel], int] = {
    ThreeLevel.LOW: 30,
    ThreeLevel.MEDIUM: 60,
    ThreeLevel.HIGH: 90,
}
INVERTED_LEVEL_SCORES: Dict[Optional[ThreeLevel], int] = {
    ThreeLevel.LOW: 90,
    ThreeLevel.MEDIUM: 60,
    ThreeLevel.HIGH: 30,
}
UNKNOWN_LEVEL_SCORE = 50

CATEGORY_WEIGHTS = {
    "hydration": 0.30,
    "strength": 0.25,
    "scalp": 0.20,
    "routine": 0.25,
}

GRADE_THRESHOLDS: Tuple[Tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

SEVERITY_SCORES = {
    RiskSeverity.LOW: 10,
    RiskSeverity.MEDIUM: 25,
    RiskSeverity.HIGH: 40,
}

RISK_LEVEL_THRESHOLDS: Tuple[Tuple[int, NeedLevel], ...] = (
    (80, NeedLevel.CRITICAL),
    (50, NeedLevel.HIGH),
    (25, NeedLevel.MODERATE),
)

COILY_FAMILIES = frozenset({PatternFamily.COILY, PatternFamily.KINKY})


def level_to_score(level: Optional[ThreeLevel]) -> int:
    return LEVEL_SCORES.get(level, UNKNOWN_LEVEL_SCORE)


def inverted_level_score(level: Optional[ThreeLevel]) -> int:
    """Score for traits where HIGH is undesirable (sensitivities)."""
    return INVERTED_LEVEL_SCORES.get(level, UNKNOWN_LEVEL_SCORE)


def score_to_grade(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


# ---------------------------------------------------------------------------
# Archetypes
# ---------------------------------------------------------------------------

ARCHETYPES: Dict[str, HairArchetype] = {
    archetype.id: archetype
    for archetype in (
        HairArchetype(
            id="RESILIENT_COILY",
            name="Resilient Coily",
            description="Strong, tightly coiled hair that thrives with moisture and low manipulation.",
            key_traits=["High shrinkage", "Coily pattern", "Medium-high density"],
            care_priorities=["Moisture retention", "Gentle detangling", "Protective styling"],
        ),
        HairArchetype(
            id="DELICATE_FINE",
            name="Delicate Fine",
            description="Fine strands requiring careful handling and light products.",
            key_traits=["Fine strand thickness", "Prone to breakage", "Quick to weigh down"],
            care_priorities=["Protein balance", "Light products", "Minimal tension"],
        ),
        HairArchetype(
            id="BALANCED_WAVY",
            name="Balanced Wavy",
            description="Versatile wavy texture that maintains well with consistent care.",
            key_traits=["S-pattern waves", "Moderate density", "Balanced porosity"],
            care_priorities=["Definition", "Frizz control", "Hydration balance"],
        ),
        HairArchetype(
            id="HIGH_MAINTENANCE_CURLY",
            name="High-Maintenance Curly",
            description="Curly hair requiring dedicated routine and careful product selection.",
            key_traits=["Spiral curls", "High porosity", "Moisture hungry"],
            care_priorities=["Deep conditioning", "LOC/LCO method", "Sealant layers"],
        ),
        HairArchetype(
            id="LOW_POROSITY_GUARDIAN",
            name="Low-Porosity Guardian",
            description="Dense cuticle layer that resists moisture but holds it once absorbed.",
            key_traits=["Low porosity", "Product buildup prone", "Heat helps absorption"],
            care_priorities=["Clarifying", "Light products", "Steam treatments"],
        ),
        HairArchetype(
            id="SENSITIVE_SCALP",
            name="Sensitive Scalp",
            description="Scalp-first approach needed due to sensitivity concerns.",
            key_traits=["High scalp sensitivity", "Reactive to products", "Needs gentle formulas"],
            care_priorities=["Scalp health", "Fragrance-free options", "Minimal ingredients"],
        ),
        HairArchetype(
            id="GROWTH_FOCUSED",
            name="Growth Focused",
            description="Retention-focused routine for maximum length preservation.",
            key_traits=["Length retention goal", "Protective styling", "Minimal manipulation"],
            care_priorities=["Breakage prevention", "Protective styles", "Ends protection"],
        ),
        HairArchetype(
            id="UNKNOWN_EXPLORER",
            name="Hair Journey Explorer",
            description="Still discovering your unique hair needs and patterns.",
            key_traits=["Learning phase", "Experimenting", "Building knowledge"],
            care_priorities=["Profile completion", "Pattern identification", "Baseline establishment"],
        ),
    )
}

DEFAULT_ARCHETYPE_ID = "UNKNOWN_EXPLORER"


@dataclass(frozen=True)
class ArchetypeRule:
    archetype_id: str
    matches: ProfilePredicate


# Evaluated top to bottom; the first rule that matches wins.
ARCHETYPE_RULES: Tuple[ArchetypeRule, ...] = (
    ArchetypeRule("SENSITIVE_SCALP", lambda p: p.scalp_sensitivity == ThreeLevel.HIGH),
    ArchetypeRule("GROWTH_FOCUSED", lambda p: p.routine_type == RoutineType.GROWTH),
    ArchetypeRule("LOW_POROSITY_GUARDIAN", lambda p: p.porosity_level == ThreeLevel.LOW),
    ArchetypeRule(
        "RESILIENT_COILY",
        lambda p: p.pattern_family in COILY_FAMILIES and p.shrinkage_tendency == ThreeLevel.HIGH,
    ),
    ArchetypeRule("DELICATE_FINE", lambda p: p.strand_thickness == ThreeLevel.LOW),
    ArchetypeRule(
        "HIGH_MAINTENANCE_CURLY",
        lambda p: p.pattern_family == PatternFamily.CURLY and p.porosity_level == ThreeLevel.HIGH,
    ),
    ArchetypeRule("BALANCED_WAVY", lambda p: p.pattern_family == PatternFamily.WAVY),
)


def detect_archetype(profile: HairProfile) -> HairArchetype:
    for rule in ARCHETYPE_RULES:
        if rule.matches(profile):
            return ARCHETYPES[rule.archetype_id]
    return ARCHETYPES[DEFAULT_ARCHETYPE_ID]


# ---------------------------------------------------------------------------
# Risk assessment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskRule:
    id: str
    category: RiskCategory
    applies: ProfilePredicate
    severity: Callable[[HairProfile], RiskSeverity]
    description: str
    mitigation: str


def _breakage_severity(profile: HairProfile) -> RiskSeverity:
    both = profile.strand_thickness == ThreeLevel.LOW and profile.manipulation_tolerance == ThreeLevel.LOW
    return RiskSeverity.HIGH if both else RiskSeverity.MEDIUM


RISK_RULES: Tuple[RiskRule, ...] = (
    RiskRule(
        id="BREAKAGE_FINE_HAIR",
        category=RiskCategory.BREAKAGE,
        applies=lambda p: p.strand_thickness == ThreeLevel.LOW or p.manipulation_tolerance == ThreeLevel.LOW,
        severity=_breakage_severity,
        description="Fine or fragile strands are prone to breakage with rough handling.",
        mitigation="Use wide-tooth combs, detangle gently when wet with conditioner, avoid tight styles.",
    ),
    RiskRule(
        id="DRYNESS_HIGH_POROSITY",
        category=RiskCategory.DRYNESS,
        applies=lambda p: p.porosity_level == ThreeLevel.HIGH,
        severity=lambda p: RiskSeverity.HIGH,
        description="High porosity hair loses moisture quickly and needs frequent hydration.",
        mitigation="Use LOC/LCO method, deep condition regularly, seal with oils or butters.",
    ),
    RiskRule(
        id="DRYNESS_COILY_SHRINKAGE",
        category=RiskCategory.DRYNESS,
        applies=lambda p: p.shrinkage_tendency == ThreeLevel.HIGH and p.pattern_family == PatternFamily.COILY,
        severity=lambda p: RiskSeverity.MEDIUM,
        description="High shrinkage coily hair may indicate moisture absorption challenges.",
        mitigation="Stretch gently when drying, use leave-in conditioners, try greenhouse method.",
    ),
    RiskRule(
        id="SCALP_SENSITIVITY",
        category=RiskCategory.SCALP,
        applies=lambda p: p.scalp_sensitivity == ThreeLevel.HIGH,
        severity=lambda p: RiskSeverity.HIGH,
        description="Sensitive scalp may react to harsh products or techniques.",
        mitigation="Use fragrance-free products, avoid sulfates, patch test new products.",
    ),
    RiskRule(
        id="ROUTINE_OVERLOAD",
        category=RiskCategory.OVERLOAD,
        applies=lambda p: (
            p.wash_day_load_factor == LoadFactor.HEAVY
            and p.estimated_wash_day_minutes is not None
            and p.estimated_wash_day_minutes > 180
        ),
        severity=lambda p: RiskSeverity.MEDIUM,
        description="Extended wash day routines can lead to fatigue and inconsistency.",
        mitigation="Consider breaking routine into smaller sessions or simplifying steps.",
    ),
    RiskRule(
        id="TENSION_SENSITIVITY",
        category=RiskCategory.TENSION,
        applies=lambda p: p.tension_sensitivity == ThreeLevel.HIGH,
        severity=lambda p: RiskSeverity.HIGH,
        description="High tension sensitivity increases risk of traction alopecia.",
        mitigation="Avoid tight ponytails, braids, or extensions. Choose loose protective styles.",
    ),
    RiskRule(
        id="DETANGLE_DIFFICULTY",
        category=RiskCategory.TENSION,
        applies=lambda p: p.detangle_tolerance == ThreeLevel.LOW,
        severity=lambda p: RiskSeverity.MEDIUM,
        description="Low detangle tolerance means tangles cause significant stress.",
        mitigation="Pre-poo before wash day, section hair, use plenty of slip.",
    ),
)


def assess_risks(profile: HairProfile) -> RiskAssessment:
    factors = [
        RiskFactor(
            id=rule.id,
            category=rule.category,
            severity=rule.severity(profile),
            description=rule.description,
            mitigation=rule.mitigation,
        )
        for rule in RISK_RULES
        if rule.applies(profile)
    ]
    score = min(100, sum(SEVERITY_SCORES[factor.severity] for factor in factors))

    level = NeedLevel.LOW
    for threshold, candidate in RISK_LEVEL_THRESHOLDS:
        if score >= threshold:
            level = candidate
            break
    return RiskAssessment(level=level, factors=factors, score=score)


# ---------------------------------------------------------------------------
# Care needs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CareNeedRule:
    applies: ProfilePredicate
    level: NeedLevel
    reasoning: str


# One entry per category; within a category the first matching rule decides the level.
CARE_NEED_RULES: Tuple[Tuple[CareNeedCategory, Tuple[CareNeedRule, ...]], ...] = (
    (
        CareNeedCategory.MOISTURE,
        (
            CareNeedRule(
                lambda p: p.porosity_level == ThreeLevel.HIGH,
                NeedLevel.CRITICAL,
                "High porosity hair loses moisture rapidly and requires constant hydration.",
            ),
            CareNeedRule(
                lambda p: p.porosity_level == ThreeLevel.MEDIUM,
                NeedLevel.MODERATE,
                "Medium porosity hair maintains good moisture balance with regular care.",
            ),
            CareNeedRule(
                lambda p: True,
                NeedLevel.LOW,
                "Low porosity hair retains moisture well once absorbed.",
            ),
        ),
    ),
    (
        CareNeedCategory.PROTEIN,
        (
            CareNeedRule(
                lambda p: p.strand_thickness == ThreeLevel.LOW and p.porosity_level == ThreeLevel.HIGH,
                NeedLevel.HIGH,
                "Fine or high-porosity hair benefits from protein to strengthen strand structure.",
            ),
            CareNeedRule(
                lambda p: p.strand_thickness == ThreeLevel.LOW or p.porosity_level == ThreeLevel.HIGH,
                NeedLevel.MODERATE,
                "Fine or high-porosity hair benefits from protein to strengthen strand structure.",
            ),
        ),
    ),
    (
        CareNeedCategory.REST,
        (
            CareNeedRule(
                lambda p: p.manipulation_tolerance == ThreeLevel.LOW,
                NeedLevel.HIGH,
                "Low manipulation tolerance or heavy routines require adequate rest periods.",
            ),
            CareNeedRule(
                lambda p: p.wash_day_load_factor == LoadFactor.HEAVY,
                NeedLevel.MODERATE,
                "Low manipulation tolerance or heavy routines require adequate rest periods.",
            ),
        ),
    ),
    (
        CareNeedCategory.PROTECTION,
        (
            CareNeedRule(
                lambda p: p.shrinkage_tendency == ThreeLevel.HIGH or p.pattern_family in COILY_FAMILIES,
                NeedLevel.HIGH,
                "Coily textures with high shrinkage benefit greatly from protective styling.",
            ),
            CareNeedRule(
                lambda p: p.pattern_family == PatternFamily.CURLY,
                NeedLevel.MODERATE,
                "Curly hair benefits from protective styles during harsh weather or activities.",
            ),
        ),
    ),
    (
        CareNeedCategory.SCALP_CARE,
        (
            CareNeedRule(
                lambda p: p.scalp_sensitivity == ThreeLevel.HIGH,
                NeedLevel.CRITICAL,
                "High scalp sensitivity requires gentle, targeted scalp care routines.",
            ),
            CareNeedRule(
                lambda p: p.scalp_sensitivity == ThreeLevel.MEDIUM,
                NeedLevel.MODERATE,
                "Moderate scalp sensitivity means being mindful of product ingredients.",
            ),
        ),
    ),
)


def assess_care_needs(profile: HairProfile) -> List[CareNeed]:
    needs: List[CareNeed] = []
    for category, rules in CARE_NEED_RULES:
        for rule in rules:
            if rule.applies(profile):
                needs.append(CareNeed(category=category, level=rule.level, reasoning=rule.reasoning))
                break
    return needs


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------


def hydration_score(profile: HairProfile) -> int:
    # High porosity scores below the LOW mapping: it struggles most to hold hydration.
    porosity = 40 if profile.porosity_level == ThreeLevel.HIGH else level_to_score(profile.porosity_level)
    routine_bonus = 15 if profile.routine_type in (RoutineType.MOISTURE, RoutineType.REPAIR) else 0
    return min(100, max(0, porosity + routine_bonus))


def strength_score(profile: HairProfile) -> int:
    total = (
        level_to_score(profile.strand_thickness)
        + level_to_score(profile.density_level)
        + level_to_score(profile.manipulation_tolerance)
    )
    return round_half_up(total / 3)


def scalp_score(profile: HairProfile) -> int:
    return inverted_level_score(profile.scalp_sensitivity)


def routine_score(profile: HairProfile) -> int:
    score = 50
    if profile.routine_type != RoutineType.UNKNOWN:
        score += 20
    if profile.estimated_wash_day_minutes and profile.estimated_wash_day_minutes > 0:
        score += 15
    score += min(15, len(profile.learning_nodes_unlocked) * 5)
    return min(100, score)


def quick_health_score(profile: HairProfile) -> HealthScore:
    """Health score without the rest of the analysis."""
    categories = HealthCategories(
        hydration=hydration_score(profile),
        strength=strength_score(profile),
        scalp=scalp_score(profile),
        routine=routine_score(profile),
    )
    overall = round_half_up(
        categories.hydration * CATEGORY_WEIGHTS["hydration"]
        + categories.strength * CATEGORY_WEIGHTS["strength"]
        + categories.scalp * CATEGORY_WEIGHTS["scalp"]
        + categories.routine * CATEGORY_WEIGHTS["routine"]
    )
    return HealthScore(overall=overall, categories=categories, grade=score_to_grade(overall))


# ---------------------------------------------------------------------------
# Weekly load capacity
# ---------------------------------------------------------------------------

BASE_CAPACITY = (2, 3, 2)
CAPACITY_BY_MANIPULATION_TOLERANCE = {
    ThreeLevel.LOW: (1, 2, 4),
    ThreeLevel.HIGH: (3, 4, 1),
}


def weekly_load_capacity(profile: HairProfile) -> WeeklyLoadCapacity:
    max_heavy_days, max_medium_days, rest_days = CAPACITY_BY_MANIPULATION_TOLERANCE.get(
        profile.manipulation_tolerance, BASE_CAPACITY
    )
    frequency = WashDayFrequency.WEEKLY

    if profile.wash_day_load_factor == LoadFactor.HEAVY:
        rest_days = max(rest_days, 3)
        frequency = WashDayFrequency.BI_WEEKLY

    if profile.pattern_family in COILY_FAMILIES:
        frequency = WashDayFrequency.WEEKLY if profile.porosity_level == ThreeLevel.HIGH else WashDayFrequency.BI_WEEKLY

    if profile.tension_sensitivity == ThreeLevel.HIGH:
        max_heavy_days = max(0, max_heavy_days - 1)
        rest_days = min(5, rest_days + 1)

    return WeeklyLoadCapacity(
        max_heavy_days=max_heavy_days,
        max_medium_days=max_medium_days,
        recommended_rest_days=rest_days,
        wash_day_frequency=frequency,
    )


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def analyze_profile(profile: HairProfile) -> ProfileAnalysis:
    """Score, classify and budget a profile in one pass."""
    return ProfileAnalysis(
        profile_id=profile.id,
        health_score=quick_health_score(profile),
        risk_assessment=assess_risks(profile),
        archetype=detect_archetype(profile),
        care_needs=assess_care_needs(profile),
        weekly_load_capacity=weekly_load_capacity(profile),
    )


def get_archetype(profile: HairProfile) -> HairArchetype:
    return detect_archetype(profile)


def all_archetypes() -> List[HairArchetype]:
    return list(ARCHETYPES.values())
