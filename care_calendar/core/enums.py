"""Closed vocabularies shared by the profile, ritual and calendar layers."""
from __future__ import annotations

from enum import Enum


class ThreeLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class LoadFactor(str, Enum):
    LIGHT = "LIGHT"
    STANDARD = "STANDARD"
    HEAVY = "HEAVY"


class TextureClass(str, Enum):
    TYPE_1A = "TYPE_1A"
    TYPE_1B = "TYPE_1B"
    TYPE_1C = "TYPE_1C"
    TYPE_2A = "TYPE_2A"
    TYPE_2B = "TYPE_2B"
    TYPE_2C = "TYPE_2C"
    TYPE_3A = "TYPE_3A"
    TYPE_3B = "TYPE_3B"
    TYPE_3C = "TYPE_3C"
    TYPE_4A = "TYPE_4A"
    TYPE_4B = "TYPE_4B"
    TYPE_4C = "TYPE_4C"
    MIXED = "MIXED"
    UNKNOWN = "UNKNOWN"


class PatternFamily(str, Enum):
    STRAIGHT = "STRAIGHT"
    WAVY = "WAVY"
    CURLY = "CURLY"
    COILY = "COILY"
    KINKY = "KINKY"
    UNKNOWN = "UNKNOWN"


class RoutineType(str, Enum):
    GROWTH = "GROWTH"
    REPAIR = "REPAIR"
    MOISTURE = "MOISTURE"
    MAINTENANCE = "MAINTENANCE"
    PROTECTIVE = "PROTECTIVE"
    KIDS = "KIDS"
    TRANSITION = "TRANSITION"
    UNKNOWN = "UNKNOWN"


class CareNeedCategory(str, Enum):
    MOISTURE = "MOISTURE"
    PROTEIN = "PROTEIN"
    REST = "REST"
    PROTECTION = "PROTECTION"
    SCALP_CARE = "SCALP_CARE"


class NeedLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RiskCategory(str, Enum):
    BREAKAGE = "BREAKAGE"
    DRYNESS = "DRYNESS"
    SCALP = "SCALP"
    OVERLOAD = "OVERLOAD"
    TENSION = "TENSION"


class WashDayFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BI_WEEKLY = "BI_WEEKLY"
    TRI_WEEKLY = "TRI_WEEKLY"
    MONTHLY = "MONTHLY"


class RitualType(str, Enum):
    WASH_DAY = "WASH_DAY"
    DEEP_CONDITION = "DEEP_CONDITION"
    PROTEIN_TREATMENT = "PROTEIN_TREATMENT"
    SCALP_TREATMENT = "SCALP_TREATMENT"
    MOISTURE_REFRESH = "MOISTURE_REFRESH"
    DETANGLE = "DETANGLE"
    PROTECTIVE_STYLE = "PROTECTIVE_STYLE"
    STYLE_REFRESH = "STYLE_REFRESH"
    HOT_OIL = "HOT_OIL"


class RitualFrequency(str, Enum):
    DAILY = "DAILY"
    EVERY_OTHER_DAY = "EVERY_OTHER_DAY"
    TWICE_WEEKLY = "TWICE_WEEKLY"
    WEEKLY = "WEEKLY"
    BI_WEEKLY = "BI_WEEKLY"
    MONTHLY = "MONTHLY"


class RitualPriority(str, Enum):
    ESSENTIAL = "ESSENTIAL"
    RECOMMENDED = "RECOMMENDED"
    OPTIONAL = "OPTIONAL"

    @property
    def rank(self) -> int:
        """Sort key: lower ranks come first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    RitualPriority.ESSENTIAL: 0,
    RitualPriority.RECOMMENDED: 1,
    RitualPriority.OPTIONAL: 2,
}


class TimeOfDay(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    EVENING = "EVENING"


class LoadBand(str, Enum):
    NONE = "NONE"
    LIGHT = "LIGHT"
    MEDIUM = "MEDIUM"
    HEAVY = "HEAVY"
    EXTREME = "EXTREME"


class RestUrgency(str, Enum):
    NONE = "NONE"
    SUGGESTED = "SUGGESTED"
    IMPORTANT = "IMPORTANT"
    CRITICAL = "CRITICAL"


class LoadBalance(str, Enum):
    UNDER = "UNDER"
    OPTIMAL = "OPTIMAL"
    OVER = "OVER"


class EventCategory(str, Enum):
    HAIR_RITUAL = "HAIR_RITUAL"
    REST_BUFFER = "REST_BUFFER"
    EDUCATION_PROMPT = "EDUCATION_PROMPT"


class EventStatus(str, Enum):
    PLANNED = "PLANNED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class CompletionQuality(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ADEQUATE = "ADEQUATE"
    POOR = "POOR"


class ConflictResolution(str, Enum):
    SKIPPED = "SKIPPED"
