"""Read-only hair profile value consumed by the engine."""
from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from care_calendar.core.enums import LoadFactor, PatternFamily, RoutineType, TextureClass, ThreeLevel

_SHORT_TEXTURE = re.compile(r"^[1-4][A-C]$")


def _normalize(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip().upper().replace("-", "_").replace(" ", "_")
        return cleaned or None
    if hasattr(value, "value"):
        return str(value.value)
    return None


class HairProfile(BaseModel):
    """
    Hair profile as supplied by the profile service.

    Unrecognised values never fail validation: they collapse to "unknown"
    (None for ordinal traits, UNKNOWN for classifications).
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    texture_class: TextureClass = TextureClass.UNKNOWN
    pattern_family: PatternFamily = PatternFamily.UNKNOWN
    strand_thickness: Optional[ThreeLevel] = None
    density_level: Optional[ThreeLevel] = None
    shrinkage_tendency: Optional[ThreeLevel] = None
    porosity_level: Optional[ThreeLevel] = None
    detangle_tolerance: Optional[ThreeLevel] = None
    manipulation_tolerance: Optional[ThreeLevel] = None
    tension_sensitivity: Optional[ThreeLevel] = None
    scalp_sensitivity: Optional[ThreeLevel] = None
    wash_day_load_factor: Optional[LoadFactor] = None
    estimated_wash_day_minutes: Optional[int] = None
    routine_type: RoutineType = RoutineType.UNKNOWN
    learning_nodes_unlocked: List[str] = []

    @field_validator(
        "strand_thickness",
        "density_level",
        "shrinkage_tendency",
        "porosity_level",
        "detangle_tolerance",
        "manipulation_tolerance",
        "tension_sensitivity",
        "scalp_sensitivity",
        mode="before",
    )
    @classmethod
    def _parse_three_level(cls, value: Any) -> ThreeLevel | None:
        normalized = _normalize(value)
        if normalized in ThreeLevel.__members__:
            return ThreeLevel(normalized)
        return None

    @field_validator("wash_day_load_factor", mode="before")
    @classmethod
    def _parse_load_factor(cls, value: Any) -> LoadFactor | None:
        normalized = _normalize(value)
        if normalized in LoadFactor.__members__:
            return LoadFactor(normalized)
        return None

    @field_validator("texture_class", mode="before")
    @classmethod
    def _parse_texture_class(cls, value: Any) -> TextureClass:
        normalized = _normalize(value)
        if normalized is None:
            return TextureClass.UNKNOWN
        if _SHORT_TEXTURE.match(normalized):
            normalized = f"TYPE_{normalized}"
        elif normalized.startswith("TYPE") and not normalized.startswith("TYPE_"):
            normalized = f"TYPE_{normalized[4:]}"
        if normalized in TextureClass.__members__:
            return TextureClass(normalized)
        return TextureClass.UNKNOWN

    @field_validator("pattern_family", mode="before")
    @classmethod
    def _parse_pattern_family(cls, value: Any) -> PatternFamily:
        normalized = _normalize(value)
        if normalized in PatternFamily.__members__:
            return PatternFamily(normalized)
        return PatternFamily.UNKNOWN

    @field_validator("routine_type", mode="before")
    @classmethod
    def _parse_routine_type(cls, value: Any) -> RoutineType:
        normalized = _normalize(value)
        if normalized in RoutineType.__members__:
            return RoutineType(normalized)
        return RoutineType.UNKNOWN

    @field_validator("estimated_wash_day_minutes", mode="before")
    @classmethod
    def _parse_minutes(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            minutes = int(value)
        except (TypeError, ValueError):
            return None
        return minutes if minutes > 0 else None

    @field_validator("learning_nodes_unlocked", mode="before")
    @classmethod
    def _parse_nodes(cls, value: Any) -> List[str]:
        if not value or not isinstance(value, (list, tuple, set, frozenset)):
            return []
        return [str(node) for node in value if node]
