"""Schemas for ritual templates, recommendations and weekly plans."""
from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from care_calendar.core.enums import (
    CareNeedCategory,
    LoadBalance,
    LoadFactor,
    PatternFamily,
    RitualFrequency,
    RitualPriority,
    RitualType,
    TextureClass,
    ThreeLevel,
    TimeOfDay,
)


class RitualStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_type: str
    name: str
    estimated_minutes: int = Field(gt=0)
    optional: bool = False
    notes: Optional[str] = None


class RitualCriteria(BaseModel):
    """Applicability criteria; an omitted group places no constraint."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    texture_classes: Optional[Tuple[TextureClass, ...]] = None
    pattern_families: Optional[Tuple[PatternFamily, ...]] = None
    porosity_levels: Optional[Tuple[ThreeLevel, ...]] = None
    care_needs: Optional[Tuple[CareNeedCategory, ...]] = None
    min_health_score: Optional[int] = Field(default=None, ge=0, le=100)
    max_health_score: Optional[int] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _check_bounds(self) -> "RitualCriteria":
        for name in ("texture_classes", "pattern_families", "porosity_levels", "care_needs"):
            group = getattr(self, name)
            if group is not None and not group:
                raise ValueError(f"{name} must be omitted rather than empty")
        if (
            self.min_health_score is not None
            and self.max_health_score is not None
            and self.min_health_score > self.max_health_score
        ):
            raise ValueError("min_health_score cannot exceed max_health_score")
        return self


class RitualTemplate(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str
    ritual_type: RitualType
    description: str
    load_level: LoadFactor
    default_duration_minutes: int = Field(gt=0)
    frequency: RitualFrequency
    steps: Tuple[RitualStep, ...] = Field(min_length=1)
    criteria: RitualCriteria = RitualCriteria()


class RitualStepView(BaseModel):
    id: str
    step_order: int
    step_type: str
    name: str
    estimated_minutes: int
    optional: bool
    notes: Optional[str]


class RitualTemplateView(BaseModel):
    """Template as exposed to API callers."""

    id: str
    user_id: Optional[str] = None
    ritual_type: RitualType
    name: str
    description: str
    default_duration_minutes: int
    load_level: LoadFactor
    frequency: RitualFrequency
    is_template: bool = True
    steps: List[RitualStepView]


class RitualRecommendation(BaseModel):
    template: RitualTemplate
    priority: RitualPriority
    reasoning: str
    suggested_frequency: RitualFrequency


class PlacedRitual(BaseModel):
    template_id: str
    name: str
    ritual_type: RitualType
    load_level: LoadFactor
    estimated_minutes: int
    time_of_day: TimeOfDay


class WeeklyRitualSlot(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    day_name: str
    rituals: List[PlacedRitual] = []
    total_load: int = 0
    is_rest_day: bool = False


class LoadSummary(BaseModel):
    total_weekly_load: int
    max_capacity: int
    balance: LoadBalance


class RitualPlan(BaseModel):
    recommendations: List[RitualRecommendation]
    weekly_schedule: List[WeeklyRitualSlot]
    load_summary: LoadSummary
    reasoning: List[str]
