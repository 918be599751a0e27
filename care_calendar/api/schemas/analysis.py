"""Schemas for profile analysis results."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from care_calendar.core.enums import (
    CareNeedCategory,
    NeedLevel,
    RiskCategory,
    RiskSeverity,
    WashDayFrequency,
)

Grade = Literal["A", "B", "C", "D", "F"]


class HealthCategories(BaseModel):
    hydration: int
    strength: int
    scalp: int
    routine: int


class HealthScore(BaseModel):
    overall: int = Field(ge=0, le=100)
    categories: HealthCategories
    grade: Grade


class RiskFactor(BaseModel):
    id: str
    category: RiskCategory
    severity: RiskSeverity
    description: str
    mitigation: str


class RiskAssessment(BaseModel):
    level: NeedLevel
    factors: List[RiskFactor]
    score: int = Field(ge=0, le=100)


class HairArchetype(BaseModel):
    id: str
    name: str
    description: str
    key_traits: List[str]
    care_priorities: List[str]


class CareNeed(BaseModel):
    category: CareNeedCategory
    level: NeedLevel
    reasoning: str


class WeeklyLoadCapacity(BaseModel):
    max_heavy_days: int = Field(ge=0, le=3)
    max_medium_days: int = Field(ge=0)
    recommended_rest_days: int = Field(ge=0, le=5)
    wash_day_frequency: WashDayFrequency


class ProfileAnalysis(BaseModel):
    profile_id: Optional[str]
    health_score: HealthScore
    risk_assessment: RiskAssessment
    archetype: HairArchetype
    care_needs: List[CareNeed]
    weekly_load_capacity: WeeklyLoadCapacity
