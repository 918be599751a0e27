"""Schemas returned by load and rest-buffer accounting."""
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from care_calendar.core.enums import LoadBand, RestUrgency


class LoadLevel(BaseModel):
    level: LoadBand
    score: int = Field(ge=0, le=100)


class EventLoadLevel(BaseModel):
    event_type: str
    load_level: LoadLevel


class RestBufferResult(BaseModel):
    required_hours: int
    recommended_hours: int
    reasoning: str
    urgency: RestUrgency
    next_available_slot: datetime


class EventLoadAssessment(BaseModel):
    event_type: str
    load_level: LoadLevel
    rest_buffer_hours: int
    cumulative_load_today: int
    weekly_load_remaining: int
    can_schedule: bool
    warnings: List[str] = []


class WeeklyLoadStatus(BaseModel):
    current_load: int
    max_load: int
    heavy_events_used: int
    heavy_events_remaining: int
    medium_events_used: int
    medium_events_remaining: int
    rest_days_this_week: int
    rest_days_needed: int
    overloaded: bool
    recommendation: str
