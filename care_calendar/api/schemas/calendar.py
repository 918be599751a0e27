"""Schemas for calendar generation, listing and event mutations."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from care_calendar.api.schemas.profile import HairProfile
from care_calendar.core.enums import CompletionQuality, ConflictResolution


class CalendarEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    event_category: str
    event_type: str
    title: str
    description: Optional[str]
    scheduled_start: datetime
    scheduled_end: datetime
    load_level: Optional[str]
    requires_rest_buffer: bool
    recommended_rest_hours_after: Optional[int]
    status: str
    completion_quality: Optional[str]
    completed_at: Optional[datetime]
    linked_ritual_id: Optional[str]
    linked_booking_id: Optional[UUID]


class ScheduleConflict(BaseModel):
    date: datetime
    proposed_event: str
    existing_event: str
    resolution: ConflictResolution


class ScheduleGenerationResult(BaseModel):
    success: bool = True
    events_created: int = 0
    events_skipped: int = 0
    conflicts: List[ScheduleConflict] = []
    next_scheduled_date: Optional[datetime] = None
    weekly_load_score: int = 0


class UpcomingRitual(BaseModel):
    id: UUID
    name: str
    scheduled_start: datetime
    scheduled_end: datetime
    load_level: str
    event_type: str
    status: str
    is_overdue: bool
    days_until: int


class WeeklyLoadSnapshot(BaseModel):
    current: int
    max: int
    percentage: int


class UpcomingRitualsResponse(BaseModel):
    rituals: List[UpcomingRitual]
    total_upcoming: int
    next_wash_day: Optional[datetime]
    weekly_load_status: WeeklyLoadSnapshot


class CalendarSummary(BaseModel):
    next_ritual: Optional[UpcomingRitual]
    this_week_load: int
    max_week_load: int
    overdue_count: int
    completed_this_week: int
    streak_days: int


class EventMutationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    event: Optional[CalendarEventRead] = None


class SkipEventResult(EventMutationResult):
    suggested_makeup: Optional[datetime] = None


class RescheduleEventResult(EventMutationResult):
    can_schedule: bool = False
    warnings: List[str] = []


# Requests


class GenerateCalendarRequest(BaseModel):
    user_id: UUID
    profile: HairProfile
    start_date: Optional[datetime] = None
    weeks_to_generate: Optional[int] = Field(default=None, ge=1, le=4)
    replace_existing: bool = False
    include_rest_buffers: bool = True
    include_education_prompts: bool = True


class ProfileCalendarRequest(BaseModel):
    user_id: UUID
    profile: HairProfile


class CompleteEventRequest(BaseModel):
    user_id: UUID
    quality: CompletionQuality


class SkipEventRequest(BaseModel):
    user_id: UUID
    reason: Optional[str] = None


class RescheduleEventRequest(BaseModel):
    user_id: UUID
    new_start: datetime
    profile: HairProfile
