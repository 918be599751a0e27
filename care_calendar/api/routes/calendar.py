"""Hair calendar API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from care_calendar.api.schemas.calendar import (
    CalendarSummary,
    CompleteEventRequest,
    EventMutationResult,
    GenerateCalendarRequest,
    ProfileCalendarRequest,
    RescheduleEventRequest,
    RescheduleEventResult,
    ScheduleGenerationResult,
    SkipEventRequest,
    SkipEventResult,
    UpcomingRitualsResponse,
)
from care_calendar.core.config import settings
from care_calendar.db.deps import get_db
from care_calendar.observability.metrics import log_metric, log_metrics
from care_calendar.observability.tracing import trace
from care_calendar.services import calendar_materializer
from care_calendar.services.calendar_materializer import ScheduleGenerationOptions
from care_calendar.services.calendar_store import SqlCalendarEventStore

router = APIRouter(prefix="/calendar", tags=["calendar"])

ERROR_STATUS_CODES = {
    "invalid_event_id": status.HTTP_404_NOT_FOUND,
    "event_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_transition": status.HTTP_409_CONFLICT,
}
ERROR_DETAILS = {
    "invalid_event_id": "Event not found",
    "event_not_found": "Event not found",
    "invalid_transition": "Event can no longer be changed",
}


def _request_id(http_request: Request) -> Optional[str]:
    return getattr(http_request.state, "request_id", None)


def _raise_for_failure(result: EventMutationResult) -> None:
    if result.success:
        return
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(result.error, status.HTTP_400_BAD_REQUEST),
        detail=ERROR_DETAILS.get(result.error, "Unable to update event"),
    )


def _latency_ms(start_time: datetime) -> float:
    return (datetime.now(timezone.utc) - start_time).total_seconds() * 1000


@router.post("/generate", response_model=ScheduleGenerationResult)
def generate_calendar(
    payload: GenerateCalendarRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ScheduleGenerationResult:
    """Materialize the profile's ritual plan into calendar events."""
    request_id = _request_id(http_request)
    options = ScheduleGenerationOptions(
        start_date=payload.start_date,
        weeks_to_generate=payload.weeks_to_generate or settings.default_weeks_to_generate,
        replace_existing=payload.replace_existing,
        include_rest_buffers=payload.include_rest_buffers,
        include_education_prompts=payload.include_education_prompts,
    )
    start_time = datetime.now(timezone.utc)
    result = calendar_materializer.generate_calendar(
        SqlCalendarEventStore(db),
        payload.user_id,
        payload.profile,
        options,
        request_id=request_id,
    )

    metadata: Dict[str, Any] = {"user_id": str(payload.user_id), "request_id": request_id}
    log_metrics(
        "calendar.generate",
        {
            "success": 1,
            "events_created": result.events_created,
            "conflicts": len(result.conflicts),
            "latency_ms": _latency_ms(start_time),
        },
        metadata=metadata,
    )
    return result


@router.post("/regenerate", response_model=ScheduleGenerationResult)
def regenerate_calendar(
    payload: ProfileCalendarRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ScheduleGenerationResult:
    """Replace future generated rituals after a profile change."""
    request_id = _request_id(http_request)
    result = calendar_materializer.regenerate_on_profile_change(
        SqlCalendarEventStore(db),
        payload.user_id,
        payload.profile,
        request_id=request_id,
    )
    log_metric(
        "calendar.regenerate.success",
        1,
        metadata={"user_id": str(payload.user_id), "events_created": result.events_created},
    )
    return result


@router.get("/upcoming", response_model=UpcomingRitualsResponse)
def list_upcoming(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the calendar"),
    days_ahead: Optional[int] = Query(default=None, ge=1, le=90),
    db: Session = Depends(get_db),
) -> UpcomingRitualsResponse:
    """List rituals and rest buffers from yesterday through the look-ahead window."""
    request_id = _request_id(http_request)
    with trace(
        "calendar.upcoming",
        metadata={"route": "/calendar/upcoming", "days_ahead": days_ahead},
        user_id=str(user_id),
        request_id=request_id,
    ):
        response = calendar_materializer.get_upcoming_rituals(SqlCalendarEventStore(db), user_id, days_ahead)

    log_metric("calendar.upcoming.count", response.total_upcoming, metadata={"user_id": str(user_id)})
    return response


@router.post("/summary", response_model=CalendarSummary)
def calendar_summary(
    payload: ProfileCalendarRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> CalendarSummary:
    request_id = _request_id(http_request)
    with trace(
        "calendar.summary",
        metadata={"route": "/calendar/summary"},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        return calendar_materializer.get_calendar_summary(
            SqlCalendarEventStore(db), payload.user_id, payload.profile
        )


@router.post("/events/{event_id}/complete", response_model=EventMutationResult)
def complete_event(
    event_id: str,
    payload: CompleteEventRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> EventMutationResult:
    result = calendar_materializer.complete_event(
        SqlCalendarEventStore(db),
        payload.user_id,
        event_id,
        payload.quality,
        request_id=_request_id(http_request),
    )
    log_metric(
        "calendar.complete.success",
        1 if result.success else 0,
        metadata={"user_id": str(payload.user_id), "quality": payload.quality.value},
    )
    _raise_for_failure(result)
    return result


@router.post("/events/{event_id}/skip", response_model=SkipEventResult)
def skip_event(
    event_id: str,
    payload: SkipEventRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> SkipEventResult:
    result = calendar_materializer.skip_event(
        SqlCalendarEventStore(db),
        payload.user_id,
        event_id,
        payload.reason,
        request_id=_request_id(http_request),
    )
    log_metric("calendar.skip.success", 1 if result.success else 0, metadata={"user_id": str(payload.user_id)})
    _raise_for_failure(result)
    return result


@router.post("/events/{event_id}/reschedule", response_model=RescheduleEventResult)
def reschedule_event(
    event_id: str,
    payload: RescheduleEventRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RescheduleEventResult:
    """Move an event; load warnings are advisory and never block the move."""
    result = calendar_materializer.reschedule_event(
        SqlCalendarEventStore(db),
        payload.user_id,
        event_id,
        payload.new_start,
        payload.profile,
        request_id=_request_id(http_request),
    )
    log_metric(
        "calendar.reschedule.success",
        1 if result.success else 0,
        metadata={"user_id": str(payload.user_id), "warnings": len(result.warnings)},
    )
    _raise_for_failure(result)
    return result
