"""ORM models exposed for metadata discovery."""
from care_calendar.db.models.calendar_event import CalendarEvent

__all__ = [
    "CalendarEvent",
]
