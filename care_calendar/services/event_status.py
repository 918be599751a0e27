"""Calendar event status transitions."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from care_calendar.core.enums import EventStatus


class EventAction(str, Enum):
    RESCHEDULE = "RESCHEDULE"
    COMPLETE = "COMPLETE"
    SKIP = "SKIP"


class InvalidTransition(ValueError):
    def __init__(self, status: str, action: EventAction):
        super().__init__(f"Cannot {action.value.lower()} an event that is {status}")
        self.status = status
        self.action = action


_OPEN_TRANSITIONS = {
    EventAction.RESCHEDULE: EventStatus.RESCHEDULED,
    EventAction.COMPLETE: EventStatus.COMPLETED,
    EventAction.SKIP: EventStatus.SKIPPED,
}

TRANSITIONS: Dict[EventStatus, Dict[EventAction, EventStatus]] = {
    EventStatus.PLANNED: dict(_OPEN_TRANSITIONS),
    EventStatus.RESCHEDULED: dict(_OPEN_TRANSITIONS),
    EventStatus.COMPLETED: {},
    EventStatus.SKIPPED: {},
}

_missing = set(EventStatus) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"No transitions declared for statuses: {sorted(s.value for s in _missing)}")

def parse_status(value: str | EventStatus) -> Optional[EventStatus]:
    try:
        return EventStatus(value)
    except ValueError:
        return None


def next_status(current: str | EventStatus, action: EventAction) -> Optional[EventStatus]:
    """Status reached by applying ``action``, or None when it is not allowed."""
    status = parse_status(current)
    if status is None:
        return None
    return TRANSITIONS[status].get(action)


def apply_transition(current: str | EventStatus, action: EventAction) -> EventStatus:
    target = next_status(current, action)
    if target is None:
        raise InvalidTransition(getattr(current, "value", current), action)
    return target
