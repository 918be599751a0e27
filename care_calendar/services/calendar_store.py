"""Storage for calendar events.

``CalendarEventStore`` is the narrow interface the materializer depends on;
``SqlCalendarEventStore`` implements it over a SQLAlchemy session.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from care_calendar.db.models.calendar_event import CalendarEvent

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A single read or write against the event store failed."""


class CalendarEventStore:
    """CRUD over a user's calendar events plus a per-user atomic scope."""

    @contextmanager
    def transaction(self, user_id: UUID) -> Iterator[None]:
        raise NotImplementedError

    def list_events(
        self,
        user_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        end_inclusive: bool = False,
        categories: Optional[Iterable[str]] = None,
        statuses: Optional[Iterable[str]] = None,
        exclude_statuses: Optional[Iterable[str]] = None,
        exclude_id: Optional[UUID] = None,
        limit: Optional[int] = None,
    ) -> List[CalendarEvent]:
        raise NotImplementedError

    def get_event(self, user_id: UUID, event_id: UUID) -> Optional[CalendarEvent]:
        raise NotImplementedError

    def create_event(self, **fields: Any) -> CalendarEvent:
        raise NotImplementedError

    def update_event(self, event: CalendarEvent, **changes: Any) -> CalendarEvent:
        raise NotImplementedError

    def delete_events(
        self,
        user_id: UUID,
        *,
        start: datetime,
        end: datetime,
        category: str,
        unlinked_only: bool = True,
    ) -> int:
        raise NotImplementedError


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0


_user_locks: Dict[UUID, _UserLock] = {}
_user_locks_guard = threading.Lock()


@contextmanager
def user_lock(user_id: UUID) -> Iterator[None]:
    """
    Process-wide re-entrant lock serialising work for one user.

    The entry is dropped once no thread holds or waits on it.
    """
    with _user_locks_guard:
        entry = _user_locks.get(user_id)
        if entry is None:
            entry = _user_locks[user_id] = _UserLock()
        entry.holders += 1
    try:
        with entry.lock:
            yield
    finally:
        with _user_locks_guard:
            entry.holders -= 1
            if entry.holders == 0:
                del _user_locks[user_id]


class SqlCalendarEventStore(CalendarEventStore):
    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def transaction(self, user_id: UUID) -> Iterator[None]:
        """
        Serialise callers for ``user_id`` and commit once at the outermost level.

        Any exception rolls the whole unit of work back before propagating.
        """
        with user_lock(user_id):
            self._depth += 1
            try:
                yield
                if self._depth == 1:
                    self.db.commit()
            except Exception:
                if self._depth == 1:
                    self.db.rollback()
                raise
            finally:
                self._depth -= 1

    def list_events(
        self,
        user_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        end_inclusive: bool = False,
        categories: Optional[Iterable[str]] = None,
        statuses: Optional[Iterable[str]] = None,
        exclude_statuses: Optional[Iterable[str]] = None,
        exclude_id: Optional[UUID] = None,
        limit: Optional[int] = None,
    ) -> List[CalendarEvent]:
        query = self.db.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)
        if start is not None:
            query = query.filter(CalendarEvent.scheduled_start >= start)
        if end is not None:
            if end_inclusive:
                query = query.filter(CalendarEvent.scheduled_start <= end)
            else:
                query = query.filter(CalendarEvent.scheduled_start < end)
        if categories is not None:
            query = query.filter(CalendarEvent.event_category.in_(list(categories)))
        if statuses is not None:
            query = query.filter(CalendarEvent.status.in_(list(statuses)))
        if exclude_statuses is not None:
            query = query.filter(CalendarEvent.status.notin_(list(exclude_statuses)))
        if exclude_id is not None:
            query = query.filter(CalendarEvent.id != exclude_id)
        query = query.order_by(CalendarEvent.scheduled_start.asc())
        if limit is not None:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to list events for user {user_id}") from exc

    def get_event(self, user_id: UUID, event_id: UUID) -> Optional[CalendarEvent]:
        return (
            self.db.query(CalendarEvent)
            .filter(CalendarEvent.id == event_id, CalendarEvent.user_id == user_id)
            .one_or_none()
        )

    def create_event(self, **fields: Any) -> CalendarEvent:
        event = CalendarEvent(**fields)
        try:
            with self.db.begin_nested():
                self.db.add(event)
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to create calendar event {fields.get('title')!r}") from exc
        return event

    def update_event(self, event: CalendarEvent, **changes: Any) -> CalendarEvent:
        for key, value in changes.items():
            setattr(event, key, value)
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to update calendar event {event.id}") from exc
        return event

    def delete_events(
        self,
        user_id: UUID,
        *,
        start: datetime,
        end: datetime,
        category: str,
        unlinked_only: bool = True,
    ) -> int:
        query = self.db.query(CalendarEvent).filter(
            CalendarEvent.user_id == user_id,
            CalendarEvent.event_category == category,
            CalendarEvent.scheduled_start >= start,
            CalendarEvent.scheduled_start < end,
        )
        if unlinked_only:
            query = query.filter(CalendarEvent.linked_booking_id.is_(None))
        try:
            deleted = query.delete(synchronize_session="fetch")
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to delete events for user {user_id}") from exc
        logger.debug("Deleted calendar events", extra={"user_id": str(user_id), "deleted": deleted})
        return deleted
