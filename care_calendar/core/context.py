"""Request and calendar-owner context shared by logging and tracing."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import UUID

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[str | None] = ContextVar("calendar_user_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_user_id() -> str | None:
    """Return the user whose calendar is being worked on, if any."""
    return user_id_ctx_var.get()


@contextmanager
def bind_user(user_id: UUID | str) -> Iterator[None]:
    """Tag logs and traces emitted inside the block with ``user_id``."""
    token = user_id_ctx_var.set(str(user_id))
    try:
        yield
    finally:
        user_id_ctx_var.reset(token)
