"""Opik client lifecycle for the calendar service."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from care_calendar.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_client: Optional["Opik"] = None
_client_lock = Lock()
_init_attempted = False


def _tracing_configured() -> bool:
    if not settings.opik_enabled:
        return False
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; calendar traces are disabled.")
        return False
    return True


def init_opik() -> Optional["Opik"]:
    """Build the Opik client on first call; later calls return the cached outcome."""
    global _client, _init_attempted

    if Opik is None:
        return None

    with _client_lock:
        if _init_attempted:
            return _client
        _init_attempted = True
        if not _tracing_configured():
            return None
        try:
            _client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
        except Exception as exc:  # pragma: no cover - network/SDK failure
            logger.warning("Failed to initialize Opik, calendar traces are disabled: %s", exc)
            return None

    logger.info("Opik tracing enabled (project=%s).", settings.opik_project)
    return _client


def get_opik_client() -> Optional["Opik"]:
    """Return the cached Opik client, or None when tracing is off."""
    if _client is not None:
        return _client
    return init_opik()


def flush_opik() -> None:
    """Send buffered traces before the process exits."""
    if _client is None:
        return
    try:
        _client.flush()
    except Exception:  # pragma: no cover - network/SDK failure
        logger.warning("Failed to flush Opik traces on shutdown", exc_info=True)
