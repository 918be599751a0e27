"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from care_calendar.observability import tracing

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short-lived Opik trace when tracing is enabled."""
    if tracing.get_opik_client() is None:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    try:
        with tracing.trace(f"metric:{name}", metadata=payload):
            pass
    except Exception as exc:  # pragma: no cover - defensive
        logger.debug("Unable to record metric %s: %s", name, exc)


def log_metrics(prefix: str, values: Dict[str, float | int], metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record several related values, e.g. one calendar generation, as a single trace."""
    if tracing.get_opik_client() is None or not values:
        return

    payload: Dict[str, Any] = {f"{prefix}.{key}": value for key, value in values.items()}
    if metadata:
        payload.update(metadata)

    try:
        with tracing.trace(f"metrics:{prefix}", metadata=payload):
            pass
    except Exception as exc:  # pragma: no cover
        logger.debug("Unable to record metrics under %s: %s", prefix, exc)
