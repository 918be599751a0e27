"""Main FastAPI application for the Care Calendar backend."""
from fastapi import FastAPI, Request

from care_calendar.api.routes.calendar import router as calendar_router
from care_calendar.api.routes.rituals import router as rituals_router
from care_calendar.core.config import settings
from care_calendar.core.logging import configure_logging
from care_calendar.core.middleware import RequestIDMiddleware
from care_calendar.observability.client import flush_opik, init_opik
from care_calendar.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(calendar_router)
app.include_router(rituals_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    """Flush pending traces before the worker exits."""
    flush_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
