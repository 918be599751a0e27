"""Ritual analysis, planning and catalog routes."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Request

from care_calendar.api.schemas.analysis import HairArchetype, ProfileAnalysis
from care_calendar.api.schemas.load import EventLoadLevel
from care_calendar.api.schemas.profile import HairProfile
from care_calendar.api.schemas.rituals import RitualPlan, RitualTemplateView
from care_calendar.observability.metrics import log_metric
from care_calendar.observability.tracing import trace
from care_calendar.services import load_accountant, profile_analyzer, ritual_catalog, weekly_schedule

router = APIRouter(prefix="/rituals", tags=["rituals"])


@router.post("/analysis", response_model=ProfileAnalysis)
def analyze_profile(profile: HairProfile, http_request: Request) -> ProfileAnalysis:
    """Score and classify a hair profile."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("rituals.analysis", metadata={"profile_id": profile.id}, request_id=request_id):
        analysis = profile_analyzer.analyze_profile(profile)
    log_metric(
        "rituals.analysis.health_score",
        analysis.health_score.overall,
        metadata={"archetype": analysis.archetype.id},
    )
    return analysis


@router.post("/plan", response_model=RitualPlan)
def ritual_plan(profile: HairProfile, http_request: Request) -> RitualPlan:
    """Build the weekly ritual plan for a profile without touching the calendar."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("rituals.plan", metadata={"profile_id": profile.id}, request_id=request_id) as plan_trace:
        plan = weekly_schedule.generate_ritual_plan(profile)
        if plan_trace:
            plan_trace.update(
                metadata={
                    "recommendations": len(plan.recommendations),
                    "weekly_load": plan.load_summary.total_weekly_load,
                    "balance": plan.load_summary.balance.value,
                }
            )
    log_metric("rituals.plan.recommendations", len(plan.recommendations))
    return plan


@router.get("/templates", response_model=List[RitualTemplateView])
def list_templates() -> List[RitualTemplateView]:
    return [ritual_catalog.template_view(template) for template in ritual_catalog.all_templates()]


@router.get("/archetypes", response_model=List[HairArchetype])
def list_archetypes() -> List[HairArchetype]:
    return profile_analyzer.all_archetypes()


@router.get("/load-levels", response_model=List[EventLoadLevel])
def list_load_levels() -> List[EventLoadLevel]:
    return load_accountant.all_event_load_levels()
