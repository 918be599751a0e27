from __future__ import annotations

import pytest
from pydantic import ValidationError

from care_calendar.api.schemas.rituals import RitualCriteria
from care_calendar.core.enums import LoadFactor, RitualType
from care_calendar.services import ritual_catalog
from care_calendar.services.ritual_catalog import CatalogError, load_catalog


def _raw_template(**overrides):
    template = {
        "id": "test-ritual",
        "name": "Test Ritual",
        "ritual_type": "DETANGLE",
        "description": "A ritual used in tests",
        "load_level": "LIGHT",
        "default_duration_minutes": 20,
        "frequency": "WEEKLY",
        "steps": [{"step_type": "DETANGLE", "name": "Finger detangle", "estimated_minutes": 20}],
    }
    template.update(overrides)
    return template


def test_catalog_ships_fifteen_unique_templates() -> None:
    templates = ritual_catalog.all_templates()

    assert len(templates) == 15
    assert len({template.id for template in templates}) == 15
    assert {template.ritual_type for template in templates} == set(RitualType)


def test_all_templates_returns_a_copy() -> None:
    templates = ritual_catalog.all_templates()
    templates.clear()

    assert len(ritual_catalog.all_templates()) == 15


def test_get_template_by_id() -> None:
    template = ritual_catalog.get_template("wash-day-full-coily")

    assert template is not None
    assert template.load_level == LoadFactor.HEAVY
    assert template.default_duration_minutes == 180
    assert [step.step_type for step in template.steps][:2] == ["PRE_POO", "DETANGLE"]
    assert ritual_catalog.get_template("missing") is None


def test_templates_are_immutable() -> None:
    template = ritual_catalog.get_template("cowash-refresh")

    with pytest.raises(ValidationError):
        template.name = "Changed"


def test_duplicate_ids_are_rejected() -> None:
    with pytest.raises(CatalogError, match="Duplicate"):
        load_catalog([_raw_template(), _raw_template()])


@pytest.mark.parametrize(
    "overrides",
    [
        {"ritual_type": "BRAID_PARTY"},
        {"load_level": "EXTREME"},
        {"steps": []},
        {"criteria": {"porosity_levels": []}},
        {"criteria": {"porosity_level": ["HIGH"]}},
        {"criteria": {"min_health_score": 80, "max_health_score": 20}},
    ],
)
def test_malformed_templates_fail_at_load(overrides) -> None:
    with pytest.raises(CatalogError):
        load_catalog([_raw_template(**overrides)])


def test_catalog_error_is_a_value_error() -> None:
    assert issubclass(CatalogError, ValueError)


def test_omitted_criteria_place_no_constraint() -> None:
    criteria = RitualCriteria()

    assert criteria.pattern_families is None
    assert criteria.care_needs is None


def test_template_view_numbers_steps_from_one() -> None:
    template = ritual_catalog.get_template("deep-condition-low-porosity")

    view = ritual_catalog.template_view(template)

    assert view.is_template is True
    assert view.user_id is None
    assert [step.step_order for step in view.steps] == [1, 2, 3, 4, 5]
    assert view.steps[0].id == "deep-condition-low-porosity-step-0"
    assert view.steps[0].optional is True
    assert view.steps[0].notes is None
