"""Static library of ritual templates.

Templates are declared as plain data, validated into frozen models once at
import time and never mutated afterwards.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from care_calendar.api.schemas.rituals import RitualStepView, RitualTemplate, RitualTemplateView


class CatalogError(ValueError):
    """Raised when the template library is malformed."""


def _step(step_type: str, name: str, minutes: int, optional: bool = False) -> Dict[str, Any]:
    return {"step_type": step_type, "name": name, "estimated_minutes": minutes, "optional": optional}


RITUAL_TEMPLATE_DATA: Tuple[Dict[str, Any], ...] = (
    # Wash day
    {
        "id": "wash-day-full-coily",
        "name": "Full Wash Day (Coily)",
        "ritual_type": "WASH_DAY",
        "description": "Complete wash day routine for coily textures with detangle and deep condition",
        "load_level": "HEAVY",
        "default_duration_minutes": 180,
        "frequency": "WEEKLY",
        "steps": [
            _step("PRE_POO", "Pre-poo oil treatment", 30),
            _step("DETANGLE", "Gentle detangle with conditioner", 30),
            _step("SHAMPOO", "Sulfate-free cleanse", 10),
            _step("DEEP_CONDITION", "Deep conditioning with heat cap", 45),
            _step("LEAVE_IN", "Leave-in conditioner application", 10),
            _step("STYLE", "LOC/LCO method styling", 30),
            _step("DRY", "Air dry or diffuse", 25),
        ],
        "criteria": {"pattern_families": ["COILY", "KINKY"], "care_needs": ["MOISTURE", "PROTECTION"]},
    },
    {
        "id": "wash-day-full-curly",
        "name": "Full Wash Day (Curly)",
        "ritual_type": "WASH_DAY",
        "description": "Complete wash day for curly textures with emphasis on definition",
        "load_level": "HEAVY",
        "default_duration_minutes": 120,
        "frequency": "WEEKLY",
        "steps": [
            _step("SHAMPOO", "Gentle cleanse", 10),
            _step("CONDITION", "Rinse-out conditioner", 10),
            _step("DETANGLE", "Wide-tooth comb detangle", 15),
            _step("DEEP_CONDITION", "Deep conditioner (15-20 min)", 25),
            _step("STYLE", "Curl cream and gel application", 20),
            _step("DRY", "Diffuse or air dry", 40),
        ],
        "criteria": {"pattern_families": ["CURLY"], "care_needs": ["MOISTURE"]},
    },
    {
        "id": "wash-day-wavy",
        "name": "Wash Day (Wavy)",
        "ritual_type": "WASH_DAY",
        "description": "Lightweight wash day for wavy textures",
        "load_level": "STANDARD",
        "default_duration_minutes": 60,
        "frequency": "TWICE_WEEKLY",
        "steps": [
            _step("SHAMPOO", "Clarifying or gentle shampoo", 5),
            _step("CONDITION", "Lightweight conditioner", 5),
            _step("STYLE", "Mousse or light gel", 10),
            _step("DRY", "Air dry or scrunch dry", 40),
        ],
        "criteria": {"pattern_families": ["WAVY", "STRAIGHT"]},
    },
    {
        "id": "cowash-refresh",
        "name": "Co-wash Refresh",
        "ritual_type": "WASH_DAY",
        "description": "Quick co-wash for mid-week refresh",
        "load_level": "LIGHT",
        "default_duration_minutes": 30,
        "frequency": "WEEKLY",
        "steps": [
            _step("COWASH", "Cleansing conditioner", 10),
            _step("DETANGLE", "Finger detangle", 10),
            _step("LEAVE_IN", "Light leave-in", 5),
            _step("REFRESH", "Refresh curls", 5),
        ],
        "criteria": {"pattern_families": ["CURLY", "COILY"], "porosity_levels": ["HIGH", "MEDIUM"]},
    },
    # Deep conditioning
    {
        "id": "deep-condition-moisture",
        "name": "Deep Moisture Treatment",
        "ritual_type": "DEEP_CONDITION",
        "description": "Intensive moisture treatment for dry, thirsty hair",
        "load_level": "STANDARD",
        "default_duration_minutes": 45,
        "frequency": "WEEKLY",
        "steps": [
            _step("PREP", "Dampen hair", 5),
            _step("APPLY", "Apply deep conditioner generously", 10),
            _step("HEAT", "Heat cap or plastic cap treatment", 20),
            _step("RINSE", "Cool water rinse", 10),
        ],
        "criteria": {"porosity_levels": ["HIGH"], "care_needs": ["MOISTURE"]},
    },
    {
        "id": "deep-condition-low-porosity",
        "name": "Steam Deep Condition",
        "ritual_type": "DEEP_CONDITION",
        "description": "Heat-assisted deep conditioning for low porosity hair",
        "load_level": "STANDARD",
        "default_duration_minutes": 60,
        "frequency": "BI_WEEKLY",
        "steps": [
            _step("CLARIFY", "Light clarifying rinse", 5, optional=True),
            _step("APPLY", "Apply lightweight deep conditioner", 10),
            _step("STEAM", "Steamer or hot towel treatment", 30),
            _step("RINSE", "Cool water rinse", 10),
            _step("SEAL", "Light oil to seal", 5),
        ],
        "criteria": {"porosity_levels": ["LOW"]},
    },
    # Protein
    {
        "id": "protein-treatment-light",
        "name": "Light Protein Treatment",
        "ritual_type": "PROTEIN_TREATMENT",
        "description": "Gentle protein boost for maintaining strength",
        "load_level": "STANDARD",
        "default_duration_minutes": 30,
        "frequency": "BI_WEEKLY",
        "steps": [
            _step("APPLY", "Apply protein treatment", 5),
            _step("WAIT", "Process time", 15),
            _step("RINSE", "Rinse thoroughly", 5),
            _step("CONDITION", "Follow with moisturizing conditioner", 5),
        ],
        "criteria": {"care_needs": ["PROTEIN"]},
    },
    {
        "id": "protein-treatment-intensive",
        "name": "Intensive Protein Reconstructor",
        "ritual_type": "PROTEIN_TREATMENT",
        "description": "Strong protein treatment for damaged or high-porosity hair",
        "load_level": "HEAVY",
        "default_duration_minutes": 60,
        "frequency": "MONTHLY",
        "steps": [
            _step("SHAMPOO", "Clarifying shampoo", 5),
            _step("APPLY", "Apply reconstructor treatment", 10),
            _step("HEAT", "Process with heat", 20),
            _step("RINSE", "Rinse completely", 5),
            _step("DEEP_CONDITION", "Deep moisture treatment", 20),
        ],
        "criteria": {"porosity_levels": ["HIGH"], "care_needs": ["PROTEIN"], "max_health_score": 60},
    },
    # Scalp
    {
        "id": "scalp-treatment-sensitive",
        "name": "Gentle Scalp Treatment",
        "ritual_type": "SCALP_TREATMENT",
        "description": "Soothing treatment for sensitive scalps",
        "load_level": "LIGHT",
        "default_duration_minutes": 20,
        "frequency": "WEEKLY",
        "steps": [
            _step("OIL", "Apply scalp oil", 5),
            _step("MASSAGE", "Gentle scalp massage", 10),
            _step("REST", "Leave in or rinse", 5, optional=True),
        ],
        "criteria": {"care_needs": ["SCALP_CARE"]},
    },
    {
        "id": "scalp-detox",
        "name": "Scalp Detox Treatment",
        "ritual_type": "SCALP_TREATMENT",
        "description": "Clarifying treatment to remove buildup",
        "load_level": "STANDARD",
        "default_duration_minutes": 30,
        "frequency": "MONTHLY",
        "steps": [
            _step("APPLY", "Apply scalp scrub or ACV rinse", 5),
            _step("MASSAGE", "Massage into scalp", 10),
            _step("RINSE", "Rinse thoroughly", 5),
            _step("CONDITION", "Follow with conditioner", 10),
        ],
        "criteria": {"porosity_levels": ["LOW"]},
    },
    # Moisture and style refresh
    {
        "id": "moisture-refresh-daily",
        "name": "Daily Moisture Refresh",
        "ritual_type": "MOISTURE_REFRESH",
        "description": "Quick daily hydration boost",
        "load_level": "LIGHT",
        "default_duration_minutes": 10,
        "frequency": "DAILY",
        "steps": [
            _step("SPRAY", "Water or leave-in spray", 3),
            _step("SEAL", "Light oil to seal", 3),
            _step("STYLE", "Finger coil or smooth", 4, optional=True),
        ],
        "criteria": {"porosity_levels": ["HIGH"], "care_needs": ["MOISTURE"]},
    },
    {
        "id": "refresh-style",
        "name": "Style Refresh",
        "ritual_type": "STYLE_REFRESH",
        "description": "Revive second or third day curls",
        "load_level": "LIGHT",
        "default_duration_minutes": 15,
        "frequency": "EVERY_OTHER_DAY",
        "steps": [
            _step("SPRAY", "Dampen with water spray", 3),
            _step("APPLY", "Light curl refresher", 5),
            _step("SCRUNCH", "Scrunch and reshape", 5),
            _step("DRY", "Air dry or diffuse", 2, optional=True),
        ],
        "criteria": {"pattern_families": ["CURLY", "WAVY"]},
    },
    # Hot oil
    {
        "id": "hot-oil-treatment",
        "name": "Hot Oil Treatment",
        "ritual_type": "HOT_OIL",
        "description": "Pre-wash oil treatment for moisture and shine",
        "load_level": "STANDARD",
        "default_duration_minutes": 45,
        "frequency": "WEEKLY",
        "steps": [
            _step("WARM", "Warm oil blend", 5),
            _step("APPLY", "Apply to scalp and lengths", 10),
            _step("WRAP", "Cover with cap and warm towel", 25),
            _step("RINSE", "Shampoo out", 5),
        ],
        "criteria": {"care_needs": ["MOISTURE"], "pattern_families": ["COILY", "CURLY"]},
    },
    # Protective styling
    {
        "id": "protective-style-prep",
        "name": "Protective Style Prep",
        "ritual_type": "PROTECTIVE_STYLE",
        "description": "Prep routine before installing protective style",
        "load_level": "HEAVY",
        "default_duration_minutes": 120,
        "frequency": "MONTHLY",
        "steps": [
            _step("CLARIFY", "Clarifying shampoo", 10),
            _step("DEEP_CONDITION", "Protein and moisture treatment", 30),
            _step("DETANGLE", "Thorough detangle", 30),
            _step("LEAVE_IN", "Leave-in and oil seal", 15),
            _step("DRY", "Stretch and dry", 35),
        ],
        "criteria": {"pattern_families": ["COILY", "KINKY", "CURLY"], "care_needs": ["PROTECTION"]},
    },
    # Detangle
    {
        "id": "gentle-detangle",
        "name": "Gentle Detangle Session",
        "ritual_type": "DETANGLE",
        "description": "Low-manipulation detangle for fragile hair",
        "load_level": "LIGHT",
        "default_duration_minutes": 30,
        "frequency": "WEEKLY",
        "steps": [
            _step("PREP", "Dampen with water and conditioner", 5),
            _step("SECTION", "Section hair", 5),
            _step("DETANGLE", "Finger detangle each section", 15),
            _step("TWIST", "Twist or braid sections", 5, optional=True),
        ],
        "criteria": {"care_needs": ["REST"]},
    },
)


def load_catalog(raw_templates: Tuple[Dict[str, Any], ...] | List[Dict[str, Any]]) -> Tuple[RitualTemplate, ...]:
    """Validate raw template declarations into an immutable, ordered catalog."""
    templates: List[RitualTemplate] = []
    seen_ids = set()
    for raw in raw_templates:
        try:
            template = RitualTemplate.model_validate(raw)
        except ValidationError as exc:
            raise CatalogError(f"Malformed ritual template {raw.get('id', '<missing id>')!r}: {exc}") from exc
        if template.id in seen_ids:
            raise CatalogError(f"Duplicate ritual template id {template.id!r}")
        seen_ids.add(template.id)
        templates.append(template)
    return tuple(templates)


RITUAL_TEMPLATES: Tuple[RitualTemplate, ...] = load_catalog(RITUAL_TEMPLATE_DATA)
_TEMPLATES_BY_ID: Dict[str, RitualTemplate] = {template.id: template for template in RITUAL_TEMPLATES}


def all_templates() -> List[RitualTemplate]:
    return list(RITUAL_TEMPLATES)


def get_template(template_id: str) -> Optional[RitualTemplate]:
    return _TEMPLATES_BY_ID.get(template_id)


def template_view(template: RitualTemplate) -> RitualTemplateView:
    """Project a template into the API shape with 1-based step ordering."""
    return RitualTemplateView(
        id=template.id,
        ritual_type=template.ritual_type,
        name=template.name,
        description=template.description,
        default_duration_minutes=template.default_duration_minutes,
        load_level=template.load_level,
        frequency=template.frequency,
        steps=[
            RitualStepView(
                id=f"{template.id}-step-{index}",
                step_order=index + 1,
                step_type=step.step_type,
                name=step.name,
                estimated_minutes=step.estimated_minutes,
                optional=step.optional,
                notes=step.notes,
            )
            for index, step in enumerate(template.steps)
        ],
    )
