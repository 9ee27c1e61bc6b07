"""
zones.py — Analysis templates, their zones, and zone auto-layout
Templates are static configuration; nothing here is persisted.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from errors import InvalidZone
from models import DEFAULT_BOX_COLOR, TextBox

logger = logging.getLogger(__name__)

# Stacking / tiling for zone auto-layout (canvas units)
VERTICAL_STEP = 100
BASE_X = 50
BASE_Y = 50
COLUMN_WIDTH = 300
ROW_HEIGHT = 200


# ─────────────────────────────────────────────
# Template registry
# ─────────────────────────────────────────────

TEMPLATE_ZONES: dict[str, tuple[str, ...]] = {
    "swot": ("strengths", "weaknesses", "opportunities", "threats"),
    "4p": ("product", "price", "place", "promotion"),
    "3c": ("company", "customer", "competitor"),
    "pest": ("political", "economic", "social", "technological"),
    "5force": ("rivalry", "new_entrants", "substitutes", "buyer_power", "supplier_power"),
    "supply_chain": (
        "suppliers", "inbound_logistics", "manufacturing", "outbound_logistics", "customers",
        "issues", "improvements",
    ),
    "value_chain": (
        "inbound_logistics", "operations", "outbound_logistics", "marketing_sales", "service",
        "firm_infrastructure", "hr_management", "technology_development", "procurement",
        "competitive_advantage", "improvements",
    ),
    "vrio": ("value", "rarity", "imitability", "organization", "conclusion"),
    "bmc": (
        "key_partners", "key_activities", "key_resources", "value_propositions",
        "customer_relationships", "channels", "customer_segments", "cost_structure",
        "revenue_streams",
    ),
    "lean": (
        "problem", "solution", "key_metrics", "unique_value_proposition", "unfair_advantage",
        "channels", "customer_segments", "cost_structure", "revenue_streams",
    ),
}

_ALIASES = {
    "five_forces": "5force",
    "fiveforces": "5force",
}

TEMPLATE_LABELS = {
    "swot": "SWOT Analysis",
    "4p": "4P Analysis",
    "3c": "3C Analysis",
    "pest": "PEST Analysis",
    "5force": "Five Forces",
    "supply_chain": "Supply Chain",
    "value_chain": "Value Chain",
    "vrio": "VRIO Analysis",
    "bmc": "Business Model Canvas",
    "lean": "Lean Canvas",
}

_ZONE_LABEL_OVERRIDES = {
    "hr_management": "HR Management",
    "marketing_sales": "Marketing & Sales",
    "new_entrants": "Threat of New Entrants",
    "substitutes": "Threat of Substitutes",
    "buyer_power": "Buyer Power",
    "supplier_power": "Supplier Power",
    "rivalry": "Competitive Rivalry",
    "imitability": "Imitability",
}

ZONE_COLORS = {
    "strengths": "blue",
    "weaknesses": "red",
    "opportunities": "green",
    "threats": "yellow",
    "company": "blue",
    "customer": "green",
    "competitor": "yellow",
    "product": "purple",
    "price": "purple",
    "place": "blue",
    "promotion": "green",
    "political": "purple",
    "economic": "blue",
    "social": "green",
    "technological": "blue",
}


def canonical_template(template_id: Optional[str]) -> Optional[str]:
    if not template_id:
        return None
    key = template_id.strip().lower()
    key = _ALIASES.get(key, key)
    return key if key in TEMPLATE_ZONES else None


def zones_for(template_id: Optional[str]) -> list[str]:
    """Ordered zone ids of a template; [] means freeform canvas."""
    key = canonical_template(template_id)
    if key is None:
        return []
    return list(TEMPLATE_ZONES[key])


def template_ids() -> list[str]:
    return list(TEMPLATE_ZONES)


def template_label(template_id: Optional[str]) -> str:
    key = canonical_template(template_id)
    if key is None:
        return template_id or "Freeform"
    return TEMPLATE_LABELS[key]


def zone_label(zone: str) -> str:
    if zone in _ZONE_LABEL_OVERRIDES:
        return _ZONE_LABEL_OVERRIDES[zone]
    return zone.replace("_", " ").title()


def zone_color(zone: Optional[str]) -> str:
    return ZONE_COLORS.get(zone or "", DEFAULT_BOX_COLOR)


# ─────────────────────────────────────────────
# Auto-layout
# ─────────────────────────────────────────────

def next_slot(existing: Sequence[TextBox], zone_index: int) -> tuple[float, float]:
    """Position for the next box in a zone.

    Stacks directly under the last box already in the zone; an empty zone
    starts from a two-column tiling keyed on the zone index alone.
    """
    if existing:
        last = existing[-1]
        return (last.x, last.y + VERTICAL_STEP)
    return (
        BASE_X + (zone_index % 2) * COLUMN_WIDTH,
        BASE_Y + (zone_index // 2) * ROW_HEIGHT,
    )


class ZoneResolver:
    """Zone lookup and slot computation for one active template."""

    def __init__(self, template_id: Optional[str] = None):
        self.template_id = template_id
        self.zones = zones_for(template_id)

    @property
    def is_freeform(self) -> bool:
        return not self.zones

    def index_of(self, zone: str) -> int:
        try:
            return self.zones.index(zone)
        except ValueError:
            raise InvalidZone(zone, self.template_id) from None

    def slot_for(self, zone: str, boxes: Sequence[TextBox]) -> tuple[float, float]:
        """boxes: every box on the sheet; only those tagged with zone are used."""
        index = self.index_of(zone)
        in_zone = [b for b in boxes if b.zone == zone]
        x, y = next_slot(in_zone, index)
        logger.debug("Zone %s[%d]: %d existing boxes → (%s, %s)",
                     zone, index, len(in_zone), x, y)
        return x, y
