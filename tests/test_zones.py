import pytest

from errors import InvalidZone
from models import TextBox
from zones import (
    ZoneResolver, next_slot, template_ids, template_label, zone_color, zone_label, zones_for,
)


def box(x, y, zone=None, box_id=1, sheet_id=1):
    return TextBox(id=box_id, content="t", x=x, y=y, sheet_id=sheet_id, zone=zone)


def test_zones_for_known_templates():
    assert zones_for("swot") == ["strengths", "weaknesses", "opportunities", "threats"]
    assert zones_for("4p") == ["product", "price", "place", "promotion"]
    assert zones_for("3c") == ["company", "customer", "competitor"]
    assert zones_for("pest") == ["political", "economic", "social", "technological"]
    assert len(zones_for("5force")) == 5
    assert len(zones_for("supply_chain")) == 7
    assert len(zones_for("value_chain")) == 11
    assert zones_for("vrio")[-1] == "conclusion"


def test_zones_for_is_case_insensitive_and_aliased():
    assert zones_for("SWOT") == zones_for("swot")
    assert zones_for("five_forces") == zones_for("5force")
    assert zones_for("FiveForces") == zones_for("5force")


def test_unknown_or_missing_template_is_freeform():
    assert zones_for(None) == []
    assert zones_for("") == []
    assert zones_for("nope") == []
    assert ZoneResolver(None).is_freeform


def test_zones_for_returns_a_copy():
    zones = zones_for("swot")
    zones.append("extra")
    assert "extra" not in zones_for("swot")


def test_labels_and_colors():
    assert "swot" in template_ids()
    assert template_label("swot") == "SWOT Analysis"
    assert template_label(None) == "Freeform"
    assert zone_label("inbound_logistics") == "Inbound Logistics"
    assert zone_label("hr_management") == "HR Management"
    assert zone_color("strengths") == "blue"
    assert zone_color("weaknesses") == "red"
    assert zone_color("rivalry") == "white"
    assert zone_color(None) == "white"


@pytest.mark.parametrize("index, expected", [
    (0, (50, 50)),
    (1, (350, 50)),
    (2, (50, 250)),
    (3, (350, 250)),
    (4, (50, 450)),
])
def test_next_slot_empty_zone_tiles_two_columns(index, expected):
    assert next_slot([], index) == expected


def test_next_slot_is_deterministic():
    assert next_slot([], 3) == next_slot([], 3)


def test_next_slot_stacks_under_last_box():
    assert next_slot([box(50, 50)], 0) == (50, 150)
    assert next_slot([box(50, 50), box(70, 400)], 0) == (70, 500)


def test_resolver_index_of_and_invalid_zone():
    resolver = ZoneResolver("swot")
    assert resolver.index_of("threats") == 3
    with pytest.raises(InvalidZone) as exc:
        resolver.index_of("nonexistent")
    assert exc.value.zone == "nonexistent"
    assert exc.value.template_id == "swot"


def test_freeform_resolver_rejects_every_zone():
    with pytest.raises(InvalidZone):
        ZoneResolver(None).index_of("strengths")


def test_slot_for_only_considers_boxes_in_the_zone():
    resolver = ZoneResolver("swot")
    boxes = [box(50, 50, "strengths"), box(350, 50, "weaknesses", box_id=2)]
    assert resolver.slot_for("strengths", boxes) == (50, 150)
    assert resolver.slot_for("opportunities", boxes) == (50, 250)
