import pytest

from errors import EmptySelection, InvalidZone, PlacementFailed
from models import ExplicitTarget, ZoneTarget
from placement import PlacementDispatcher
from store import TextBoxStore


class FailingStore(TextBoxStore):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc
        self.calls = 0

    def create_text_box(self, request):
        self.calls += 1
        raise self.exc


@pytest.fixture
def store():
    return TextBoxStore()


@pytest.fixture
def dispatcher(store):
    d = PlacementDispatcher(store)
    d.set_template("swot")
    return d


def test_zone_placement_scenario(dispatcher, store):
    first = dispatcher.place("Fast growth", ZoneTarget("strengths"))
    assert (first.x, first.y, first.zone) == (50, 50, "strengths")
    assert first.color == "blue"

    second = dispatcher.place("Loyal customers", ZoneTarget("strengths"))
    assert (second.x, second.y) == (50, 150)
    assert len(store.list_text_boxes_for_sheet(1)) == 2


def test_zone_index_picks_starting_tile(dispatcher):
    box = dispatcher.place("Recession", ZoneTarget("threats"))
    assert (box.x, box.y) == (350, 250)


def test_invalid_zone_is_rejected_without_create(dispatcher, store):
    rejected = []
    created = []
    dispatcher.placement_rejected.connect(rejected.append)
    dispatcher.text_box_created.connect(created.append)

    with pytest.raises(InvalidZone):
        dispatcher.place("Fast growth", ZoneTarget("nonexistent"))
    assert store.boxes == []
    assert created == []
    assert len(rejected) == 1


def test_zone_target_without_template_is_invalid(store):
    d = PlacementDispatcher(store)
    with pytest.raises(InvalidZone):
        d.place("x", ZoneTarget("strengths"))


def test_explicit_target_defaults(dispatcher):
    box = dispatcher.place("note", ExplicitTarget(120, 80))
    assert (box.x, box.y) == (120, 80)
    assert box.zone is None
    assert box.color == "white"
    assert box.width == 200


def test_explicit_target_is_clamped_to_canvas(dispatcher):
    dispatcher.set_canvas_size(800, 600)
    req = dispatcher.build_request("note", ExplicitTarget(790, 5))
    assert (req.x, req.y) == (590, 10)
    req = dispatcher.build_request("note", ExplicitTarget(-50, 580))
    assert (req.x, req.y) == (10, 490)


def test_build_request_has_no_side_effects(dispatcher, store):
    req = dispatcher.build_request("note", ZoneTarget("weaknesses"))
    assert (req.x, req.y, req.zone, req.color) == (350, 50, "weaknesses", "red")
    assert store.boxes == []


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_text_is_not_placed(dispatcher, store, text):
    with pytest.raises(EmptySelection):
        dispatcher.place(text, ExplicitTarget(10, 10))
    assert store.boxes == []


def test_sheet_id_is_used(dispatcher, store):
    dispatcher.sheet_id = 7
    dispatcher.place("a", ZoneTarget("strengths"))
    box = dispatcher.place("b", ZoneTarget("strengths"))
    assert box.sheet_id == 7
    assert (box.x, box.y) == (50, 150)
    assert store.list_text_boxes_for_sheet(1) == []


def test_store_failure_becomes_placement_failed():
    store = FailingStore(OSError("disk full"))
    d = PlacementDispatcher(store)
    created = []
    d.text_box_created.connect(created.append)

    with pytest.raises(PlacementFailed) as exc:
        d.place("note", ExplicitTarget(10, 10))
    assert isinstance(exc.value.__cause__, OSError)
    assert store.calls == 1
    assert created == []


def test_placement_failed_passes_through_unchanged():
    original = PlacementFailed("backend refused")
    d = PlacementDispatcher(FailingStore(original))
    with pytest.raises(PlacementFailed) as exc:
        d.place("note", ExplicitTarget(10, 10))
    assert exc.value is original
