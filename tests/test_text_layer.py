import pytest

from config import GRANULARITY_GLYPH
from models import TextRun, Viewport
from text_layer import TextLayerBuilder, split_run


def run(text, x=100.0, y=700.0, size=12.0, ascent=9.0, width=None):
    if width is None:
        width = 6.0 * len(text)
    return TextRun(text, (size, 0.0, 0.0, size, x, y), size, ascent, width)


def viewport(scale=1.0):
    return Viewport.for_page(0, 595, 842, scale)


def test_split_run_word_keeps_whitespace_pieces():
    assert split_run("Hello  World") == [(0, "Hello"), (5, "  "), (7, "World")]


def test_split_run_glyph():
    assert split_run("abc", GRANULARITY_GLYPH) == [(0, "a"), (1, "b"), (2, "c")]


def test_word_fragments_positions():
    layer = TextLayerBuilder().build([run("Hello World")], viewport())
    texts = [f.text for f in layer]
    assert texts == ["Hello", " ", "World"]

    hello, space, world = layer.fragments
    assert hello.left == pytest.approx(100.0)
    assert hello.width == pytest.approx(30.0)
    assert space.left == pytest.approx(130.0)
    assert world.left == pytest.approx(136.0)
    assert hello.top == pytest.approx(691.0)
    assert hello.height == pytest.approx(12 * 1.2)
    assert world.source_run_index == 0
    assert world.offset_in_run == 6


def test_fragments_scale_with_viewport():
    layer = TextLayerBuilder().build([run("Hello World")], viewport(2.0))
    hello = layer.fragments[0]
    assert hello.left == pytest.approx(200.0)
    assert hello.top == pytest.approx(1382.0)
    assert hello.width == pytest.approx(60.0)
    assert layer.viewport.scale == 2.0


def test_zero_run_width_uses_estimate():
    layer = TextLayerBuilder().build([run("ab", width=0.0)], viewport())
    assert layer.fragments[0].width == pytest.approx(2 * 12 * 0.6)


def test_glyph_granularity():
    layer = TextLayerBuilder(GRANULARITY_GLYPH).build([run("Hi you")], viewport())
    assert [f.text for f in layer] == ["H", "i", " ", "y", "o", "u"]
    assert [f.offset_in_run for f in layer] == [0, 1, 2, 3, 4, 5]
    assert layer.fragments[1].left == pytest.approx(106.0)


def test_duplicate_runs_collapse_to_one_fragment():
    # fake bold: same text drawn twice at the same spot
    layer = TextLayerBuilder().build([run("Bold"), run("Bold", x=100.3)], viewport())
    assert [f.text for f in layer] == ["Bold"]
    assert layer.fragments[0].source_run_index == 0


def test_whitespace_is_superseded_by_text():
    layer = TextLayerBuilder().build([run(" "), run("X")], viewport())
    assert [f.text for f in layer] == ["X"]


def test_control_characters_count_as_whitespace():
    layer = TextLayerBuilder().build([run("\x00"), run("A")], viewport())
    assert [f.text for f in layer] == ["A"]


def test_text_is_kept_over_later_whitespace():
    layer = TextLayerBuilder().build([run("A"), run(" ")], viewport())
    assert [f.text for f in layer] == ["A"]


def test_distinct_cells_are_all_kept():
    layer = TextLayerBuilder().build([run("A"), run("B", y=720.0)], viewport())
    assert [f.text for f in layer] == ["A", "B"]


def test_empty_runs_are_skipped():
    layer = TextLayerBuilder().build([run(""), run("A")], viewport())
    assert len(layer) == 1
    assert layer.fragments[0].source_run_index == 1


def test_each_build_returns_a_new_layer():
    builder = TextLayerBuilder()
    runs = [run("Hello")]
    assert builder.build(runs, viewport()) is not builder.build(runs, viewport())


def test_unknown_granularity_rejected():
    with pytest.raises(ValueError):
        TextLayerBuilder("line")

