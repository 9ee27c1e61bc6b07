import pytest
from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtTest import QTest

import main_window
from config import EngineConfig
from models import ExplicitTarget, ZoneTarget


@pytest.fixture
def window(tmp_path):
    w = main_window.MainWindow(EngineConfig(store_path=str(tmp_path / "boxes.json")))
    w.session.use_worker = False
    yield w
    w.close()


@pytest.fixture
def pdf_path(tmp_path, hello_pdf):
    path = tmp_path / "hello.pdf"
    path.write_bytes(hello_pdf)
    return str(path)


def test_open_file_shows_page(window, pdf_path):
    window.load_file(pdf_path)
    view = window._pdf_scroll.page_view
    assert view._pixmap is not None
    assert window._page_label.text() == "1 / 1"
    assert "hello.pdf" in window.windowTitle()


def test_unsupported_file_shows_error(window, tmp_path, monkeypatch):
    shown = []
    monkeypatch.setattr(main_window.QMessageBox, "critical", lambda *args: shown.append(args))
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    window.load_file(str(path))
    assert len(shown) == 1
    assert "not supported" in shown[0][2]
    assert not window.session.has_document


def test_canvas_drop_creates_box(window):
    window._canvas_panel.placement_requested.emit("dropped text", ExplicitTarget(30, 40))
    [box] = window.session.store.list_text_boxes_for_sheet(1)
    assert box.content == "dropped text"


def test_template_selector_drives_zone_placement(window, monkeypatch):
    warnings = []
    monkeypatch.setattr(main_window.QMessageBox, "warning", lambda *args: warnings.append(args))

    window._canvas_panel.set_template("swot")
    assert window.session.dispatcher.template_id == "swot"

    window._pdf_scroll.placement_requested.emit("Fast growth", ZoneTarget("strengths"))
    window._pdf_scroll.placement_requested.emit("Fast growth", ZoneTarget("nonexistent"))
    [box] = window.session.store.list_text_boxes_for_sheet(1)
    assert (box.x, box.y, box.zone) == (50, 50, "strengths")
    assert len(warnings) == 1


def test_mouse_drag_selects_text(window, pdf_path):
    window.load_file(pdf_path)
    view = window._pdf_scroll.page_view
    view.resize(700, 900)
    origin = view._page_origin()
    pixmap = view._pixmap

    start = QPointF(origin.x() + 1, origin.y() + 1).toPoint()
    end = QPointF(origin.x() + pixmap.width() - 1, origin.y() + pixmap.height() - 1).toPoint()
    QTest.mousePress(view, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, start)
    QTest.mouseMove(view, end)
    QTest.mouseRelease(view, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, end)

    assert window.session.last_selection is not None
    assert window.session.last_selection.text == "Hello World"


def test_click_inside_selection_clears_it(window, pdf_path):
    window.load_file(pdf_path)
    view = window._pdf_scroll.page_view
    view.resize(700, 900)
    origin = view._page_origin()
    layer = window.session.layer
    word = next(f for f in layer if not f.is_whitespace)
    window.session.tracker.select_range(0, 0)
    assert window.session.last_selection is not None

    inside = QPointF(origin.x() + word.left + word.width / 2, origin.y() + word.top + word.height / 2).toPoint()
    QTest.mouseClick(view, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, inside)

    assert window.session.last_selection is None
    assert window.session.tracker.layer is layer


def _placed_box(window):
    window.show()
    canvas = window._canvas_panel.view
    canvas.resize(800, 600)
    window._canvas_panel.placement_requested.emit("movable", ExplicitTarget(30, 40))
    [box] = window.session.store.list_text_boxes_for_sheet(1)
    return canvas, box


def test_drag_moves_box_on_canvas(window):
    canvas, box = _placed_box(window)
    x0, y0 = box.x, box.y

    grab = QPointF(x0 + 10, y0 + 10).toPoint()
    drop = QPointF(x0 + 110, y0 + 60).toPoint()
    QTest.mousePress(canvas, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, grab)
    QTest.mouseMove(canvas, drop)
    QTest.mouseRelease(canvas, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, drop)

    assert (box.x, box.y) == (x0 + 100, y0 + 50)


def test_double_click_edits_box_content(window):
    canvas, box = _placed_box(window)
    inside = QPointF(box.x + 10, box.y + 10).toPoint()
    QTest.mouseDClick(canvas, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, inside)

    editor = canvas.editor
    assert editor is not None
    assert editor.text() == "movable"
    editor.setText("edited")
    editor.editingFinished.emit()

    assert canvas.editor is None
    assert window.session.store.get(box.id).content == "edited"


def test_blank_edit_keeps_content(window):
    canvas, box = _placed_box(window)
    inside = QPointF(box.x + 10, box.y + 10).toPoint()
    QTest.mouseDClick(canvas, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, inside)
    canvas.editor.setText("   ")
    canvas.editor.editingFinished.emit()
    assert box.content == "movable"
