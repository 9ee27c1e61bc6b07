"""
canvas_panel.py — Analysis canvas: template selector, zone guides, text boxes
Text dropped from the page view becomes a box at the drop point.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QLineEdit, QMenu, QPushButton, QSizePolicy,
    QSpinBox, QVBoxLayout, QWidget,
)

from models import ExplicitTarget, TextBox
from placement import PlacementDispatcher
from store import TextBoxStore
from zones import (
    BASE_X, BASE_Y, COLUMN_WIDTH, ROW_HEIGHT, template_ids, template_label, zone_label,
)

logger = logging.getLogger(__name__)

# Box colour name → fill
_FILL = {
    "white": QColor("#ffffff"),
    "blue": QColor("#dbeafe"),
    "red": QColor("#fee2e2"),
    "green": QColor("#dcfce7"),
    "yellow": QColor("#fef9c3"),
    "purple": QColor("#f3e8ff"),
}

BOX_PADDING = 6
_BOX_TEXT_FLAGS = (
    (Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop).value | Qt.TextFlag.TextWordWrap.value
)


class CanvasView(QWidget):
    """Paints the sheet's text boxes; accepts text drops.

    Boxes are moved by dragging and edited in place on double-click.
    """

    placement_requested = pyqtSignal(str, object)   # text, ExplicitTarget
    delete_requested = pyqtSignal(int)              # box id
    update_requested = pyqtSignal(int, object)      # box id, {field: value}

    def __init__(self, store: TextBoxStore, dispatcher: PlacementDispatcher, parent=None):
        super().__init__(parent)
        self._store = store
        self._dispatcher = dispatcher
        self.setAcceptDrops(True)
        self.setMinimumSize(400, 300)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        store.textboxes_changed.connect(lambda _sheet: self.update())

        self._moving: Optional[tuple[int, QPointF]] = None   # box id, grab offset
        self._preview: Optional[tuple[int, float, float]] = None
        self._editor: Optional[QLineEdit] = None
        self._editing_id: Optional[int] = None

    def _boxes(self) -> list[TextBox]:
        return self._store.list_text_boxes_for_sheet(self._dispatcher.sheet_id)

    def _box_rect(self, box: TextBox) -> QRectF:
        height = box.height if box.height else self._dispatcher.box_height
        x, y = box.x, box.y
        if self._preview and self._preview[0] == box.id:
            _, x, y = self._preview
        return QRectF(x, y, box.width, height)

    @property
    def editor(self) -> Optional[QLineEdit]:
        return self._editor

    def box_at(self, pos: QPointF) -> Optional[TextBox]:
        for box in reversed(self._boxes()):
            if self._box_rect(box).contains(pos):
                return box
        return None

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._dispatcher.set_canvas_size(self.width(), self.height())

    # ── Painting ──────────────────────────────

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#fafafa"))
        self._draw_zone_guides(painter)

        font = QFont()
        font.setPointSize(10)
        painter.setFont(font)
        for box in self._boxes():
            r = self._box_rect(box)
            painter.setPen(QPen(QColor("#9e9e9e"), 1))
            painter.setBrush(_FILL.get(box.color, _FILL["white"]))
            painter.drawRoundedRect(r, 4, 4)
            painter.setPen(QColor("#212121"))
            painter.drawText(
                r.adjusted(BOX_PADDING, BOX_PADDING, -BOX_PADDING, -BOX_PADDING),
                _BOX_TEXT_FLAGS,
                box.content,
            )
        painter.end()

    def _draw_zone_guides(self, painter: QPainter):
        zones = self._dispatcher.resolver.zones
        if not zones:
            return
        font = QFont()
        font.setPointSize(9)
        font.setBold(True)
        painter.setFont(font)
        for i, zone in enumerate(zones):
            x = BASE_X + (i % 2) * COLUMN_WIDTH
            y = BASE_Y + (i // 2) * ROW_HEIGHT
            guide = QRectF(x - 8, y - 24, COLUMN_WIDTH - 20, ROW_HEIGHT - 8)
            painter.setPen(QPen(QColor("#cfd8dc"), 1, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(guide)
            painter.setPen(QColor("#607d8b"))
            painter.drawText(QPointF(x - 4, y - 10), zone_label(zone))

    # ── Move & edit ───────────────────────────

    def mousePressEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        box = self.box_at(pos)
        if box is not None:
            self._moving = (box.id, pos - QPointF(box.x, box.y))

    def mouseMoveEvent(self, event):
        if self._moving is None:
            return
        box_id, grab = self._moving
        top_left = event.position() - grab
        self._preview = (box_id, top_left.x(), top_left.y())
        self.update()

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton or self._moving is None:
            return
        preview = self._preview
        self._moving = None
        self._preview = None
        if preview is not None:
            box_id, x, y = preview
            x, y = self._dispatcher.clamp(x, y)
            self.update_requested.emit(box_id, {"x": x, "y": y})
        self.update()

    def mouseDoubleClickEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        box = self.box_at(event.position())
        if box is not None:
            self._begin_edit(box)

    def _begin_edit(self, box: TextBox):
        self._finish_edit()
        editor = QLineEdit(self)
        editor.setText(box.content)
        editor.setGeometry(self._box_rect(box).toRect())
        editor.editingFinished.connect(self._finish_edit)
        self._editor, self._editing_id = editor, box.id
        editor.show()
        editor.setFocus()
        editor.selectAll()

    def _finish_edit(self):
        editor, box_id = self._editor, self._editing_id
        if editor is None:
            return
        self._editor = self._editing_id = None
        text = editor.text()
        editor.deleteLater()
        # a blank edit keeps the previous content
        if text.strip():
            self.update_requested.emit(box_id, {"content": text})

    # ── Drag & drop ───────────────────────────

    def dragEnterEvent(self, event):
        if event.mimeData().hasText() and not event.mimeData().hasUrls():
            event.acceptProposedAction()
            return
        event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasText():
            event.acceptProposedAction()

    def dropEvent(self, event):
        text = event.mimeData().text()
        pos = event.position()
        event.acceptProposedAction()
        logger.debug("Text dropped at (%.0f, %.0f)", pos.x(), pos.y())
        self.placement_requested.emit(text, ExplicitTarget(pos.x(), pos.y()))

    # ── Context menu ──────────────────────────

    def contextMenuEvent(self, event):
        box = self.box_at(QPointF(event.pos()))
        if box is None:
            return
        menu = QMenu(self)
        menu.addAction("Edit").triggered.connect(lambda: self._begin_edit(box))
        colors = menu.addMenu("Color")
        for name in _FILL:
            act = colors.addAction(name.capitalize())
            act.setCheckable(True)
            act.setChecked(name == box.color)
            act.triggered.connect(lambda _=False, c=name: self.update_requested.emit(box.id, {"color": c}))
        menu.addSeparator()
        menu.addAction("Delete").triggered.connect(lambda: self.delete_requested.emit(box.id))
        menu.exec(event.globalPos())


class CanvasPanel(QWidget):
    """Header (template, sheet) + CanvasView."""

    template_changed = pyqtSignal(object)   # template id or None
    sheet_changed = pyqtSignal(int)
    placement_requested = pyqtSignal(str, object)

    def __init__(self, store: TextBoxStore, dispatcher: PlacementDispatcher, parent=None):
        super().__init__(parent)
        self._store = store
        self._dispatcher = dispatcher
        self._build_ui()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # Header
        header = QWidget()
        header.setStyleSheet("background: #f5f5f5; border-bottom: 1px solid #e0e0e0;")
        hl = QHBoxLayout(header)
        hl.setContentsMargins(12, 8, 8, 8)
        title = QLabel("Analysis Canvas")
        title.setStyleSheet("font-weight: bold; font-size: 13px;")
        hl.addWidget(title)
        hl.addStretch()

        hl.addWidget(QLabel("Template:"))
        self._template_combo = QComboBox()
        self._template_combo.addItem("Freeform", None)
        for tid in template_ids():
            self._template_combo.addItem(template_label(tid), tid)
        self._template_combo.currentIndexChanged.connect(self._on_template_index)
        hl.addWidget(self._template_combo)

        hl.addWidget(QLabel("Sheet:"))
        self._sheet_spin = QSpinBox()
        self._sheet_spin.setRange(1, 99)
        self._sheet_spin.setValue(self._dispatcher.sheet_id)
        self._sheet_spin.valueChanged.connect(self._on_sheet_value)
        hl.addWidget(self._sheet_spin)

        clear_btn = QPushButton("Clear")
        clear_btn.setToolTip("Remove every box on this sheet")
        clear_btn.clicked.connect(lambda: self._store.clear_sheet(self._dispatcher.sheet_id))
        hl.addWidget(clear_btn)
        layout.addWidget(header)

        self._view = CanvasView(self._store, self._dispatcher)
        self._view.placement_requested.connect(self.placement_requested)
        self._view.delete_requested.connect(self._store.delete_text_box)
        self._view.update_requested.connect(
            lambda box_id, fields: self._store.update_text_box(box_id, **fields))
        layout.addWidget(self._view, 1)

    @property
    def view(self) -> CanvasView:
        return self._view

    def _on_template_index(self, index: int):
        template_id = self._template_combo.itemData(index)
        self.template_changed.emit(template_id)
        self._view.update()

    def _on_sheet_value(self, value: int):
        self.sheet_changed.emit(value)
        self._view.update()

    def set_template(self, template_id: Optional[str]):
        idx = self._template_combo.findData(template_id)
        if idx >= 0:
            self._template_combo.setCurrentIndex(idx)
