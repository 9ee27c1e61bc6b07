"""
pdf_viewer.py — Page view widget: raster, selection highlight, text drag

Paints the committed raster of the session and projects the tracker's state
(highlighted fragments, rubber band, last selection) on top of it. Pointer
events are forwarded to the SelectionTracker in device coordinates.

Drag on empty space → rectangle selection.
Double-click → select one fragment; Shift+click → extend (native mode).
Press inside the last selection and move → drag the text out (text/plain).
"""

from __future__ import annotations

import logging
from typing import Optional

import fitz  # PyMuPDF
from PyQt6.QtCore import QMimeData, QPoint, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import (
    QColor, QDrag, QFont, QGuiApplication, QMouseEvent, QPainter, QPen, QPixmap,
)
from PyQt6.QtWidgets import QApplication, QMenu, QScrollArea, QSizePolicy, QWidget

from models import ExplicitTarget, RasterSurface, TextLayer, ZoneTarget
from session import ViewerSession
from selection import STATE_SELECTING
from zones import template_label, zone_label

logger = logging.getLogger(__name__)

PAGE_MARGIN = 16  # pixels around the page

HIGHLIGHT_COLOR = QColor(41, 121, 255, 70)
SELECTION_COLOR = QColor(255, 200, 0, 70)
RUBBER_BAND_COLOR = QColor(0, 122, 255)

# Where "Add to canvas" puts a box when no drop point is given
DEFAULT_DROP_POINT = (100, 100)


def fitz_rect_to_qrectf(r: fitz.Rect, offset_x: float, offset_y: float) -> QRectF:
    """Device-space fitz.Rect → widget QRectF."""
    return QRectF(r.x0 + offset_x, r.y0 + offset_y, r.width, r.height)


class PDFPageView(QWidget):
    """Single-page view bound to a ViewerSession."""

    placement_requested = pyqtSignal(str, object)   # text, PlacementTarget

    def __init__(self, session: ViewerSession, parent=None):
        super().__init__(parent)
        self.setMouseTracking(False)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._session = session
        self._pixmap: Optional[QPixmap] = None
        self._error: Optional[str] = None

        # Text drag-out
        self._drag_press_pos: Optional[QPoint] = None
        # Native range anchor (source-order index)
        self._anchor_index: int = -1

        session.page_ready.connect(self._on_page_ready)
        session.render_failed.connect(self._on_render_failed)
        session.document_loaded.connect(lambda _tab: self._reset())
        session.tracker.highlight_changed.connect(lambda _frags: self.update())
        session.selection_ready.connect(lambda _text, _rect: self.update())

    @property
    def session(self) -> ViewerSession:
        return self._session

    def _reset(self):
        self._pixmap = None
        self._error = None
        self._anchor_index = -1
        self._drag_press_pos = None
        self.update()

    # ── Session callbacks ─────────────────────

    def _on_page_ready(self, surface: RasterSurface, layer: TextLayer):
        self._error = None
        self._pixmap = QPixmap.fromImage(surface.image)
        self._anchor_index = -1
        self.setMinimumSize(surface.width + 2 * PAGE_MARGIN, surface.height + 2 * PAGE_MARGIN)
        self.update()

    def _on_render_failed(self, err):
        self._pixmap = None
        self._error = f"Could not render this page ({err.kind}).\nTry another file."
        self.update()

    # ── Coordinates ───────────────────────────

    def _page_origin(self) -> QPointF:
        if not self._pixmap:
            return QPointF(PAGE_MARGIN, PAGE_MARGIN)
        x = max(PAGE_MARGIN, (self.width() - self._pixmap.width()) / 2.0)
        return QPointF(x, PAGE_MARGIN)

    def _to_device(self, pos: QPointF) -> tuple[float, float]:
        o = self._page_origin()
        return pos.x() - o.x(), pos.y() - o.y()

    def _in_last_selection(self, x: float, y: float) -> bool:
        sel = self._session.last_selection
        if sel is None:
            return False
        return any(f.left <= x <= f.right and f.top <= y <= f.bottom for f in sel.fragments)

    # ── Painting ──────────────────────────────

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#444444"))

        if self._error:
            self._draw_message(painter, self._error, QColor("#ffb3b3"))
            painter.end()
            return
        if not self._pixmap:
            text = ("Drop a PDF or image here\nor press Open"
                    if not self._session.has_document else "Rendering…")
            self._draw_message(painter, text, QColor("#dddddd"))
            painter.end()
            return

        o = self._page_origin()
        painter.drawPixmap(o.toPoint(), self._pixmap)
        painter.setPen(QPen(QColor(0, 0, 0, 60), 1))
        painter.drawRect(QRectF(o.x() - 1, o.y() - 1, self._pixmap.width() + 2, self._pixmap.height() + 2))

        tracker = self._session.tracker
        painter.setPen(Qt.PenStyle.NoPen)

        # Last committed selection
        sel = self._session.last_selection
        if sel and tracker.state != STATE_SELECTING:
            for frag in sel.fragments:
                painter.fillRect(fitz_rect_to_qrectf(frag.rect, o.x(), o.y()), SELECTION_COLOR)

        # Live highlight (projection of the in-flight region)
        for frag in tracker.highlighted:
            painter.fillRect(fitz_rect_to_qrectf(frag.rect, o.x(), o.y()), HIGHLIGHT_COLOR)

        region = tracker.region
        if region is not None:
            painter.setPen(QPen(RUBBER_BAND_COLOR, 1, Qt.PenStyle.DashLine))
            painter.setBrush(QColor(0, 122, 255, 30))
            painter.drawRect(fitz_rect_to_qrectf(region.rect, o.x(), o.y()))

        painter.end()

    def _draw_message(self, painter: QPainter, text: str, color: QColor):
        painter.setPen(QPen(QColor("#999999"), 2, Qt.PenStyle.DashLine))
        painter.drawRect(self.rect().adjusted(40, 40, -40, -40))
        painter.setPen(color)
        font = QFont()
        font.setPointSize(14)
        painter.setFont(font)
        painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, text)

    # ── Mouse ─────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent):
        if not self._pixmap:
            return
        pos = QPointF(event.position())
        x, y = self._to_device(pos)

        if event.button() == Qt.MouseButton.RightButton:
            self._show_context_menu(event.globalPosition().toPoint())
            return
        if event.button() != Qt.MouseButton.LeftButton:
            return

        tracker = self._session.tracker
        if event.modifiers() & Qt.KeyboardModifier.ShiftModifier and self._anchor_index >= 0:
            idx = tracker.index_at(x, y)
            if idx >= 0:
                tracker.select_range(self._anchor_index, idx)
                return

        if self._in_last_selection(x, y):
            self._drag_press_pos = pos.toPoint()
            return

        self._anchor_index = tracker.index_at(x, y)
        tracker.pointer_down(x, y)
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent):
        pos = QPointF(event.position())
        if self._drag_press_pos is not None:
            if (pos.toPoint() - self._drag_press_pos).manhattanLength() >= QApplication.startDragDistance():
                self._drag_press_pos = None
                self._start_text_drag()
            return

        x, y = self._to_device(pos)
        self._session.tracker.pointer_move(x, y)
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        if self._drag_press_pos is not None:
            # Click inside the selection without dragging: start over
            self._drag_press_pos = None
            x, y = self._to_device(QPointF(event.position()))
            self._anchor_index = self._session.tracker.index_at(x, y)
            self._session.tracker.clear_selection()
            self.update()
            return

        x, y = self._to_device(QPointF(event.position()))
        self._session.tracker.pointer_up(x, y)
        self.update()

    def mouseDoubleClickEvent(self, event: QMouseEvent):
        if not self._pixmap or event.button() != Qt.MouseButton.LeftButton:
            return
        tracker = self._session.tracker
        tracker.cancel()
        x, y = self._to_device(QPointF(event.position()))
        idx = tracker.index_at(x, y)
        if idx >= 0:
            self._anchor_index = idx
            tracker.select_range(idx, idx)
        self.update()

    def _start_text_drag(self):
        sel = self._session.last_selection
        if sel is None:
            return
        logger.debug("Starting text drag (%d chars)", len(sel.text))
        mime = QMimeData()
        mime.setText(sel.text)
        drag = QDrag(self)
        drag.setMimeData(mime)
        drag.exec(Qt.DropAction.CopyAction)

    # ── Context menu ──────────────────────────

    def _show_context_menu(self, global_pos: QPoint):
        sel = self._session.last_selection
        menu = QMenu(self)

        if sel is None:
            act = menu.addAction("No text selected")
            act.setEnabled(False)
            menu.exec(global_pos)
            return

        menu.addAction("Copy").triggered.connect(
            lambda: QGuiApplication.clipboard().setText(sel.text))
        menu.addAction("Add to canvas").triggered.connect(
            lambda: self.placement_requested.emit(sel.text, ExplicitTarget(*DEFAULT_DROP_POINT)))

        resolver = self._session.dispatcher.resolver
        if resolver.zones:
            sub = menu.addMenu(f"Add to zone ({template_label(resolver.template_id)})")
            for zone in resolver.zones:
                sub.addAction(zone_label(zone)).triggered.connect(
                    lambda _checked=False, z=zone: self.placement_requested.emit(sel.text, ZoneTarget(z)))

        menu.exec(global_pos)


class PDFScrollView(QScrollArea):
    """A QScrollArea wrapping PDFPageView."""

    placement_requested = pyqtSignal(str, object)

    def __init__(self, session: ViewerSession, parent=None):
        super().__init__(parent)
        self.setObjectName("pdfScrollArea")
        self.setWidgetResizable(True)
        self.setAlignment(Qt.AlignmentFlag.AlignHCenter)

        self._page_view = PDFPageView(session)
        self.setWidget(self._page_view)
        self._page_view.placement_requested.connect(self.placement_requested)

    @property
    def page_view(self) -> PDFPageView:
        return self._page_view

    def wheelEvent(self, event):
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            session = self._page_view.session
            if event.angleDelta().y() > 0:
                session.zoom_in()
            else:
                session.zoom_out()
            event.accept()
            return
        super().wheelEvent(event)
