"""
session.py — ViewerSession: the open document, current page/scale and the
engine components wired together.

Every render carries a monotonic request id. Only the result of the latest
request is committed; raster and text layer are committed together and the
selection tracker gets the new layer in the same step.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from PyQt6.QtCore import QObject, QThreadPool, QTimer, pyqtSignal
from PyQt6.QtGui import QImage

from config import EngineConfig
from errors import RenderError, RenderErrorKind
from models import (
    DocumentTab, PageGeometry, PlacementTarget, RasterSurface, SelectionResult,
    TextBox, TextLayer, Viewport,
)
from pdf_source import classify_file, load_document, load_file
from placement import PlacementDispatcher
from rasterizer import PageRasterizer, RenderWorker
from selection import SelectionTracker
from store import TextBoxStore
from text_layer import TextLayerBuilder

logger = logging.getLogger(__name__)


class ViewerSession(QObject):
    """Owns document, page, scale and the current text layer."""

    document_loaded = pyqtSignal(object)        # DocumentTab
    page_ready = pyqtSignal(object, object)     # RasterSurface, TextLayer
    render_failed = pyqtSignal(object)          # RenderError
    page_changed = pyqtSignal(int)
    zoom_changed = pyqtSignal(float)
    selection_ready = pyqtSignal(str, object)   # text, bounding fitz.Rect
    text_box_created = pyqtSignal(object)       # TextBox
    placement_rejected = pyqtSignal(str)

    def __init__(self, config: Optional[EngineConfig] = None, store: Optional[TextBoxStore] = None,
                 use_worker: bool = True, parent=None):
        super().__init__(parent)
        self.config = config or EngineConfig()
        self.use_worker = use_worker

        self.tab: Optional[DocumentTab] = None
        self._rasterizer: Optional[PageRasterizer] = None
        self.page_index: int = 0
        self.scale: float = self.config.clamp_scale(self.config.default_scale)

        self.surface: Optional[RasterSurface] = None
        self.layer: Optional[TextLayer] = None

        self.builder = TextLayerBuilder(self.config.granularity)
        self.tracker = SelectionTracker(
            self.config.overlap_threshold, self.config.repeat_collapse_min, parent=self,
        )
        self.store = store or TextBoxStore(self.config.store_path or None, parent=self)
        self.dispatcher = PlacementDispatcher(
            self.store,
            box_width=self.config.box_width,
            box_height=self.config.box_height,
            margin=self.config.drop_margin,
            parent=self,
        )

        self.tracker.selection_ready.connect(self.selection_ready)
        self.dispatcher.text_box_created.connect(self.text_box_created)
        self.dispatcher.placement_rejected.connect(self.placement_rejected)

        # Render bookkeeping
        self._last_id = 0
        self._pending_id: Optional[int] = None
        self._pending_viewport: Optional[tuple[int, float]] = None
        self._thread_pool = QThreadPool.globalInstance()
        self._timeout_timer = QTimer(self)
        self._timeout_timer.setSingleShot(True)
        self._timeout_timer.timeout.connect(self._on_render_timeout)

    # ── Document ──────────────────────────────

    @property
    def page_count(self) -> int:
        return self.tab.page_count if self.tab else 0

    @property
    def has_document(self) -> bool:
        return self.tab is not None and self.tab.document is not None

    def open_file(self, source: Union[str, Path, bytes], name: str = "") -> DocumentTab:
        """Open a path or raw bytes. Load errors propagate; the old document stays open."""
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            tab = load_document(data, classify_file(name or "upload", data), name)
        else:
            tab = load_file(str(source))
        self._set_tab(tab)
        return tab

    def open_bytes(self, data: bytes, name: str = "") -> DocumentTab:
        return self.open_file(data, name)

    def _set_tab(self, tab: DocumentTab):
        self._invalidate()
        if self.tab:
            self.tab.close()
        self.tab = tab
        self._rasterizer = PageRasterizer(tab.document, self.config.render_timeout_s)
        self.page_index = 0
        self.document_loaded.emit(tab)
        self.page_changed.emit(0)
        self._request_render()

    def close(self):
        self._invalidate()
        if self.tab:
            self.tab.close()
        self.tab = None
        self._rasterizer = None

    # ── Navigation ────────────────────────────

    def on_page_change(self, page_index: int):
        if not self.has_document:
            return
        if not 0 <= page_index < self.page_count:
            raise ValueError(f"page {page_index} out of range (0..{self.page_count - 1})")
        if page_index == self.page_index and self.layer is not None:
            return
        self.page_index = page_index
        if self.tab:
            self.tab.current_page = page_index
        self.page_changed.emit(page_index)
        self._request_render()

    def next_page(self):
        if self.has_document and self.page_index + 1 < self.page_count:
            self.on_page_change(self.page_index + 1)

    def prev_page(self):
        if self.has_document and self.page_index > 0:
            self.on_page_change(self.page_index - 1)

    def on_zoom_change(self, scale: float):
        scale = round(self.config.clamp_scale(scale), 3)
        if abs(scale - self.scale) < 0.001:
            return
        self.scale = scale
        self.zoom_changed.emit(scale)
        if self.has_document:
            self._request_render()

    def zoom_in(self):
        self.on_zoom_change(self.scale + self.config.zoom_step)

    def zoom_out(self):
        self.on_zoom_change(self.scale - self.config.zoom_step)

    # ── Rendering ─────────────────────────────

    def _invalidate(self):
        """Drop the current layer and any in-flight render."""
        self._pending_id = None
        self._pending_viewport = None
        self._timeout_timer.stop()
        self.layer = None
        self.surface = None
        self.tracker.set_layer(None)

    def _is_request_valid(self, request_id: int) -> bool:
        return request_id == self._pending_id

    def _request_render(self):
        if not self.has_document or self._rasterizer is None:
            return
        self._invalidate()
        self._last_id += 1
        rid = self._last_id
        self._pending_id = rid
        self._pending_viewport = (self.page_index, self.scale)

        if not self.use_worker:
            self._render_sync(rid)
            return

        worker = RenderWorker(self.tab.data, self.page_index, self.scale, rid,
                              is_valid_cb=self._is_request_valid)
        worker.signals.finished.connect(self._on_worker_finished)
        worker.signals.failed.connect(self._on_worker_failed)
        self._timeout_timer.start(int(self.config.render_timeout_s * 1000))
        self._thread_pool.start(worker)

    def _render_sync(self, rid: int):
        try:
            surface = self._rasterizer.render(self.page_index, self.scale, rid)
            geometry = self._rasterizer.page_geometry(self.page_index)
        except RenderError as e:
            self._fail(rid, e)
            return
        self._commit(rid, surface, geometry)

    def _on_worker_finished(self, rid: int, image: QImage, geometry: PageGeometry):
        if not self._is_request_valid(rid):
            logger.debug("Dropping stale render %d (current %s)", rid, self._pending_id)
            return
        page_index, scale = self._pending_viewport
        viewport = Viewport.for_page(page_index, geometry.width, geometry.height, scale, rid)
        self._commit(rid, RasterSurface(image, viewport), geometry)

    def _on_worker_failed(self, rid: int, kind: RenderErrorKind, message: str):
        if not self._is_request_valid(rid):
            logger.debug("Dropping stale render failure %d", rid)
            return
        page_index = self._pending_viewport[0] if self._pending_viewport else -1
        self._fail(rid, RenderError(kind, message, page_index))

    def _on_render_timeout(self):
        if self._pending_id is None:
            return
        page_index = self._pending_viewport[0] if self._pending_viewport else -1
        err = RenderError(RenderErrorKind.TIMEOUT,
                          f"render exceeded {self.config.render_timeout_s:.0f}s", page_index)
        logger.error("Render %d of page %d timed out", self._pending_id, page_index)
        self._fail(self._pending_id, err)

    def _commit(self, rid: int, surface: RasterSurface, geometry: PageGeometry):
        self._timeout_timer.stop()
        self._pending_id = None
        layer = self.builder.build(geometry.runs, surface.viewport)
        self.surface = surface
        self.layer = layer
        self.tracker.set_layer(layer)
        logger.debug("Committed render %d: page %d @%.2f, %d fragments",
                     rid, surface.viewport.page_index, surface.viewport.scale, len(layer))
        self.page_ready.emit(surface, layer)

    def _fail(self, rid: int, err: RenderError):
        self._timeout_timer.stop()
        self._pending_id = None
        self._pending_viewport = None
        logger.error("Render %d failed: %s (%s)", rid, err, err.kind)
        self.render_failed.emit(err)

    # ── Placement ─────────────────────────────

    def set_template(self, template_id: Optional[str]):
        self.dispatcher.set_template(template_id)

    def set_sheet(self, sheet_id: int):
        self.dispatcher.sheet_id = sheet_id

    @property
    def last_selection(self) -> Optional[SelectionResult]:
        return self.tracker.last_selection

    def on_request_placement(self, text: str, target: PlacementTarget) -> TextBox:
        return self.dispatcher.place(text, target)
