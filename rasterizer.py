"""
rasterizer.py — Page rasterization (sync) and the background render worker

The worker opens its own document instance from bytes (fitz documents are
not shared across threads) and produces the raster and the text runs of the
same page in one pass, so both always describe the same (page, scale).
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import fitz  # PyMuPDF
from PyQt6.QtCore import QObject, QRunnable, pyqtSignal
from PyQt6.QtGui import QImage

from errors import RenderError, RenderErrorKind
from models import PageGeometry, RasterSurface, Viewport
from pdf_source import extract_page_geometry, render_to_image

logger = logging.getLogger(__name__)


def _classify(exc: Exception) -> RenderErrorKind:
    # FileDataError is a RuntimeError subclass; MuPDF reports broken content streams as RuntimeError
    if isinstance(exc, RuntimeError):
        return RenderErrorKind.CORRUPT
    return RenderErrorKind.UNKNOWN


# ─────────────────────────────────────────────
# Synchronous rasterizer
# ─────────────────────────────────────────────

class PageRasterizer:
    """Renders one page of the loaded document to a RasterSurface."""

    def __init__(self, document: fitz.Document, timeout_s: float = 10.0):
        self._doc = document
        self.timeout_s = timeout_s

    def _check_page(self, page_index: int):
        if not 0 <= page_index < self._doc.page_count:
            raise ValueError(f"page {page_index} out of range (0..{self._doc.page_count - 1})")

    def viewport(self, page_index: int, scale: float, request_id: int = 0) -> Viewport:
        self._check_page(page_index)
        rect = self._doc[page_index].rect
        return Viewport.for_page(page_index, rect.width, rect.height, scale, request_id)

    def render(self, page_index: int, scale: float, request_id: int = 0) -> RasterSurface:
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self._check_page(page_index)

        started = time.monotonic()
        try:
            page = self._doc[page_index]
            viewport = Viewport.for_page(page_index, page.rect.width, page.rect.height, scale, request_id)
            image = render_to_image(page, scale)
        except Exception as e:
            kind = _classify(e)
            logger.error("Render of page %d failed (%s): %s", page_index, kind, e)
            raise RenderError(kind, str(e), page_index) from e

        elapsed = time.monotonic() - started
        if elapsed > self.timeout_s:
            logger.error("Render of page %d took %.1fs (budget %.1fs)", page_index, elapsed, self.timeout_s)
            raise RenderError(RenderErrorKind.TIMEOUT, f"render exceeded {self.timeout_s:.0f}s", page_index)
        if image.isNull():
            raise RenderError(RenderErrorKind.UNKNOWN, "empty raster", page_index)
        return RasterSurface(image, viewport)

    def page_geometry(self, page_index: int) -> PageGeometry:
        self._check_page(page_index)
        try:
            return extract_page_geometry(self._doc[page_index], page_index)
        except Exception as e:
            raise RenderError(_classify(e), str(e), page_index) from e


# ─────────────────────────────────────────────
# Async Rendering Worker
# ─────────────────────────────────────────────

class WorkerSignals(QObject):
    finished = pyqtSignal(int, QImage, object)  # request_id, image, PageGeometry
    failed = pyqtSignal(int, object, str)       # request_id, RenderErrorKind, message


class RenderWorker(QRunnable):
    """Background worker to render a page and extract its text runs."""

    def __init__(self, doc_bytes: bytes, page_index: int, scale: float, request_id: int,
                 is_valid_cb: Optional[Callable[[int], bool]] = None):
        super().__init__()
        self._doc_bytes = doc_bytes
        self.page_index = page_index
        self.scale = scale
        self.request_id = request_id
        self.is_valid_cb = is_valid_cb
        self.signals = WorkerSignals()

    def _still_valid(self) -> bool:
        return self.is_valid_cb is None or self.is_valid_cb(self.request_id)

    def run(self):
        if not self._still_valid():
            return

        doc = None
        try:
            doc = fitz.open(stream=self._doc_bytes, filetype="pdf")
            page = doc[self.page_index]
            image = render_to_image(page, self.scale)
            geometry = extract_page_geometry(page, self.page_index)
        except Exception as e:
            if self._still_valid():
                self.signals.failed.emit(self.request_id, _classify(e), str(e))
            return
        finally:
            if doc:
                doc.close()

        if self._still_valid():
            self.signals.finished.emit(self.request_id, image, geometry)
