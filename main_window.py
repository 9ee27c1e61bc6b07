"""
main_window.py — Main application window
Page view on the left, analysis canvas on the right.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QKeySequence, QShortcut
from PyQt6.QtWidgets import (
    QFileDialog, QFrame, QHBoxLayout, QLabel, QLineEdit, QMainWindow, QMessageBox,
    QSplitter, QStatusBar, QToolButton, QVBoxLayout, QWidget,
)

from canvas_panel import CanvasPanel
from config import EngineConfig, config_dir, load_config
from errors import (
    CanvasToolError, DocumentLoadError, EmptySelection, InvalidZone, LoadErrorKind,
    PlacementFailed, RenderError, UnsupportedFileType,
)
from models import DocumentTab, PlacementTarget, TextBox
from pdf_source import IMAGE_EXTS
from pdf_viewer import PDFScrollView
from session import ViewerSession
from store import TextBoxStore
from zones import template_label

logger = logging.getLogger(__name__)

_OPEN_FILTER = (
    "Supported files (*.pdf *.png *.jpg *.jpeg *.bmp *.gif *.tiff *.tif *.webp);;"
    "PDF Files (*.pdf);;"
    "Images (*.png *.jpg *.jpeg *.bmp *.gif *.tiff *.tif *.webp)"
)


# ─────────────────────────────────────────────
# Tool button helper
# ─────────────────────────────────────────────

def make_tool_button(text: str, tooltip: str) -> QToolButton:
    btn = QToolButton()
    btn.setText(text)
    btn.setToolTip(tooltip)
    btn.setFixedSize(36, 32)
    btn.setStyleSheet(
        "QToolButton { border: none; border-radius: 4px; font-size: 16px; }"
        "QToolButton:hover { background: rgba(0,0,0,0.08); }"
        "QToolButton:pressed { background: rgba(0,0,0,0.15); }"
    )
    return btn


DIVIDER_STYLE = "background: #d0d0d0; min-width: 1px; max-width: 1px; margin: 3px 4px;"


def make_divider() -> QFrame:
    d = QFrame()
    d.setFrameShape(QFrame.Shape.VLine)
    d.setStyleSheet(DIVIDER_STYLE)
    return d


def describe_load_error(err: CanvasToolError) -> str:
    if isinstance(err, UnsupportedFileType):
        return "This file type is not supported.\nPlease choose a PDF or an image."
    if isinstance(err, DocumentLoadError):
        if err.kind is LoadErrorKind.PASSWORD_PROTECTED:
            return "This PDF is password protected.\nPlease upload an unprotected copy."
        if err.kind is LoadErrorKind.CORRUPT:
            return "The file appears to be damaged and could not be opened."
    return f"The file could not be opened:\n{err}"


# ─────────────────────────────────────────────
# Main Window
# ─────────────────────────────────────────────

class MainWindow(QMainWindow):

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__()
        self.setWindowTitle("PDF Analysis Canvas")
        self.setMinimumSize(1100, 750)
        self.resize(1280, 860)

        self._config = config or load_config()
        store_path = self._config.store_path or str(config_dir() / "textboxes.json")
        self._store = TextBoxStore(store_path, parent=self)
        self._session = ViewerSession(self._config, self._store, use_worker=True, parent=self)

        self._build_ui()
        self._connect_signals()
        self._update_toolbar_state()
        self.setAcceptDrops(True)

    @property
    def session(self) -> ViewerSession:
        return self._session

    # ── UI Build ──────────────────────────────

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        main_vl = QVBoxLayout(central)
        main_vl.setContentsMargins(0, 0, 0, 0)
        main_vl.setSpacing(0)

        # ── Toolbar ──
        self._toolbar = QWidget()
        self._toolbar.setFixedHeight(38)
        self._toolbar.setStyleSheet("background: #fafafa;")
        tb_layout = QHBoxLayout(self._toolbar)
        tb_layout.setContentsMargins(6, 3, 6, 3)
        tb_layout.setSpacing(0)

        open_btn = make_tool_button("📂", "Open (Ctrl+O)")
        open_btn.clicked.connect(self._open_file)
        tb_layout.addWidget(open_btn)
        tb_layout.addWidget(make_divider())

        # Zoom: typed percentage or −/+
        self._zoom_input = QLineEdit("100%")
        self._zoom_input.setFixedWidth(52)
        self._zoom_input.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._zoom_input.setStyleSheet(
            "QLineEdit { font-size: 11px; font-weight: 500; border: 1px solid transparent; "
            "border-radius: 3px; background: transparent; }"
            "QLineEdit:focus { border: 1px solid #aaa; background: white; }"
        )
        self._zoom_input.editingFinished.connect(self._apply_zoom_input)
        tb_layout.addWidget(self._zoom_input)
        zoom_out_btn = make_tool_button("−", "Zoom out")
        zoom_out_btn.clicked.connect(self._session.zoom_out)
        tb_layout.addWidget(zoom_out_btn)
        zoom_in_btn = make_tool_button("+", "Zoom in")
        zoom_in_btn.clicked.connect(self._session.zoom_in)
        tb_layout.addWidget(zoom_in_btn)
        tb_layout.addWidget(make_divider())

        # Page navigation
        self._prev_pg_btn = make_tool_button("<", "Previous page")
        self._prev_pg_btn.clicked.connect(self._session.prev_page)
        tb_layout.addWidget(self._prev_pg_btn)
        self._page_label = QLabel("—")
        self._page_label.setFixedWidth(60)
        self._page_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._page_label.setStyleSheet("font-size: 11px; color: #888;")
        tb_layout.addWidget(self._page_label)
        self._next_pg_btn = make_tool_button(">", "Next page")
        self._next_pg_btn.clicked.connect(self._session.next_page)
        tb_layout.addWidget(self._next_pg_btn)
        tb_layout.addWidget(make_divider())

        self._selection_label = QLabel("")
        self._selection_label.setStyleSheet("font-size: 11px; color: #555; padding-left: 8px;")
        tb_layout.addWidget(self._selection_label, 1)

        main_vl.addWidget(self._toolbar)

        sep = QFrame()
        sep.setFrameShape(QFrame.Shape.HLine)
        sep.setStyleSheet("color: #d0d0d0;")
        main_vl.addWidget(sep)

        # ── Content ──
        self._splitter = QSplitter(Qt.Orientation.Horizontal)
        self._pdf_scroll = PDFScrollView(self._session)
        self._splitter.addWidget(self._pdf_scroll)
        self._canvas_panel = CanvasPanel(self._store, self._session.dispatcher)
        self._splitter.addWidget(self._canvas_panel)
        self._splitter.setSizes([640, 640])
        main_vl.addWidget(self._splitter, 1)

        # ── Status Bar ──
        self._status_label = QLabel("PDF Analysis Canvas")
        self._status_label.setStyleSheet("font-size: 11px; color: #888; padding: 2px 10px;")
        statusbar = QStatusBar()
        statusbar.addWidget(self._status_label)
        statusbar.setFixedHeight(24)
        self.setStatusBar(statusbar)

    def _connect_signals(self):
        s = self._session
        s.document_loaded.connect(self._on_document_loaded)
        s.page_changed.connect(lambda _p: self._update_toolbar_state())
        s.zoom_changed.connect(self._on_zoom_changed)
        s.page_ready.connect(lambda surface, layer: self._set_status(
            f"{s.tab.display_name} — page {surface.viewport.page_index + 1}/{s.page_count}"
            f" — {len(layer)} text fragments"))
        s.render_failed.connect(self._on_render_failed)
        s.selection_ready.connect(self._on_selection_ready)
        s.text_box_created.connect(self._on_text_box_created)
        s.placement_rejected.connect(lambda reason: self._set_status(f"Placement rejected: {reason}"))

        self._pdf_scroll.placement_requested.connect(self._request_placement)
        self._canvas_panel.placement_requested.connect(self._request_placement)
        self._canvas_panel.template_changed.connect(self._on_template_changed)
        self._canvas_panel.sheet_changed.connect(s.set_sheet)

        QShortcut(QKeySequence("Ctrl+O"), self).activated.connect(self._open_file)
        QShortcut(QKeySequence("Ctrl+="), self).activated.connect(s.zoom_in)
        QShortcut(QKeySequence("Ctrl+-"), self).activated.connect(s.zoom_out)
        QShortcut(QKeySequence("PgDown"), self).activated.connect(s.next_page)
        QShortcut(QKeySequence("PgUp"), self).activated.connect(s.prev_page)
        QShortcut(QKeySequence("Escape"), self).activated.connect(s.tracker.cancel)

    # ── File Operations ───────────────────────

    def _open_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open file", "", _OPEN_FILTER)
        if path:
            self.load_file(path)

    def load_file(self, path: str):
        try:
            self._session.open_file(path)
        except CanvasToolError as e:
            logger.warning("Could not open %s: %s", path, e)
            QMessageBox.critical(self, "Error", describe_load_error(e))
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            QMessageBox.critical(self, "Error", f"The file could not be read:\n{e}")

    def _on_document_loaded(self, tab: DocumentTab):
        self.setWindowTitle(f"{tab.display_name} — PDF Analysis Canvas")
        self._selection_label.setText("")
        self._update_toolbar_state()
        self._set_status(f"{tab.display_name} — {tab.page_count}p")

    def _on_render_failed(self, err: RenderError):
        self._set_status(f"Render failed ({err.kind}): {err}")

    # ── Zoom / pages ──────────────────────────

    def _on_zoom_changed(self, z: float):
        if not self._zoom_input.hasFocus():
            self._zoom_input.setText(f"{int(round(z * 100))}%")

    def _apply_zoom_input(self):
        text = self._zoom_input.text().strip().rstrip("%").strip()
        try:
            percent = float(text)
        except ValueError:
            percent = self._session.scale * 100
        self._session.on_zoom_change(percent / 100.0)
        self._zoom_input.setText(f"{int(round(self._session.scale * 100))}%")

    def _update_toolbar_state(self):
        s = self._session
        if not s.has_document:
            self._page_label.setText("—")
            self._prev_pg_btn.setEnabled(False)
            self._next_pg_btn.setEnabled(False)
            return
        self._page_label.setText(f"{s.page_index + 1} / {s.page_count}")
        self._prev_pg_btn.setEnabled(s.page_index > 0)
        self._next_pg_btn.setEnabled(s.page_index + 1 < s.page_count)

    # ── Selection / placement ─────────────────

    def _on_selection_ready(self, text: str, _rect):
        preview = text if len(text) <= 60 else text[:57] + "…"
        self._selection_label.setText(f"Selected: “{preview}” — drag it onto the canvas or right-click")

    def _on_template_changed(self, template_id: Optional[str]):
        self._session.set_template(template_id)
        self._set_status(f"Template: {template_label(template_id)}")

    def _request_placement(self, text: str, target: PlacementTarget):
        try:
            box = self._session.on_request_placement(text, target)
        except EmptySelection:
            self._set_status("Nothing selected")
        except InvalidZone as e:
            QMessageBox.warning(self, "Placement", str(e))
        except PlacementFailed as e:
            QMessageBox.critical(self, "Placement failed",
                                 f"The text box could not be saved:\n{e}\n\nYour selection is kept; try again.")
        else:
            logger.debug("Placed box %d at (%s, %s)", box.id, box.x, box.y)

    def _on_text_box_created(self, box: TextBox):
        where = f"zone {box.zone}" if box.zone else f"({int(box.x)}, {int(box.y)})"
        self._set_status(f"Text box added at {where}")

    # ── Status ────────────────────────────────

    def _set_status(self, msg: str, timeout_ms: int = 0):
        self._status_label.setText(msg)
        if timeout_ms:
            QTimer.singleShot(timeout_ms, lambda: self._status_label.setText(""))

    # ── Drag & drop (files) ───────────────────

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                path = url.toLocalFile().lower()
                if path.endswith('.pdf') or path.endswith(IMAGE_EXTS):
                    event.acceptProposedAction()
                    return
        event.ignore()

    def dropEvent(self, event):
        for url in event.mimeData().urls():
            path = url.toLocalFile()
            if path:
                self.load_file(path)
                return

    def closeEvent(self, event):
        self._session.close()
        super().closeEvent(event)
