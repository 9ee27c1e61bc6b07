"""
placement.py — PlacementDispatcher: selected text + target → one text box

Builds a CreateTextBoxRequest for an explicit drop point or a template zone
and hands it to the store. Exactly one create call per successful place();
no retries.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from errors import EmptySelection, InvalidZone, PlacementFailed
from models import (
    DEFAULT_BOX_COLOR, CreateTextBoxRequest, ExplicitTarget, PlacementTarget, TextBox,
    ZoneTarget, is_blank,
)
from store import TextBoxStore
from zones import ZoneResolver, zone_color

logger = logging.getLogger(__name__)


class PlacementDispatcher(QObject):
    text_box_created = pyqtSignal(object)   # TextBox
    placement_rejected = pyqtSignal(str)    # reason

    def __init__(self, store: TextBoxStore, box_width: float = 200.0, box_height: float = 100.0,
                 margin: float = 10.0, parent=None):
        super().__init__(parent)
        self.store = store
        self.box_width = box_width
        self.box_height = box_height
        self.margin = margin
        self.sheet_id = 1
        self.canvas_size: Optional[tuple[float, float]] = None
        self._resolver = ZoneResolver(None)

    # ── Context ───────────────────────────────

    @property
    def template_id(self) -> Optional[str]:
        return self._resolver.template_id

    @property
    def resolver(self) -> ZoneResolver:
        return self._resolver

    def set_template(self, template_id: Optional[str]):
        self._resolver = ZoneResolver(template_id)

    def set_canvas_size(self, width: float, height: float):
        self.canvas_size = (width, height)

    # ── Request building ──────────────────────

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        """Keep a drop point inside the canvas, margin included."""
        if self.canvas_size is None:
            return x, y
        w, h = self.canvas_size
        m = self.margin
        x = max(m, min(x, w - self.box_width - m))
        y = max(m, min(y, h - self.box_height - m))
        return x, y

    def build_request(self, text: str, target: PlacementTarget) -> CreateTextBoxRequest:
        if not text or is_blank(text):
            raise EmptySelection("nothing selected")

        if isinstance(target, ExplicitTarget):
            x, y = self.clamp(target.x, target.y)
            return CreateTextBoxRequest(
                content=text, x=x, y=y, sheet_id=self.sheet_id,
                width=self.box_width, color=DEFAULT_BOX_COLOR,
            )

        if isinstance(target, ZoneTarget):
            existing = self.store.list_text_boxes_for_sheet(self.sheet_id)
            x, y = self._resolver.slot_for(target.zone, existing)
            return CreateTextBoxRequest(
                content=text, x=x, y=y, sheet_id=self.sheet_id,
                width=self.box_width, color=zone_color(target.zone), zone=target.zone,
            )

        raise TypeError(f"unsupported placement target: {target!r}")

    # ── Dispatch ──────────────────────────────

    def place(self, text: str, target: PlacementTarget) -> TextBox:
        try:
            request = self.build_request(text, target)
        except InvalidZone as e:
            logger.warning("Placement rejected: %s", e)
            self.placement_rejected.emit(str(e))
            raise

        try:
            box = self.store.create_text_box(request)
        except PlacementFailed:
            raise
        except Exception as e:
            logger.error("Text box creation failed: %s", e)
            raise PlacementFailed(str(e)) from e

        self.text_box_created.emit(box)
        return box
