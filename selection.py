"""
selection.py — SelectionTracker: drag-rectangle and native-range selection

State machine: IDLE → SELECTING (pointer_down) → IDLE (pointer_up / cancel).
Highlighting is a projection of the current region over the fragment set;
the tracker never mutates fragments.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence

import fitz  # PyMuPDF
from PyQt6.QtCore import QObject, pyqtSignal

from config import MIN_REPEAT_COLLAPSE
from models import SelectionRegion, SelectionResult, TextFragment, TextLayer

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_SELECTING = "selecting"


# ─────────────────────────────────────────────
# Geometry / text helpers
# ─────────────────────────────────────────────

def overlap_ratio(frag: TextFragment, rect: fitz.Rect) -> float:
    """Intersection area as a fraction of the fragment's own area."""
    if frag.area <= 0:
        return 0.0
    ix = min(frag.right, rect.x1) - max(frag.left, rect.x0)
    iy = min(frag.bottom, rect.y1) - max(frag.top, rect.y0)
    if ix <= 0 or iy <= 0:
        return 0.0
    return (ix * iy) / frag.area


def _on_line(frag: TextFragment, top: float, bottom: float) -> bool:
    """frag shares at least half of the shorter height with the band top..bottom."""
    overlap = min(bottom, frag.bottom) - max(top, frag.top)
    return overlap > 0 and overlap >= 0.5 * min(bottom - top, frag.height)


def reading_order(fragments: Iterable[TextFragment]) -> list[TextFragment]:
    """Top-to-bottom by line, then left-to-right, then source order.

    Fragments whose boxes overlap vertically form one line, so words of
    different font sizes on a shared baseline stay in horizontal order.
    """
    lines: list[list] = []   # [top, bottom, members]
    for f in sorted(fragments, key=lambda f: (f.top, f.left, f.source_run_index, f.offset_in_run)):
        if lines and _on_line(f, lines[-1][0], lines[-1][1]):
            line = lines[-1]
            line[0] = min(line[0], f.top)
            line[1] = max(line[1], f.bottom)
            line[2].append(f)
        else:
            lines.append([f.top, f.bottom, [f]])

    ordered: list[TextFragment] = []
    for _top, _bottom, members in lines:
        ordered.extend(sorted(members, key=lambda f: (f.left, f.source_run_index, f.offset_in_run)))
    return ordered


def join_fragments(fragments: Sequence[TextFragment]) -> str:
    """Concatenate fragments with single-space separators.

    Contiguous glyphs of the same run are joined directly; whitespace
    fragments only ever contribute one separator.
    """
    parts: list[str] = []
    prev: Optional[TextFragment] = None
    pending_space = False
    for frag in fragments:
        if frag.is_whitespace:
            pending_space = prev is not None
            continue
        if prev is not None:
            contiguous = (
                frag.source_run_index == prev.source_run_index
                and frag.offset_in_run == prev.offset_in_run + len(prev.text)
            )
            if pending_space or not contiguous:
                parts.append(" ")
        parts.append(frag.text)
        prev = frag
        pending_space = False
    return "".join(parts)


def collapse_repeats(text: str, min_run: int = 3) -> str:
    """Collapse any character repeated min_run+ times down to two copies."""
    if min_run < MIN_REPEAT_COLLAPSE:
        return text
    pattern = re.compile(r"(.)\1{%d,}" % (min_run - 1), re.DOTALL)
    return pattern.sub(r"\1\1", text)


def bounding_rect(fragments: Iterable[TextFragment]) -> fitz.Rect:
    r = fitz.Rect()
    first = True
    for f in fragments:
        if first:
            r = f.rect
            first = False
        else:
            r = r | f.rect
    return r


# ─────────────────────────────────────────────
# Tracker
# ─────────────────────────────────────────────

class SelectionTracker(QObject):
    """Interprets pointer gestures / native ranges against one text layer."""

    selection_ready = pyqtSignal(str, object)   # text, bounding fitz.Rect
    highlight_changed = pyqtSignal(object)      # tuple[TextFragment, ...]

    def __init__(self, overlap_threshold: float = 0.35, repeat_collapse_min: int = 3, parent=None):
        super().__init__(parent)
        self.overlap_threshold = overlap_threshold
        self.repeat_collapse_min = repeat_collapse_min
        self._layer: Optional[TextLayer] = None
        self._state: str = STATE_IDLE
        self._region: Optional[SelectionRegion] = None
        self._highlighted: tuple[TextFragment, ...] = ()
        self.last_selection: Optional[SelectionResult] = None

    # ── State ─────────────────────────────────

    @property
    def state(self) -> str:
        return self._state

    @property
    def region(self) -> Optional[SelectionRegion]:
        return self._region

    @property
    def highlighted(self) -> tuple[TextFragment, ...]:
        return self._highlighted

    @property
    def fragments(self) -> tuple[TextFragment, ...]:
        return self._layer.fragments if self._layer else ()

    @property
    def layer(self) -> Optional[TextLayer]:
        return self._layer

    def set_layer(self, layer: Optional[TextLayer]):
        """Replace the fragment set wholesale. Cancels any in-flight gesture."""
        self.clear_selection()
        self._layer = layer

    def clear_selection(self):
        """Drop the gesture and the last result; the layer stays."""
        self.cancel()
        self.last_selection = None

    def cancel(self):
        was_active = self._state == STATE_SELECTING or bool(self._highlighted)
        self._state = STATE_IDLE
        self._region = None
        if was_active:
            self._set_highlight(())

    def _set_highlight(self, frags: tuple[TextFragment, ...]):
        if frags != self._highlighted:
            self._highlighted = frags
            self.highlight_changed.emit(frags)

    # ── Drag-rectangle mode ───────────────────

    def fragments_in(self, rect: fitz.Rect) -> list[TextFragment]:
        hits = [
            f for f in self.fragments
            if not f.is_whitespace and overlap_ratio(f, rect) >= self.overlap_threshold
        ]
        return reading_order(hits)

    def pointer_down(self, x: float, y: float):
        # single-flight: leftovers of the previous gesture go first
        self.cancel()
        self._region = SelectionRegion(x, y, x, y)
        self._state = STATE_SELECTING

    def pointer_move(self, x: float, y: float):
        if self._state != STATE_SELECTING or self._region is None:
            return
        self._region = self._region.moved_to(x, y)
        self._set_highlight(tuple(self.fragments_in(self._region.rect)))

    def pointer_up(self, x: float, y: float) -> Optional[SelectionResult]:
        if self._state != STATE_SELECTING or self._region is None:
            return None
        region = self._region.moved_to(x, y)
        selected = self.fragments_in(region.rect)
        self.cancel()
        return self._finish(selected, cleanup=False)

    # ── Native-selection mode ─────────────────

    def select_range(self, start: int, end: int) -> Optional[SelectionResult]:
        """Select fragments by source-order index (inclusive on both ends)."""
        self.cancel()
        frags = self.fragments
        if not frags:
            return None
        if start > end:
            start, end = end, start
        start = max(0, start)
        end = min(len(frags) - 1, end)
        selected = [f for f in frags[start:end + 1] if not f.is_whitespace]
        return self._finish(selected, cleanup=True, span=frags[start:end + 1])

    def index_at(self, x: float, y: float) -> int:
        """Source-order index of the fragment under (x, y), or -1."""
        for i, f in enumerate(self.fragments):
            if f.left <= x <= f.right and f.top <= y <= f.bottom:
                return i
        return -1

    # ── Result ────────────────────────────────

    def _finish(self, selected: list[TextFragment], cleanup: bool,
                span: Sequence[TextFragment] = ()) -> Optional[SelectionResult]:
        if not selected:
            logger.debug("Empty selection; nothing offered for placement")
            return None

        text = join_fragments(span or selected)
        if cleanup:
            text = collapse_repeats(text, self.repeat_collapse_min)
        text = text.strip()
        if not text:
            return None

        result = SelectionResult(text, tuple(selected), bounding_rect(selected))
        self.last_selection = result
        self.selection_ready.emit(result.text, result.bounding_rect)
        return result
