"""
text_layer.py — Rebuilds a positioned, selectable text layer from text runs

Fragments live in the same device space as the raster surface of the paired
viewport. A build never patches a previous layer; it always returns a new one.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from config import GRANULARITY_GLYPH, GRANULARITY_WORD
from models import TextFragment, TextLayer, TextRun, Viewport

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+|\s+")

# Per-character width estimate (× font size) when a run has no usable width
CHAR_WIDTH_ESTIMATE = 0.6
# Fragment box height (× font size)
LINE_HEIGHT = 1.2


def split_run(text: str, granularity: str = GRANULARITY_WORD) -> list[tuple[int, str]]:
    """Split run text into (offset, piece) pairs.

    Word granularity keeps whitespace runs as their own pieces so they still
    consume horizontal space.
    """
    if granularity == GRANULARITY_GLYPH:
        return list(enumerate(text))
    return [(m.start(), m.group()) for m in _WORD_RE.finditer(text)]


class TextLayerBuilder:
    """TextRuns + viewport → de-duplicated TextFragments."""

    def __init__(self, granularity: str = GRANULARITY_WORD):
        if granularity not in (GRANULARITY_WORD, GRANULARITY_GLYPH):
            raise ValueError(f"unknown granularity: {granularity!r}")
        self.granularity = granularity

    def fragments_for_run(self, run: TextRun, run_index: int, scale: float) -> list[TextFragment]:
        """Lay out one run; no de-duplication."""
        if not run.text:
            return []

        base_left = run.transform[4] * scale
        base_top = run.transform[5] * scale - run.font_ascent * scale
        font_size = run.font_height * scale
        if run.run_width > 0:
            char_w = run.run_width * scale / len(run.text)
        else:
            char_w = font_size * CHAR_WIDTH_ESTIMATE
        height = font_size * LINE_HEIGHT

        out = []
        left = base_left
        for offset, piece in split_run(run.text, self.granularity):
            width = char_w * len(piece)
            out.append(TextFragment(
                text=piece,
                left=left,
                top=base_top,
                width=width,
                height=height,
                source_run_index=run_index,
                offset_in_run=offset,
            ))
            left += width
        return out

    def build(self, runs: Iterable[TextRun], viewport: Viewport) -> TextLayer:
        scale = viewport.scale
        # cell → position in `kept`; superseded whitespace leaves a None hole
        by_cell: dict[tuple[int, int], int] = {}
        kept: list[TextFragment | None] = []
        dropped = 0

        for run_index, run in enumerate(runs):
            for frag in self.fragments_for_run(run, run_index, scale):
                key = frag.cell
                idx = by_cell.get(key)
                if idx is None:
                    by_cell[key] = len(kept)
                    kept.append(frag)
                    continue
                existing = kept[idx]
                if existing.is_whitespace and not frag.is_whitespace:
                    kept[idx] = None
                    by_cell[key] = len(kept)
                    kept.append(frag)
                dropped += 1

        fragments = tuple(f for f in kept if f is not None)
        if dropped:
            logger.debug("Text layer p%d @%.2f: %d duplicate fragments dropped",
                         viewport.page_index, scale, dropped)
        return TextLayer(viewport, fragments)

