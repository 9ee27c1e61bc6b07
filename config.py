"""
config.py — Engine settings (QSettings-backed) and the app config directory
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QSettings

logger = logging.getLogger(__name__)

ORGANIZATION = "PDFAnalysisCanvas"
APPLICATION = "Settings"

GRANULARITY_WORD = "word"
GRANULARITY_GLYPH = "glyph"

# Shortest run that collapse_repeats can shorten (three copies down to two)
MIN_REPEAT_COLLAPSE = 3


def config_dir() -> Path:
    """Returns the app config directory (Windows: %APPDATA%/PDFAnalysisCanvas)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home())) / ORGANIZATION
    else:
        base = Path.home() / ".config" / ORGANIZATION
    base.mkdir(parents=True, exist_ok=True)
    return base


@dataclass(frozen=True)
class EngineConfig:
    # Selection tuning (empirical, not derived)
    overlap_threshold: float = 0.35
    repeat_collapse_min: int = 3
    granularity: str = GRANULARITY_WORD

    # Rendering
    render_timeout_s: float = 10.0
    min_scale: float = 0.5
    max_scale: float = 2.0
    zoom_step: float = 0.1
    default_scale: float = 1.0

    # Canvas / placement
    drop_margin: float = 10.0
    box_width: float = 200.0
    box_height: float = 100.0

    # Text box snapshot file; empty → in-memory only
    store_path: str = ""

    def clamp_scale(self, scale: float) -> float:
        return max(self.min_scale, min(scale, self.max_scale))


def load_config(settings: Optional[QSettings] = None) -> EngineConfig:
    """Read overrides from QSettings on top of the defaults."""
    settings = settings or QSettings(ORGANIZATION, APPLICATION)
    d = EngineConfig()
    granularity = settings.value("selection/granularity", d.granularity, type=str)
    if granularity not in (GRANULARITY_WORD, GRANULARITY_GLYPH):
        logger.warning("Unknown granularity %r in settings; using %r", granularity, d.granularity)
        granularity = d.granularity
    repeat_collapse_min = settings.value("selection/repeat_collapse_min", d.repeat_collapse_min, type=int)
    if repeat_collapse_min < MIN_REPEAT_COLLAPSE:
        logger.warning("selection/repeat_collapse_min=%d would disable repeat cleanup; using %d",
                       repeat_collapse_min, MIN_REPEAT_COLLAPSE)
        repeat_collapse_min = MIN_REPEAT_COLLAPSE
    return EngineConfig(
        overlap_threshold=settings.value("selection/overlap_threshold", d.overlap_threshold, type=float),
        repeat_collapse_min=repeat_collapse_min,
        granularity=granularity,
        render_timeout_s=settings.value("render/timeout_s", d.render_timeout_s, type=float),
        min_scale=settings.value("render/min_scale", d.min_scale, type=float),
        max_scale=settings.value("render/max_scale", d.max_scale, type=float),
        zoom_step=settings.value("render/zoom_step", d.zoom_step, type=float),
        default_scale=settings.value("render/default_scale", d.default_scale, type=float),
        drop_margin=settings.value("canvas/drop_margin", d.drop_margin, type=float),
        box_width=settings.value("canvas/box_width", d.box_width, type=float),
        box_height=settings.value("canvas/box_height", d.box_height, type=float),
        store_path=settings.value("store/path", d.store_path, type=str),
    )
