"""
models.py — Data models: text geometry, selections, text boxes, open document
All geometry values are immutable; a new page/zoom produces new objects.
"""

from __future__ import annotations

import unicodedata
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF
from PyQt6.QtGui import QImage


def is_blank(text: str) -> bool:
    """True for whitespace/control-only strings (never selectable)."""
    return all(ch.isspace() or unicodedata.category(ch) == "Cc" for ch in text)


# ─────────────────────────────────────────────
# Page geometry (from the PDF parsing side)
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TextRun:
    """One run of text as laid out by the page content stream.

    transform is (a, b, c, d, e, f); (e, f) is the baseline origin in page
    units with y growing downward.
    """
    text: str
    transform: tuple[float, float, float, float, float, float]
    font_height: float
    font_ascent: float
    run_width: float = 0.0


@dataclass(frozen=True)
class PageGeometry:
    page_index: int
    width: float
    height: float
    runs: tuple[TextRun, ...] = ()


@dataclass(frozen=True)
class Viewport:
    """Page space → device space transform for one (page, scale) render."""
    page_index: int
    scale: float
    width: float
    height: float
    request_id: int = 0

    @classmethod
    def for_page(cls, page_index: int, page_width: float, page_height: float,
                 scale: float, request_id: int = 0) -> "Viewport":
        return cls(page_index, scale, page_width * scale, page_height * scale, request_id)


@dataclass(frozen=True)
class RasterSurface:
    image: QImage
    viewport: Viewport

    @property
    def width(self) -> int:
        return self.image.width()

    @property
    def height(self) -> int:
        return self.image.height()


# ─────────────────────────────────────────────
# Text layer
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TextFragment:
    text: str
    left: float
    top: float
    width: float
    height: float
    source_run_index: int = 0
    offset_in_run: int = 0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    @property
    def rect(self) -> fitz.Rect:
        return fitz.Rect(self.left, self.top, self.right, self.bottom)

    @property
    def is_whitespace(self) -> bool:
        return is_blank(self.text)

    @property
    def cell(self) -> tuple[int, int]:
        """De-duplication key."""
        return (round(self.left), round(self.top))


@dataclass(frozen=True)
class TextLayer:
    """Fragments built for exactly one viewport. Swapped as a whole."""
    viewport: Viewport
    fragments: tuple[TextFragment, ...] = ()

    def __len__(self):
        return len(self.fragments)

    def __iter__(self):
        return iter(self.fragments)


# ─────────────────────────────────────────────
# Selection
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class SelectionRegion:
    origin_x: float
    origin_y: float
    current_x: float
    current_y: float

    def moved_to(self, x: float, y: float) -> "SelectionRegion":
        return SelectionRegion(self.origin_x, self.origin_y, x, y)

    @property
    def rect(self) -> fitz.Rect:
        """Normalized (left, top, right, bottom)."""
        return fitz.Rect(
            min(self.origin_x, self.current_x),
            min(self.origin_y, self.current_y),
            max(self.origin_x, self.current_x),
            max(self.origin_y, self.current_y),
        )


@dataclass(frozen=True)
class SelectionResult:
    text: str
    fragments: tuple[TextFragment, ...]
    bounding_rect: fitz.Rect


# ─────────────────────────────────────────────
# Text boxes (owned by the persistence collaborator)
# ─────────────────────────────────────────────

DEFAULT_BOX_WIDTH = 200
DEFAULT_BOX_COLOR = "white"


@dataclass(frozen=True)
class CreateTextBoxRequest:
    content: str
    x: float
    y: float
    sheet_id: int
    width: float = DEFAULT_BOX_WIDTH
    height: Optional[float] = None
    color: str = DEFAULT_BOX_COLOR
    zone: Optional[str] = None


@dataclass
class TextBox:
    id: int
    content: str
    x: float
    y: float
    sheet_id: int
    width: float = DEFAULT_BOX_WIDTH
    height: Optional[float] = None
    color: str = DEFAULT_BOX_COLOR
    zone: Optional[str] = None

    @classmethod
    def from_request(cls, box_id: int, req: CreateTextBoxRequest) -> "TextBox":
        return cls(id=box_id, **asdict(req))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "TextBox":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass(frozen=True)
class ExplicitTarget:
    """Drop point in canvas coordinates."""
    x: float
    y: float


@dataclass(frozen=True)
class ZoneTarget:
    zone: str


PlacementTarget = Union[ExplicitTarget, ZoneTarget]


# ─────────────────────────────────────────────
# Open document
# ─────────────────────────────────────────────

@dataclass
class DocumentTab:
    """The currently loaded document (PDF, or an image wrapped as a PDF)."""
    document: Optional[fitz.Document] = None
    data: bytes = b""
    file_path: str = ""
    kind: str = "pdf"
    current_page: int = 0

    @property
    def page_count(self) -> int:
        return self.document.page_count if self.document else 0

    @property
    def display_name(self) -> str:
        if not self.file_path:
            return "Untitled"
        return Path(self.file_path).name

    def close(self):
        if self.document:
            self.document.close()
            self.document = None
