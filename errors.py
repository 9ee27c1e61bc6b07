"""
errors.py — Error taxonomy for the extraction / selection / placement engine
Every failure here is recoverable by a new user action (re-upload, re-select, re-drag).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CanvasToolError(Exception):
    """Base class for all engine errors."""


# ─────────────────────────────────────────────
# Rendering / loading
# ─────────────────────────────────────────────

class RenderErrorKind(Enum):
    CORRUPT = "corrupt"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value


class RenderError(CanvasToolError):
    """A page could not be rasterized. Never retried automatically."""

    def __init__(self, kind: RenderErrorKind, message: str = "", page_index: int = -1):
        self.kind = kind
        self.page_index = page_index
        super().__init__(message or f"page render failed ({kind})")


class LoadErrorKind(Enum):
    PASSWORD_PROTECTED = "password_protected"
    CORRUPT = "corrupt"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value


class DocumentLoadError(CanvasToolError):
    def __init__(self, kind: LoadErrorKind, message: str = ""):
        self.kind = kind
        super().__init__(message or f"document could not be opened ({kind})")


class UnsupportedFileType(CanvasToolError):
    """File is neither a PDF nor a supported raster image."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        super().__init__(f"unsupported file type: {name}" + (f" ({detail})" if detail else ""))


# ─────────────────────────────────────────────
# Selection / placement
# ─────────────────────────────────────────────

class EmptySelection(CanvasToolError):
    """Nothing to place. Suppresses selection_ready; not a hard error."""


class InvalidZone(CanvasToolError):
    def __init__(self, zone: str, template_id: Optional[str]):
        self.zone = zone
        self.template_id = template_id
        super().__init__(f"zone {zone!r} is not part of template {template_id!r}")


class PlacementFailed(CanvasToolError):
    """The persistence collaborator refused or failed the create call."""
