"""
pdf_source.py — PDF parsing collaborator over PyMuPDF
File classification, document loading, text-run extraction and page rendering.
Images are wrapped into a one-page PDF so the rest of the engine only sees PDFs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
from PyQt6.QtGui import QImage

from errors import DocumentLoadError, LoadErrorKind, UnsupportedFileType
from models import DocumentTab, PageGeometry, TextRun

logger = logging.getLogger(__name__)

KIND_PDF = "pdf"
KIND_IMAGE = "image"

IMAGE_EXTS = ('.png', '.jpg', '.jpeg', '.bmp', '.gif', '.tiff', '.tif', '.webp')

# (prefix, offset) signatures of supported raster formats
_IMAGE_MAGIC = (
    (b"\x89PNG\r\n\x1a\n", 0),
    (b"\xff\xd8\xff", 0),
    (b"GIF87a", 0),
    (b"GIF89a", 0),
    (b"BM", 0),
    (b"II*\x00", 0),
    (b"MM\x00*", 0),
    (b"WEBP", 8),
)

# Used when a span does not report its font ascender
_DEFAULT_ASCENDER = 0.8


# ─────────────────────────────────────────────
# File classification
# ─────────────────────────────────────────────

def classify_file(name: str, data: bytes) -> str:
    """Return KIND_PDF or KIND_IMAGE. Raises UnsupportedFileType otherwise.

    Content signatures win over the extension; the extension is only used
    when the header is not recognised.
    """
    head = data[:16]
    if head.lstrip()[:5] == b"%PDF-":
        return KIND_PDF
    for magic, offset in _IMAGE_MAGIC:
        if head[offset:offset + len(magic)] == magic:
            return KIND_IMAGE

    ext = Path(name).suffix.lower()
    if not data:
        raise UnsupportedFileType(name, "empty file")
    if ext == ".pdf":
        return KIND_PDF
    if ext in IMAGE_EXTS:
        return KIND_IMAGE
    raise UnsupportedFileType(name, ext or "no extension")


# ─────────────────────────────────────────────
# Loading
# ─────────────────────────────────────────────

def _open_pdf(data: bytes) -> fitz.Document:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except fitz.FileDataError as e:
        raise DocumentLoadError(LoadErrorKind.CORRUPT, str(e)) from e
    except RuntimeError as e:
        raise DocumentLoadError(LoadErrorKind.CORRUPT, str(e)) from e
    except Exception as e:
        raise DocumentLoadError(LoadErrorKind.UNKNOWN, str(e)) from e

    if doc.needs_pass:
        doc.close()
        raise DocumentLoadError(
            LoadErrorKind.PASSWORD_PROTECTED,
            "this PDF is password protected; please upload an unprotected copy",
        )
    if doc.page_count == 0:
        doc.close()
        raise DocumentLoadError(LoadErrorKind.CORRUPT, "document has no pages")
    return doc


def _image_to_pdf_bytes(data: bytes) -> bytes:
    """Wrap a raster image into a single-page PDF sized to the image."""
    try:
        pix = fitz.Pixmap(data)
        w, h = pix.width, pix.height
        pix = None  # free memory
    except Exception as e:
        raise DocumentLoadError(LoadErrorKind.CORRUPT, f"unreadable image: {e}") from e

    doc = fitz.open()
    try:
        page = doc.new_page(width=w, height=h)
        page.insert_image(page.rect, stream=data)
        return doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()


def load_document(data: bytes, kind: Optional[str] = None, file_path: str = "") -> DocumentTab:
    """Open PDF or image bytes as a DocumentTab."""
    kind = kind or classify_file(file_path or "upload", data)
    if kind == KIND_IMAGE:
        data = _image_to_pdf_bytes(data)
    elif kind != KIND_PDF:
        raise UnsupportedFileType(file_path or "upload", kind)

    doc = _open_pdf(data)
    logger.info("Loaded %s (%s, %d pages)", file_path or "<bytes>", kind, doc.page_count)
    return DocumentTab(document=doc, data=data, file_path=file_path, kind=kind)


def load_file(path: str) -> DocumentTab:
    p = Path(path)
    data = p.read_bytes()
    return load_document(data, classify_file(p.name, data), str(p))


# ─────────────────────────────────────────────
# Text runs
# ─────────────────────────────────────────────

def extract_page_geometry(page: fitz.Page, page_index: int) -> PageGeometry:
    """Collect the page's text spans as TextRuns (content-stream order)."""
    runs: list[TextRun] = []
    text_dict = page.get_text("dict")
    for block in text_dict.get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            cos, sin = line.get("dir", (1.0, 0.0))
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text:
                    continue
                size = float(span.get("size", 0.0))
                ox, oy = span.get("origin", (span["bbox"][0], span["bbox"][3]))
                x0, _, x1, _ = span["bbox"]
                ascender = span.get("ascender", _DEFAULT_ASCENDER)
                runs.append(TextRun(
                    text=text,
                    transform=(size * cos, size * sin, -size * sin, size * cos, ox, oy),
                    font_height=size,
                    font_ascent=ascender * size,
                    run_width=max(x1 - x0, 0.0),
                ))
    rect = page.rect
    return PageGeometry(page_index, rect.width, rect.height, tuple(runs))


# ─────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────

def fitz_pixmap_to_qimage(pix: fitz.Pixmap) -> QImage:
    """Convert fitz.Pixmap to QImage."""
    fmt = QImage.Format.Format_RGB888 if pix.n == 3 else QImage.Format.Format_RGBA8888
    img = QImage(pix.samples, pix.width, pix.height, pix.stride, fmt)
    return img.copy()  # copy to detach from fitz memory


def render_to_image(page: fitz.Page, scale: float) -> QImage:
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    return fitz_pixmap_to_qimage(pix)
