import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # PyMuPDF
import pytest
from PyQt6.QtWidgets import QApplication

from models import TextFragment, TextLayer, Viewport


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def make_pdf(pages=None) -> bytes:
    """pages: list of [(text, (x, y), fontsize), ...] per page."""
    if pages is None:
        pages = [[("Hello World", (100, 700), 12)]]
    doc = fitz.open()
    for runs in pages:
        page = doc.new_page()
        for text, point, size in runs:
            page.insert_text(point, text, fontsize=size)
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width: int = 20, height: int = 10) -> bytes:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), False)
    pix.clear_with(255)
    return pix.tobytes("png")


@pytest.fixture
def hello_pdf() -> bytes:
    return make_pdf()


@pytest.fixture
def two_page_pdf() -> bytes:
    return make_pdf([
        [("Hello World", (100, 700), 12)],
        [("Second page", (72, 100), 14)],
    ])


def frag(text, left, top, width=100.0, height=10.0, run=0, offset=0) -> TextFragment:
    return TextFragment(text, left, top, width, height, run, offset)


def layer_of(*fragments) -> TextLayer:
    return TextLayer(Viewport(0, 1.0, 600, 800), tuple(fragments))
