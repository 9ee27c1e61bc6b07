import fitz  # PyMuPDF
import pytest

from errors import RenderError, RenderErrorKind
from rasterizer import PageRasterizer, _classify


@pytest.fixture
def doc(two_page_pdf):
    d = fitz.open(stream=two_page_pdf, filetype="pdf")
    yield d
    d.close()


def test_render_produces_surface_for_viewport(doc):
    r = PageRasterizer(doc)
    surface = r.render(0, 1.5, request_id=7)
    vp = surface.viewport
    assert (vp.page_index, vp.scale, vp.request_id) == (0, 1.5, 7)
    assert vp.width == pytest.approx(doc[0].rect.width * 1.5)
    assert abs(surface.width - vp.width) <= 1
    assert abs(surface.height - vp.height) <= 1
    assert not surface.image.isNull()


@pytest.mark.parametrize("scale", [0, -1.0])
def test_non_positive_scale_is_a_caller_error(doc, scale):
    with pytest.raises(ValueError):
        PageRasterizer(doc).render(0, scale)


@pytest.mark.parametrize("page", [-1, 2])
def test_page_out_of_range_is_a_caller_error(doc, page):
    with pytest.raises(ValueError):
        PageRasterizer(doc).render(page, 1.0)


def test_render_over_budget_reports_timeout(doc):
    with pytest.raises(RenderError) as exc:
        PageRasterizer(doc, timeout_s=-1).render(0, 1.0)
    assert exc.value.kind is RenderErrorKind.TIMEOUT
    assert exc.value.page_index == 0


def test_page_geometry(doc):
    geometry = PageRasterizer(doc).page_geometry(1)
    assert [r.text for r in geometry.runs] == ["Second page"]


def test_error_classification():
    assert _classify(RuntimeError("broken stream")) is RenderErrorKind.CORRUPT
    assert _classify(MemoryError()) is RenderErrorKind.UNKNOWN
