"""
PDF 渲染器单元测试

每个模块完成后必须运行：pytest tests/unit/test_renderer.py -v
"""

import io

import pytest
from pypdf import PdfReader

from legalpdf.interfaces import IOWriteError, JobCancelled
from legalpdf.markup import FormattingOverrides
from legalpdf.models import PageNumberFormat, PageNumberStyle
from legalpdf.pipeline import CancellationToken
from legalpdf.render import BufferSink, PdfRenderer


@pytest.fixture
def assignment_plan(pipeline, assignment_text):
    return pipeline.plan(assignment_text, "patent-assignment")


@pytest.fixture
def license_plan(pipeline, license_text):
    return pipeline.plan(license_text, "patent-license")


def _render(planned, **kwargs):
    sink = BufferSink()
    PdfRenderer(planned.rules, **kwargs).render(planned.plan, sink)
    return sink.finalize()


class TestRendering:
    """渲染输出"""

    def test_page_count_matches_plan(self, license_plan):
        """PDF 实际页数与分页计划一致"""
        result = _render(license_plan)

        assert license_plan.plan.page_count > 1
        assert result.page_count == license_plan.plan.page_count

    def test_text_content(self, assignment_plan):
        """签名块标签与页码出现在输出中"""
        result = _render(assignment_plan)
        reader = PdfReader(io.BytesIO(result.data))
        text = "\n".join(page.extract_text() for page in reader.pages)

        assert "ASSIGNOR:" in text
        assert "ASSIGNEE:" in text
        assert "Page 1" in text

    def test_page_size(self, assignment_plan):
        result = _render(assignment_plan)
        box = PdfReader(io.BytesIO(result.data)).pages[0].mediabox

        assert float(box.width) == pytest.approx(612)
        assert float(box.height) == pytest.approx(792)

    def test_deterministic_output(self, assignment_plan):
        """同一计划重复渲染字节一致"""
        assert _render(assignment_plan).data == _render(assignment_plan).data

    def test_on_page_callback(self, license_plan):
        pages = []
        _render(license_plan, on_page=lambda n, total: pages.append((n, total)))

        total = license_plan.plan.page_count
        assert pages == [(n, total) for n in range(1, total + 1)]

    def test_page_numbers_disabled(self, pipeline, assignment_text):
        planned = pipeline.plan(
            assignment_text, "patent-assignment", FormattingOverrides(page_numbers=False),
        )
        result = _render(planned)
        text = PdfReader(io.BytesIO(result.data)).pages[0].extract_text()
        assert "Page 1" not in text


class TestRenderFailures:
    """取消与写入失败"""

    def test_cancel_before_page(self, license_plan):
        token = CancellationToken()
        sink = BufferSink()

        def _on_page(n, total):
            if n == 2:
                token.cancel()

        renderer = PdfRenderer(license_plan.rules, cancel_token=token, on_page=_on_page)
        with pytest.raises(JobCancelled):
            renderer.render(license_plan.plan, sink)
        assert sink.bytes_written == 0

    def test_sink_write_failure(self, assignment_plan):
        """输出目标抛 OSError 时转换为 IOWriteError"""

        class _BrokenSink(BufferSink):
            def write(self, data: bytes) -> None:
                raise OSError("disk full")

        with pytest.raises(IOWriteError):
            PdfRenderer(assignment_plan.rules).render(assignment_plan.plan, _BrokenSink())


class TestPageLabels:
    """页码文本"""

    def test_numeric_with_total(self):
        fmt = PageNumberFormat(prefix="Page ", suffix=" of {total}")
        assert fmt.label(3, 7) == "Page 3 of 7"

    def test_roman(self):
        fmt = PageNumberFormat(style=PageNumberStyle.ROMAN)
        assert [fmt.label(n, 5) for n in (1, 4, 9, 14)] == ["i", "iv", "ix", "xiv"]

    def test_alpha(self):
        fmt = PageNumberFormat(style=PageNumberStyle.ALPHA)
        assert [fmt.label(n, 30) for n in (1, 26, 27)] == ["A", "Z", "AA"]
