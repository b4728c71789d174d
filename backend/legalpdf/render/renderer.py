"""
PDF 渲染器（第二遍）- 按分页计划逐页定位输出

职责：
1. 逐页绘制：段落按测量时的样式折行后定位，块组按测量几何定位
2. 并排块组上方绘制分隔线
3. 按格式规则盖页码
4. 每页之前检查取消；全部完成后分块写入输出目标

渲染器不做任何高度决策，所有尺寸来自第一遍测量与分页计划。
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Callable

from reportlab.pdfgen import canvas

from ..interfaces import IOutputSink, IOWriteError, IRenderer
from ..layout.measurer import DIVIDER_HEIGHT, RULE_HEIGHT
from ..layout.metrics import MEASURE_HEIGHT_LIMIT, ReportLabMetrics
from ..models import (
    ColumnGeometry,
    ContentKind,
    FormattingRules,
    PageNumberPosition,
    PagePlan,
    Placement,
    RowKind,
)

if TYPE_CHECKING:
    from ..pipeline.cancellation import CancellationToken

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
LINE_WIDTH = 0.75
SIGNATURE_LINE_RATIO = 0.95


class PdfRenderer(IRenderer):
    """reportlab 画布渲染器"""

    def __init__(
        self,
        rules: FormattingRules,
        metrics: ReportLabMetrics | None = None,
        *,
        title: str | None = None,
        cancel_token: CancellationToken | None = None,
        on_page: Callable[[int, int], None] | None = None,
    ):
        self.rules = rules
        self.metrics = metrics or ReportLabMetrics(rules)
        self.title = title or rules.document_type
        self.cancel_token = cancel_token
        self.on_page = on_page

    def render(self, plan: PagePlan, sink: IOutputSink) -> int:
        """渲染并写入输出目标，返回写入字节数"""
        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=(self.rules.page_width, self.rules.page_height),
            invariant=1,
        )
        pdf.setTitle(self.title)
        pdf.setSubject(self.rules.document_type)
        pdf.setCreator("legalpdf")

        total = plan.page_count
        for page in plan.pages:
            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled()
            if self.on_page is not None:
                self.on_page(page.number, total)
            for placement in page.placements:
                self._draw_placement(pdf, placement)
            self._draw_page_number(pdf, page.number, total)
            pdf.showPage()
        pdf.save()

        data = buffer.getvalue()
        written = 0
        for start in range(0, len(data), CHUNK_SIZE):
            chunk = data[start:start + CHUNK_SIZE]
            try:
                sink.write(chunk)
            except OSError as e:
                raise IOWriteError(f"输出写入失败: {e}") from e
            written += len(chunk)
        logger.debug(f"渲染完成: {total} 页, {written} 字节")
        return written

    # ------------------------------------------------------------------
    # 绘制
    # ------------------------------------------------------------------

    def _content_top(self) -> float:
        return self.rules.page_height - self.rules.margins.top

    def _draw_placement(self, pdf: canvas.Canvas, placement: Placement) -> None:
        block = placement.block
        top = self._content_top() - placement.offset
        left = self.rules.margins.left

        if block.kind is ContentKind.BLOCK_GROUP:
            self._draw_group(pdf, placement, top)
        elif block.kind is ContentKind.RULE:
            y = top - RULE_HEIGHT / 2
            pdf.setLineWidth(LINE_WIDTH)
            pdf.line(left, y, left + self.rules.content_width, y)
        else:
            para = self.metrics.paragraph(block)
            para.wrap(self.rules.content_width, MEASURE_HEIGHT_LIMIT)
            para.drawOn(pdf, left, top - placement.measurement.content_height)

    def _draw_group(self, pdf: canvas.Canvas, placement: Placement, top: float) -> None:
        geometry = placement.measurement.geometry
        left = self.rules.margins.left
        if geometry.divider_y is not None:
            y = top - geometry.divider_y - DIVIDER_HEIGHT / 2
            pdf.setLineWidth(LINE_WIDTH)
            pdf.line(left, y, left + self.rules.content_width, y)
        for column in geometry.columns:
            self._draw_column(pdf, column, left + column.x, top - column.y)

    def _draw_column(self, pdf: canvas.Canvas, column: ColumnGeometry, x: float, top: float) -> None:
        line_end = x + column.width * SIGNATURE_LINE_RATIO
        pdf.setLineWidth(LINE_WIDTH)
        for row in column.rows:
            row_top = top - row.y
            row_bottom = row_top - row.height

            if row.kind is RowKind.LABEL and row.bold:
                para, height = self.metrics.wrap_text(row.text, "label", column.width)
                para.drawOn(pdf, x, row_top - height)

            elif row.kind is RowKind.LABEL:
                pdf.setFont(self.rules.font_name, row.font_size)
                pdf.drawString(x, row_top - row.font_size, row.text)

            elif row.kind is RowKind.SIGNATURE:
                baseline = row_bottom + 6
                start = x
                if row.text:
                    pdf.setFont(self.rules.font_name, self.rules.font_size)
                    pdf.drawString(x, baseline, row.text)
                    start = x + self.metrics.string_width(f"{row.text} ") + 2
                pdf.line(start, baseline - 1, line_end, baseline - 1)

            elif row.kind is RowKind.FIELD:
                baseline = row_bottom + 5
                pdf.setFont(self.rules.font_name, row.font_size)
                pdf.drawString(x, baseline, row.text)
                start = x + self.metrics.string_width(row.text, size=row.font_size) + 4
                pdf.line(start, baseline - 1, line_end, baseline - 1)

            elif row.kind is RowKind.TEXT:
                para, height = self.metrics.wrap_text(row.text, "block-text", column.width)
                para.drawOn(pdf, x, row_top - height)

    def _draw_page_number(self, pdf: canvas.Canvas, page_no: int, total: int) -> None:
        fmt = self.rules.page_numbers
        if not fmt.enabled:
            return
        label = fmt.label(page_no, total)
        y = self.rules.margins.bottom / 2
        pdf.setFont(self.rules.font_name, fmt.font_size)
        if fmt.position is PageNumberPosition.BOTTOM_RIGHT:
            pdf.drawRightString(self.rules.page_width - self.rules.margins.right, y, label)
        elif fmt.position is PageNumberPosition.BOTTOM_LEFT:
            pdf.drawString(self.rules.margins.left, y, label)
        else:
            pdf.drawCentredString(self.rules.page_width / 2, y, label)
