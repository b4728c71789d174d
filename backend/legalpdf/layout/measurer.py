"""
内容测量器（第一遍）- 每个内容块在当前格式规则下的精确高度

职责：
1. 文本块：reportlab Paragraph.wrap 实测高度 + 段距，乘以段落安全系数
2. 块组：各签署方按行布局（标签/签名线/字段行/公证文本），
   并排取最高列，堆叠取总和；几何一并交给渲染器
3. 不可拆分块超过最大可用页高时立即抛 BlockOverflowError
4. 段落拆分：优先句子边界，前后各至少 min_split_lines 行

测试要点：
- test_measure_paragraph_uses_line_spacing: 行距影响高度
- test_group_height_is_max_of_columns: 并排取最高列
- test_oversized_group_overflow: 超高块组
- test_split_at_sentence_boundary: 句子边界拆分
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from ..interfaces import BlockOverflowError, IContentMeasurer, IParagraphSplitter
from ..models import (
    HEIGHT_EPSILON,
    ColumnGeometry,
    ContentBlock,
    ContentKind,
    FormattingRules,
    GeometryRow,
    GroupGeometry,
    MarkerType,
    Measurement,
    ResolvedBlock,
    RowKind,
    SplitResult,
)
from .metrics import BLOCK_TEXT_SIZE, ReportLabMetrics

logger = logging.getLogger(__name__)

# 块组固定行高（pt）
LABEL_GAP = 4.0
SIGNATURE_ROW_HEIGHT = 36.0
FIELD_ROW_HEIGHT = 18.0
INITIALS_ROW_HEIGHT = 24.0
GROUP_PADDING = 12.0
MEMBER_GAP = 18.0
DIVIDER_HEIGHT = 12.0
RULE_HEIGHT = 20.0

NOTARY_TITLE = "NOTARY ACKNOWLEDGMENT"
NOTARY_VENUE = ("STATE OF", "COUNTY OF")
NOTARY_STATEMENT = (
    "Subscribed and sworn to (or affirmed) before me on this ____ day of "
    "______________, 20____, by the person(s) named above, proved to me on the "
    "basis of satisfactory evidence to be the person(s) who appeared before me."
)

# 不视为句末的缩写
_ABBREVIATIONS = {
    "inc.", "corp.", "co.", "ltd.", "llc.", "no.", "nos.", "u.s.", "u.s.c.",
    "mr.", "mrs.", "ms.", "dr.", "e.g.", "i.e.", "etc.", "v.", "vs.", "sec.",
    "art.", "p.", "pp.", "jr.", "sr.", "st.", "al.", "fig.", "cf.",
}
_SENTENCE_END_RE = re.compile(r"[.!?][\"'”’)\]]*\s+")
_INITIAL_RE = re.compile(r"^[A-Za-z]\.$")


def sentence_breaks(text: str) -> list[int]:
    """句子边界（下一句起始偏移）；段内换行也视为边界"""
    breaks = set()
    for match in _SENTENCE_END_RE.finditer(text):
        end = match.end()
        if end >= len(text):
            continue
        words = text[:match.start() + 1].split()
        token = words[-1].lower() if words else ""
        if token in _ABBREVIATIONS or _INITIAL_RE.match(token):
            continue
        if text[end].islower():
            continue
        breaks.add(end)
    for match in re.finditer(r"\n", text):
        if 0 < match.end() < len(text):
            breaks.add(match.end())
    return sorted(breaks)


class ContentMeasurer(IContentMeasurer, IParagraphSplitter):
    """内容测量器"""

    def __init__(
        self,
        rules: FormattingRules,
        usable_height: float,
        *,
        metrics: ReportLabMetrics | None = None,
        safety_factor: float = 1.02,
        gutter: float = 36.0,
        min_split_lines: int = 2,
    ):
        self.rules = rules
        self.usable_height = usable_height
        self.metrics = metrics or ReportLabMetrics(rules)
        self.safety_factor = safety_factor
        self.gutter = gutter
        self.min_split_lines = min_split_lines

    def measure(self, blocks: Sequence[ContentBlock]) -> list[Measurement]:
        measurements = [self.measure_block(block) for block in blocks]
        logger.debug(
            f"测量完成: {len(measurements)} 个块, 总高 {sum(m.height for m in measurements):.1f}pt, "
            f"可用页高 {self.usable_height:.1f}pt"
        )
        return measurements

    def measure_block(self, block: ContentBlock) -> Measurement:
        if block.kind is ContentKind.BLOCK_GROUP:
            measurement = self._measure_group(block)
        elif block.kind is ContentKind.RULE:
            measurement = Measurement(
                block_id=block.block_id,
                height=RULE_HEIGHT,
                can_split=False,
                content_height=RULE_HEIGHT,
                lead_height=RULE_HEIGHT,
            )
        else:
            measurement = self._measure_text(block)

        if not measurement.can_split and measurement.height > self.usable_height + HEIGHT_EPSILON:
            raise BlockOverflowError(
                f"块高度 {measurement.height:.1f}pt 超过最大可用页高 {self.usable_height:.1f}pt",
                block_id=block.block_id,
                height=measurement.height,
                usable_height=self.usable_height,
            )
        return measurement

    # ------------------------------------------------------------------
    # 文本块
    # ------------------------------------------------------------------

    def _measure_text(self, block: ContentBlock) -> Measurement:
        _, content_height, lines = self.metrics.layout(block)
        spacing = self.rules.paragraph_spacing / 2 if block.is_heading else self.rules.paragraph_spacing
        height = (content_height + spacing) * self.safety_factor

        lead_height = height
        if block.can_split and lines >= 2 * self.min_split_lines:
            per_line = content_height / lines
            lead_height = (per_line * self.min_split_lines + spacing) * self.safety_factor

        return Measurement(
            block_id=block.block_id,
            height=height,
            can_split=block.can_split,
            content_height=content_height,
            line_count=lines,
            lead_height=lead_height,
        )

    # ------------------------------------------------------------------
    # 块组
    # ------------------------------------------------------------------

    def _measure_group(self, block: ContentBlock) -> Measurement:
        group = block.group
        width = self.rules.content_width
        side_by_side = group.is_side_by_side
        count = len(group.members)

        y = GROUP_PADDING
        divider_y = None
        if side_by_side:
            divider_y = y
            y += DIVIDER_HEIGHT
        top = y

        columns = []
        for i, member in enumerate(group.members):
            if side_by_side:
                col_width = (width - self.gutter * (count - 1)) / count
                x = i * (col_width + self.gutter)
                col_y = top
            else:
                col_width = width if member.type is MarkerType.NOTARY else width / 2
                x = 0.0
                col_y = y
            column = ColumnGeometry(
                member_id=member.id,
                x=x,
                y=col_y,
                width=col_width,
                rows=self._member_rows(member, col_width),
            )
            columns.append(column)
            if not side_by_side:
                y = col_y + column.height + MEMBER_GAP

        if side_by_side:
            body = max(c.height for c in columns)
        else:
            body = y - MEMBER_GAP - top
        height = top + body + GROUP_PADDING

        logger.debug(
            f"块组 {group.group_id}: {count} 方, {'并排' if side_by_side else '堆叠'}, 高 {height:.1f}pt"
        )
        return Measurement(
            block_id=block.block_id,
            height=height,
            can_split=False,
            content_height=height,
            lead_height=height,
            geometry=GroupGeometry(columns=columns, divider_y=divider_y, height=height),
        )

    def _member_rows(self, member: ResolvedBlock, width: float) -> list[GeometryRow]:
        rows: list[GeometryRow] = []
        y = 0.0
        size = self.rules.font_size

        def add(kind: RowKind, text: str, height: float, *, font_size: float = BLOCK_TEXT_SIZE, bold: bool = False):
            nonlocal y
            rows.append(GeometryRow(kind=kind, text=text, y=y, height=height, font_size=font_size, bold=bold))
            y += height

        if member.type is MarkerType.INITIAL:
            add(RowKind.FIELD, f"{member.party_label} Initials:", INITIALS_ROW_HEIGHT, font_size=size)
            return rows

        if member.type is MarkerType.NOTARY:
            _, title_height = self.metrics.wrap_text(NOTARY_TITLE, "label", width)
            add(RowKind.LABEL, NOTARY_TITLE, title_height + LABEL_GAP, font_size=size, bold=True)
            for venue in NOTARY_VENUE:
                add(RowKind.FIELD, f"{venue}:", FIELD_ROW_HEIGHT)
            _, text_height = self.metrics.wrap_text(NOTARY_STATEMENT, "block-text", width)
            add(RowKind.TEXT, NOTARY_STATEMENT, text_height + LABEL_GAP)
            add(RowKind.SIGNATURE, "", SIGNATURE_ROW_HEIGHT)
            add(RowKind.LABEL, "Notary Public", FIELD_ROW_HEIGHT, font_size=BLOCK_TEXT_SIZE)
            for field in member.fields:
                add(RowKind.FIELD, f"{field.display_label}:", FIELD_ROW_HEIGHT)
            return rows

        label = f"{member.party_label}:"
        _, label_height = self.metrics.wrap_text(label, "label", width)
        add(RowKind.LABEL, label, label_height + LABEL_GAP, font_size=size, bold=True)
        add(RowKind.SIGNATURE, "By:", SIGNATURE_ROW_HEIGHT)
        for field in member.fields:
            add(RowKind.FIELD, f"{field.display_label}:", FIELD_ROW_HEIGHT)
        return rows

    # ------------------------------------------------------------------
    # 拆分
    # ------------------------------------------------------------------

    def split(
        self,
        block: ContentBlock,
        available_height: float,
        *,
        fresh_page: bool = False,
    ) -> SplitResult | None:
        if not block.can_split:
            return None

        text = block.text
        for cut in reversed(sentence_breaks(text)):
            result = self._try_split(block, text, cut, available_height, self.min_split_lines)
            if result is not None:
                logger.debug(f"段落 {block.block_id} 在句子边界拆分 (偏移 {cut})")
                return result

        if fresh_page:
            result = self._split_at_words(block, available_height)
            if result is not None:
                logger.debug(f"段落 {block.block_id} 单句超页，按词拆分")
            return result
        return None

    def _try_split(
        self,
        block: ContentBlock,
        text: str,
        cut: int,
        available_height: float,
        min_lines: int,
    ) -> SplitResult | None:
        head_text, tail_text = text[:cut].rstrip(), text[cut:].lstrip()
        if not head_text or not tail_text:
            return None
        head = block.fragment(head_text, block.part)
        head_m = self._measure_text(head)
        if head_m.height > available_height + HEIGHT_EPSILON or head_m.line_count < min_lines:
            return None
        tail = block.fragment(tail_text, block.part + 1)
        tail_m = self._measure_text(tail)
        if tail_m.line_count < min_lines:
            return None
        return SplitResult(head=head, head_measurement=head_m, tail=tail, tail_measurement=tail_m)

    def _split_at_words(self, block: ContentBlock, available_height: float) -> SplitResult | None:
        """二分查找能放下的最长词前缀"""
        text = block.text
        cuts = [m.start() for m in re.finditer(r"\s+", text) if m.start() > 0]
        lo, hi, best = 0, len(cuts) - 1, None
        while lo <= hi:
            mid = (lo + hi) // 2
            head = block.fragment(text[:cuts[mid]].rstrip(), block.part)
            if self._measure_text(head).height <= available_height + HEIGHT_EPSILON:
                best = cuts[mid]
                lo = mid + 1
            else:
                hi = mid - 1
        if best is None:
            return None
        return self._try_split(block, text, best, available_height, 1)
