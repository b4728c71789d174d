"""
reportlab 度量封装 - 测量与渲染共用同一套 ParagraphStyle

测量一律调用 reportlab 自身的 Paragraph.wrap / pdfmetrics.stringWidth，
不做任何解析式估算，保证第二遍渲染与第一遍测量一致。
"""

from __future__ import annotations

import re
from xml.sax.saxutils import escape

from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfbase import pdfmetrics
from reportlab.platypus import Paragraph

from ..models import LINE_HEIGHT_FACTOR, ContentBlock, ContentKind, FormattingRules

# wrap 时给的可用高度上限（只关心宽度方向折行）
MEASURE_HEIGHT_LIMIT = 10_000
LIST_INDENT = 18.0
HEADING_SIZES = {1: 16, 2: 14, 3: 12}
BLOCK_TEXT_SIZE = 10

_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)\s]+\)")
_BOLD_RE = re.compile(r"\*\*(?!\s)(.+?)(?<!\s)\*\*|__(?![\s_])(.+?)(?<![\s_])__")
_ITALIC_RE = re.compile(
    r"(?<![\w*])\*(?![\s*])(.+?)(?<![\s*])\*(?![\w*])|(?<![\w_])_(?![\s_])(.+?)(?<![\s_])_(?![\w_])"
)


def usable_page_height(rules: FormattingRules, safety_buffer_pct: float) -> float:
    """最大可用页高 = 名义内容高度 - 安全余量"""
    return rules.content_height * (1 - safety_buffer_pct / 100)


def to_markup(text: str) -> str:
    """Markdown 行内语法 → reportlab 段落标记"""
    markup = escape(_LINK_RE.sub(r"\1", text))
    markup = _BOLD_RE.sub(lambda m: f"<b>{m.group(1) or m.group(2)}</b>", markup)
    markup = _ITALIC_RE.sub(lambda m: f"<i>{m.group(1) or m.group(2)}</i>", markup)
    return markup.replace("\n", "<br/>")


class ReportLabMetrics:
    """按格式规则构建样式，并提供测量原语"""

    def __init__(self, rules: FormattingRules):
        self.rules = rules
        self._styles = self._build_styles()
        self._list_styles: dict[int, ParagraphStyle] = {}

    def _build_styles(self) -> dict[str, ParagraphStyle]:
        rules = self.rules
        body = ParagraphStyle(
            "body",
            fontName=rules.font_name,
            fontSize=rules.font_size,
            leading=rules.line_height,
            firstLineIndent=rules.paragraph_indent,
            alignment=TA_JUSTIFY,
        )
        styles = {
            "body": body,
            "body-continued": ParagraphStyle("body-continued", parent=body, firstLineIndent=0),
            "quote": ParagraphStyle(
                "quote",
                parent=body,
                fontName=rules.italic_font,
                firstLineIndent=0,
                leftIndent=rules.block_quote_indent,
                rightIndent=rules.block_quote_indent,
            ),
            "label": ParagraphStyle(
                "label",
                fontName=rules.bold_font,
                fontSize=rules.font_size,
                leading=rules.font_size * LINE_HEIGHT_FACTOR,
                alignment=TA_LEFT,
            ),
            "block-text": ParagraphStyle(
                "block-text",
                fontName=rules.font_name,
                fontSize=BLOCK_TEXT_SIZE,
                leading=BLOCK_TEXT_SIZE * LINE_HEIGHT_FACTOR,
                alignment=TA_JUSTIFY,
            ),
        }
        for level in range(1, 7):
            size = HEADING_SIZES.get(level, rules.font_size)
            styles[f"heading-{level}"] = ParagraphStyle(
                f"heading-{level}",
                fontName=rules.bold_font,
                fontSize=size,
                leading=size * LINE_HEIGHT_FACTOR,
                alignment=TA_CENTER if level == 1 else TA_LEFT,
            )
        return styles

    def style(self, name: str) -> ParagraphStyle:
        return self._styles[name]

    def style_for(self, block: ContentBlock) -> ParagraphStyle:
        if block.kind is ContentKind.HEADING:
            return self._styles[f"heading-{min(max(block.level, 1), 6)}"]
        if block.kind is ContentKind.BLOCK_QUOTE:
            return self._styles["quote"]
        if block.kind is ContentKind.LIST_ITEM:
            return self._list_style(block.level)
        return self._styles["body-continued" if block.continued else "body"]

    def _list_style(self, level: int) -> ParagraphStyle:
        style = self._list_styles.get(level)
        if style is None:
            style = ParagraphStyle(
                f"list-{level}",
                parent=self._styles["body"],
                firstLineIndent=0,
                leftIndent=LIST_INDENT * (level + 1) + LIST_INDENT,
                bulletIndent=LIST_INDENT * (level + 1) - LIST_INDENT / 2,
                bulletFontName=self.rules.font_name,
                bulletFontSize=self.rules.font_size,
            )
            self._list_styles[level] = style
        return style

    def paragraph(self, block: ContentBlock) -> Paragraph:
        """内容块对应的 reportlab 段落（续段不带编号）"""
        bullet = block.bullet if block.kind is ContentKind.LIST_ITEM and not block.continued else None
        return Paragraph(to_markup(block.text), self.style_for(block), bulletText=bullet)

    def layout(self, block: ContentBlock) -> tuple[Paragraph, float, int]:
        """按内容区宽度折行，返回 (段落, 高度, 行数)"""
        para = self.paragraph(block)
        _, height = para.wrap(self.rules.content_width, MEASURE_HEIGHT_LIMIT)
        return para, height, _line_count(para)

    def wrap_text(self, text: str, style_name: str, width: float) -> tuple[Paragraph, float]:
        para = Paragraph(to_markup(text), self._styles[style_name])
        _, height = para.wrap(width, MEASURE_HEIGHT_LIMIT)
        return para, height

    def string_width(self, text: str, *, bold: bool = False, size: float | None = None) -> float:
        font = self.rules.bold_font if bold else self.rules.font_name
        return pdfmetrics.stringWidth(text, font, size or self.rules.font_size)


def _line_count(para: Paragraph) -> int:
    bl_para = getattr(para, "blPara", None)
    if bl_para is None or not hasattr(bl_para, "lines"):
        return 1
    return max(len(bl_para.lines), 1)
