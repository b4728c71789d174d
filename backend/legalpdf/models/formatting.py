"""
格式规则模型 - 单个导出任务的页面/字体/行距/页码设置

解析完成后不可变（frozen），可在并发任务间只读共享。
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

# 渲染器行高系数（reportlab 惯例：leading = 字号 × 1.2）
LINE_HEIGHT_FACTOR = 1.2

# 单一衬线字体族：常规/粗体/斜体
FONT_FACES = {
    "Times-Roman": ("Times-Bold", "Times-Italic"),
}


class LineSpacing(str, Enum):
    """行距模式"""
    SINGLE = "single"
    ONE_HALF = "one-half"
    DOUBLE = "double"

    @property
    def multiplier(self) -> float:
        return _SPACING_MULTIPLIERS[self]


_SPACING_MULTIPLIERS = {
    LineSpacing.SINGLE: 1.0,
    LineSpacing.ONE_HALF: 1.5,
    LineSpacing.DOUBLE: 2.0,
}


class PageNumberPosition(str, Enum):
    """页码位置"""
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM_LEFT = "bottom-left"


class PageNumberStyle(str, Enum):
    """页码样式"""
    NUMERIC = "numeric"
    ROMAN = "roman"
    ALPHA = "alpha"


class Margins(BaseModel):
    """页边距（单位：pt）"""
    top: float = Field(..., ge=0)
    bottom: float = Field(..., ge=0)
    left: float = Field(..., ge=0)
    right: float = Field(..., ge=0)

    model_config = {"frozen": True}


class PageNumberFormat(BaseModel):
    """页码格式"""
    enabled: bool = True
    position: PageNumberPosition = PageNumberPosition.BOTTOM_CENTER
    style: PageNumberStyle = PageNumberStyle.NUMERIC
    prefix: str = ""
    suffix: str = ""  # 可含 {total}
    font_size: float = Field(10, gt=0)

    model_config = {"frozen": True}

    def label(self, page_no: int, total: int) -> str:
        """生成页码文本，如 "Page 3 of 7" """
        if self.style is PageNumberStyle.ROMAN:
            number = to_roman(page_no)
        elif self.style is PageNumberStyle.ALPHA:
            number = to_alpha(page_no)
        else:
            number = str(page_no)
        return f"{self.prefix}{number}{self.suffix.format(total=total)}"


class FormattingRules(BaseModel):
    """格式规则（一次任务一个实例）"""
    document_type: str
    page_width: float = Field(..., gt=0)
    page_height: float = Field(..., gt=0)
    margins: Margins
    font_name: str = "Times-Roman"
    font_size: float = Field(12, gt=0)
    line_spacing: LineSpacing
    page_numbers: PageNumberFormat = Field(default_factory=PageNumberFormat)
    paragraph_indent: float = Field(0, ge=0)
    paragraph_spacing: float = Field(12, ge=0)
    block_quote_indent: float = Field(36, ge=0)

    model_config = {"frozen": True}

    @property
    def content_width(self) -> float:
        return self.page_width - self.margins.left - self.margins.right

    @property
    def content_height(self) -> float:
        return self.page_height - self.margins.top - self.margins.bottom

    @property
    def line_height(self) -> float:
        """正文行高 = 字号 × 行距倍数 × 渲染器行高系数"""
        return self.font_size * self.line_spacing.multiplier * LINE_HEIGHT_FACTOR

    @property
    def page_number_position(self) -> PageNumberPosition | None:
        return self.page_numbers.position if self.page_numbers.enabled else None

    @property
    def bold_font(self) -> str:
        return FONT_FACES.get(self.font_name, FONT_FACES["Times-Roman"])[0]

    @property
    def italic_font(self) -> str:
        return FONT_FACES.get(self.font_name, FONT_FACES["Times-Roman"])[1]


_ROMAN_NUMERALS = [
    (1000, "m"), (900, "cm"), (500, "d"), (400, "cd"),
    (100, "c"), (90, "xc"), (50, "l"), (40, "xl"),
    (10, "x"), (9, "ix"), (5, "v"), (4, "iv"), (1, "i"),
]


def to_roman(n: int) -> str:
    """小写罗马数字（前言页惯例）"""
    result = []
    for value, numeral in _ROMAN_NUMERALS:
        while n >= value:
            result.append(numeral)
            n -= value
    return "".join(result)


def to_alpha(n: int) -> str:
    """字母编号：1→A, 26→Z, 27→AA"""
    result = ""
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(ord("A") + rem) + result
    return result
