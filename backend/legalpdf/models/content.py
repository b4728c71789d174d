"""
内容块与测量模型

- ContentBlock: 交给测量器的原子单元（段落/标题/列表项/引用/分隔线/块组）
- Measurement: 第一遍测量结果，块组附带完整几何（渲染器只定位不测量）
- SplitResult: 段落拆分结果
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .blocks import BlockGroup


class ContentKind(str, Enum):
    """内容块类型"""
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST_ITEM = "list-item"
    BLOCK_QUOTE = "block-quote"
    RULE = "rule"
    BLOCK_GROUP = "block-group"


_SPLITTABLE = {ContentKind.PARAGRAPH, ContentKind.LIST_ITEM, ContentKind.BLOCK_QUOTE}


class ContentBlock(BaseModel):
    """内容块"""
    block_id: str
    kind: ContentKind
    text: str = ""
    level: int = 0  # 标题级别 / 列表缩进层级
    bullet: str = ""  # 列表项编号或符号
    group: BlockGroup | None = None
    part: int = 0  # 拆分片段序号
    continued: bool = False  # 是否为拆分后的续段

    model_config = {"frozen": True}

    @property
    def can_split(self) -> bool:
        return self.kind in _SPLITTABLE

    @property
    def is_heading(self) -> bool:
        return self.kind is ContentKind.HEADING

    @property
    def root_id(self) -> str:
        return self.block_id.split("#", 1)[0]

    def fragment(self, text: str, part: int) -> ContentBlock:
        """生成拆分片段（part > 0 为续段）"""
        block_id = self.root_id if part == 0 else f"{self.root_id}#{part}"
        return self.model_copy(update={
            "block_id": block_id,
            "text": text,
            "part": part,
            "continued": self.continued or part > self.part,
        })


class RowKind(str, Enum):
    """块组内的行类型"""
    LABEL = "label"
    SIGNATURE = "signature"
    FIELD = "field"
    TEXT = "text"


class GeometryRow(BaseModel):
    """一行（y 相对所在列顶部）"""
    kind: RowKind
    text: str = ""
    y: float
    height: float
    font_size: float = 10
    bold: bool = False


class ColumnGeometry(BaseModel):
    """一列（一个签署方），x/y 相对块组左上角"""
    member_id: str
    x: float
    y: float
    width: float
    rows: list[GeometryRow] = Field(default_factory=list)

    @property
    def height(self) -> float:
        return sum(r.height for r in self.rows)


class GroupGeometry(BaseModel):
    """块组几何"""
    columns: list[ColumnGeometry]
    divider_y: float | None = None
    height: float


class Measurement(BaseModel):
    """测量结果"""
    block_id: str
    height: float = Field(..., gt=0)  # 计入段距与安全系数后的规划高度
    can_split: bool
    content_height: float = 0  # 文本实际排版高度（渲染定位用）
    line_count: int = 0
    lead_height: float = 0  # 与前置标题同页所需的最小高度
    geometry: GroupGeometry | None = None


class SplitResult(BaseModel):
    """段落拆分结果"""
    head: ContentBlock
    head_measurement: Measurement
    tail: ContentBlock
    tail_measurement: Measurement
