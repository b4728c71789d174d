"""
签名块模型 - 标记、块定义（带标签的变体）、解析后的块与块组

块定义有两种形状：
- standard: 带 party（角色/标签/字段）与 layout 指令
- flat: 简化形状（标签 + 位置 + 字段列表），见于审查意见答复类文书

两者以 kind 字段区分，在注册表构建时统一归一化为 ResolvedBlock。
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

# 标记被切除后留在文本中的占位符：U+FFFC 包裹的标记序号
PLACEHOLDER_CHAR = "\ufffc"
PLACEHOLDER_RE = re.compile(f"{PLACEHOLDER_CHAR}(\\d+){PLACEHOLDER_CHAR}")


class MarkerType(str, Enum):
    """标记类型"""
    SIGNATURE = "signature"
    INITIAL = "initial"
    NOTARY = "notary"

    @property
    def keyword(self) -> str:
        return _KEYWORDS[self]

    @classmethod
    def from_keyword(cls, keyword: str) -> MarkerType | None:
        for marker_type, kw in _KEYWORDS.items():
            if kw == keyword:
                return marker_type
        return None


_KEYWORDS = {
    MarkerType.SIGNATURE: "SIGNATURE_BLOCK",
    MarkerType.INITIAL: "INITIALS_BLOCK",
    MarkerType.NOTARY: "NOTARY_BLOCK",
}


class ParsedMarker(BaseModel):
    """解析出的标记（瞬态，仅供注册表构建使用）"""
    type: MarkerType
    id: str
    offset: int  # 原文字符偏移
    end: int
    line: int = 1
    index: int = 0  # 文档内出现顺序

    @property
    def placeholder(self) -> str:
        return f"{PLACEHOLDER_CHAR}{self.index}{PLACEHOLDER_CHAR}"

    @property
    def source(self) -> str:
        return f"[{self.type.keyword}:{self.id}]"


class ParseResult(BaseModel):
    """标记解析结果"""
    markers: list[ParsedMarker] = Field(default_factory=list)
    text: str = ""  # 标记已替换为占位符

    def marker_ids(self) -> list[str]:
        return [m.id for m in self.markers]


# ============================================================================
# 块定义（文书类型配置）
# ============================================================================

class FieldDefinition(BaseModel):
    """签名块字段"""
    name: str
    label: str = ""
    required: bool = False

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


class LayoutMode(str, Enum):
    """排列方式"""
    STANDALONE = "standalone"
    SIDE_BY_SIDE = "side-by-side"


class LayoutDirective(BaseModel):
    """布局指令"""
    mode: LayoutMode = LayoutMode.STANDALONE
    group_id: str | None = Field(default=None, alias="groupId")
    # 块组总是整体放置，不接受 false
    keep_together: Literal[True] = Field(default=True, alias="keepTogether")
    repeatable: bool = False

    model_config = {"populate_by_name": True, "frozen": True}


class PartyDefinition(BaseModel):
    """签署方"""
    role: str
    label: str
    fields: list[FieldDefinition] = Field(default_factory=list)


class StandardBlockDefinition(BaseModel):
    """标准块定义"""
    kind: Literal["standard"]
    id: str
    type: MarkerType
    required: bool = True
    party: PartyDefinition
    layout: LayoutDirective = Field(default_factory=LayoutDirective)


class FlatBlockDefinition(BaseModel):
    """扁平块定义（无 party/layout 嵌套）"""
    kind: Literal["flat"]
    id: str
    type: MarkerType
    required: bool = True
    label: str
    position: str = "document-end"
    fields: list[FieldDefinition] = Field(default_factory=list)


BlockDefinition = Annotated[
    Union[StandardBlockDefinition, FlatBlockDefinition],
    Field(discriminator="kind"),
]


# ============================================================================
# 注册表产物
# ============================================================================

class ResolvedBlock(BaseModel):
    """归一化后的具体块（一个标记对应一个）"""
    id: str
    definition_id: str
    type: MarkerType
    party_role: str
    party_label: str
    fields: list[FieldDefinition] = Field(default_factory=list)
    layout: LayoutDirective = Field(default_factory=LayoutDirective)
    required: bool = True
    instance: int | None = None  # 可重复块的实例序号（从1开始）
    marker_index: int = 0


class BlockGroup(BaseModel):
    """块组：作为一个原子单元测量和放置"""
    group_id: str
    mode: LayoutMode = LayoutMode.STANDALONE
    keep_together: bool = True
    members: list[ResolvedBlock]

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    @property
    def is_side_by_side(self) -> bool:
        return self.mode is LayoutMode.SIDE_BY_SIDE and len(self.members) > 1

    @property
    def anchor_index(self) -> int:
        """组在文档中的锚点（首个成员标记的序号）"""
        return min(m.marker_index for m in self.members)
