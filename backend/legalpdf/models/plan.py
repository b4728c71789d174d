"""
分页计划模型 - 规划完成后不可变，渲染器只读一次
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .content import ContentBlock, Measurement

# 浮点比较容差（pt）
HEIGHT_EPSILON = 1e-6


class Placement(BaseModel):
    """内容块在页内的位置"""
    block: ContentBlock
    measurement: Measurement
    offset: float  # 距内容区顶部

    model_config = {"frozen": True}

    @property
    def block_id(self) -> str:
        return self.block.block_id

    @property
    def height(self) -> float:
        return self.measurement.height

    def member_offsets(self) -> dict[str, float]:
        """块组各成员距内容区顶部的偏移"""
        geometry = self.measurement.geometry
        if geometry is None:
            return {}
        return {col.member_id: self.offset + col.y for col in geometry.columns}


class Page(BaseModel):
    """一页"""
    number: int
    placements: list[Placement] = Field(default_factory=list)
    capacity: float

    model_config = {"frozen": True}

    @property
    def used_height(self) -> float:
        return sum(p.height for p in self.placements)

    @property
    def remaining_height(self) -> float:
        return self.capacity - self.used_height

    def block_ids(self) -> list[str]:
        return [p.block_id for p in self.placements]


class PagePlan(BaseModel):
    """分页计划"""
    document_type: str = ""
    usable_height: float
    pages: list[Page] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def placements(self) -> list[tuple[int, Placement]]:
        return [(page.number, p) for page in self.pages for p in page.placements]

    def page_of(self, block_id: str) -> int | None:
        for page_no, placement in self.placements():
            if placement.block_id == block_id:
                return page_no
        return None

    def group_pages(self) -> dict[str, list[int]]:
        """块组ID → 出现的页码列表（正确的计划中每组恰好一页）"""
        result: dict[str, list[int]] = {}
        for page_no, placement in self.placements():
            group = placement.block.group
            if group is not None:
                result.setdefault(group.group_id, []).append(page_no)
        return result

    def violations(self) -> list[str]:
        """检查分页不变量，返回违规描述"""
        problems = []
        for page in self.pages:
            if page.used_height > self.usable_height + HEIGHT_EPSILON:
                problems.append(
                    f"第{page.number}页超高: {page.used_height:.2f} > {self.usable_height:.2f}"
                )
        for group_id, pages in self.group_pages().items():
            if len(pages) != 1:
                problems.append(f"块组 {group_id} 出现在多页: {pages}")
        numbers = [page.number for page in self.pages]
        if numbers != list(range(1, len(numbers) + 1)):
            problems.append(f"页码不连续: {numbers}")
        return problems
