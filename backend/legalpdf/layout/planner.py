"""
分页规划器 - 单遍贪心装箱

状态机（每页）：Open(remaining) → 放得下则追加；
放不下且不可拆分 → 换页后放在新页首位；
放不下且可拆分 → 在句子边界拆分，余下部分顺延到下一页。

孤行控制：
- 段落拆分前后各至少保留 min_split_lines 行（由拆分器保证）
- 标题与其后内容的开头几行同页；放不下时标题整体换页

测试要点：
- test_page_count_matches_total_height: 纯文本页数 = ceil(总高/可用页高)
- test_exact_fit: 恰好等于可用页高的块放在一页
- test_overflow: 超高块抛 BlockOverflowError
- test_group_on_single_page: 块组不跨页
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Sequence

from ..interfaces import BlockOverflowError, IPagePlanner, IParagraphSplitter
from ..models import HEIGHT_EPSILON, ContentBlock, Measurement, Page, PagePlan, Placement

logger = logging.getLogger(__name__)


class _OpenPage:
    """规划中的页"""

    def __init__(self, number: int, capacity: float):
        self.number = number
        self.capacity = capacity
        self.placements: list[Placement] = []
        self.used = 0.0

    @property
    def remaining(self) -> float:
        return self.capacity - self.used

    @property
    def is_empty(self) -> bool:
        return not self.placements

    def place(self, block: ContentBlock, measurement: Measurement) -> None:
        self.placements.append(Placement(block=block, measurement=measurement, offset=self.used))
        self.used += measurement.height

    def pop_trailing_headings(self) -> list[tuple[ContentBlock, Measurement]]:
        """移走页尾的标题（页上还有其它内容时才移）"""
        count = 0
        for placement in reversed(self.placements):
            if not placement.block.is_heading:
                break
            count += 1
        if count == 0 or count == len(self.placements):
            return []
        moved = self.placements[-count:]
        del self.placements[-count:]
        self.used = sum(p.height for p in self.placements)
        return [(p.block, p.measurement) for p in moved]

    def freeze(self) -> Page:
        return Page(number=self.number, placements=self.placements, capacity=self.capacity)


class PagePlanner(IPagePlanner):
    """分页规划器"""

    def __init__(
        self,
        usable_height: float,
        splitter: IParagraphSplitter | None = None,
        *,
        document_type: str = "",
    ):
        self.usable_height = usable_height
        self.splitter = splitter
        self.document_type = document_type

    def plan(
        self,
        blocks: Sequence[ContentBlock],
        measurements: Sequence[Measurement],
    ) -> PagePlan:
        if len(blocks) != len(measurements):
            raise ValueError(f"内容块与测量结果数量不一致: {len(blocks)} != {len(measurements)}")

        pages: list[Page] = []
        page = _OpenPage(1, self.usable_height)
        queue = deque(zip(blocks, measurements))

        while queue:
            block, m = queue.popleft()
            if not m.can_split and m.height > self.usable_height + HEIGHT_EPSILON:
                raise BlockOverflowError(
                    f"块高度 {m.height:.1f}pt 超过最大可用页高 {self.usable_height:.1f}pt",
                    document_type=self.document_type or None,
                    block_id=block.block_id,
                    height=m.height,
                    usable_height=self.usable_height,
                )

            # 1. 标题与后续内容同页
            if block.is_heading and not page.is_empty:
                need = self._keep_with_next_height(m, queue)
                if need > page.remaining + HEIGHT_EPSILON and need <= self.usable_height + HEIGHT_EPSILON:
                    logger.debug(f"标题 {block.block_id} 换页（需 {need:.1f}pt, 剩 {page.remaining:.1f}pt）")
                    page = self._close(page, pages)

            # 2. 放得下
            if m.height <= page.remaining + HEIGHT_EPSILON:
                page.place(block, m)
                continue

            # 3. 可拆分段落
            if m.can_split and self.splitter is not None:
                result = self.splitter.split(block, page.remaining, fresh_page=page.is_empty)
                if result is not None:
                    page.place(result.head, result.head_measurement)
                    queue.appendleft((result.tail, result.tail_measurement))
                    page = self._close(page, pages)
                    continue

            if page.is_empty:
                raise BlockOverflowError(
                    f"段落 {block.block_id} 无法在任何页内拆分放置",
                    document_type=self.document_type or None,
                    block_id=block.block_id,
                    height=m.height,
                    usable_height=self.usable_height,
                )

            # 4. 换页（页尾孤立标题随之换页）
            queue.appendleft((block, m))
            for moved in reversed(page.pop_trailing_headings()):
                queue.appendleft(moved)
            page = self._close(page, pages)

        if not page.is_empty or not pages:
            pages.append(page.freeze())

        logger.info(f"分页完成: {len(blocks)} 个块 → {len(pages)} 页")
        return PagePlan(
            document_type=self.document_type,
            usable_height=self.usable_height,
            pages=pages,
        )

    @staticmethod
    def _keep_with_next_height(heading: Measurement, queue: deque) -> float:
        """标题链 + 下一个非标题块的开头高度"""
        total = heading.height
        for block, m in queue:
            if block.is_heading:
                total += m.height
                continue
            total += m.lead_height if m.can_split else m.height
            break
        return total

    @staticmethod
    def _close(page: _OpenPage, pages: list[Page]) -> _OpenPage:
        pages.append(page.freeze())
        logger.debug(f"第{page.number}页: {len(page.placements)} 个块, 已用 {page.used:.1f}pt")
        return _OpenPage(page.number + 1, page.capacity)
