"""
分页规划器单元测试（固定测量值，不依赖 reportlab）

每个模块完成后必须运行：pytest tests/unit/test_planner.py -v
"""

import math

import pytest

from legalpdf.interfaces import BlockOverflowError, IParagraphSplitter
from legalpdf.layout import PagePlanner
from legalpdf.models import (
    BlockGroup,
    ColumnGeometry,
    ContentBlock,
    ContentKind,
    GroupGeometry,
    LayoutMode,
    MarkerType,
    Measurement,
    ResolvedBlock,
    SplitResult,
)


def _text(block_id: str, height: float, *, can_split: bool = False, lead: float | None = None):
    block = ContentBlock(block_id=block_id, kind=ContentKind.PARAGRAPH, text=block_id)
    m = Measurement(
        block_id=block_id,
        height=height,
        can_split=can_split,
        content_height=height,
        lead_height=lead if lead is not None else height,
    )
    return block, m


def _heading(block_id: str, height: float):
    block = ContentBlock(block_id=block_id, kind=ContentKind.HEADING, text=block_id, level=2)
    return block, Measurement(block_id=block_id, height=height, can_split=False, lead_height=height)


def _group(height: float):
    members = [
        ResolvedBlock(id=f"{role}-signature", definition_id=f"{role}-signature",
                      type=MarkerType.SIGNATURE, party_role=role, party_label=role.upper(),
                      marker_index=i)
        for i, role in enumerate(["assignor", "assignee"])
    ]
    group = BlockGroup(group_id="execution", mode=LayoutMode.SIDE_BY_SIDE, members=members)
    block = ContentBlock(block_id="execution", kind=ContentKind.BLOCK_GROUP, group=group)
    geometry = GroupGeometry(
        columns=[
            ColumnGeometry(member_id="assignor-signature", x=0, y=24, width=216),
            ColumnGeometry(member_id="assignee-signature", x=252, y=24, width=216),
        ],
        divider_y=12,
        height=height,
    )
    m = Measurement(block_id="execution", height=height, can_split=False,
                    content_height=height, lead_height=height, geometry=geometry)
    return block, m


def _plan(items, usable: float, splitter=None):
    blocks = [b for b, _ in items]
    measurements = [m for _, m in items]
    return PagePlanner(usable, splitter, document_type="test").plan(blocks, measurements)


class _FillSplitter(IParagraphSplitter):
    """按剩余高度切出前半段"""

    def __init__(self, heights: dict[str, float], minimum: float = 50):
        self.heights = heights
        self.minimum = minimum

    def split(self, block, available_height, *, fresh_page=False):
        total = self.heights[block.block_id]
        if available_height < self.minimum or total - available_height < self.minimum:
            return None
        head = block.fragment(block.text, block.part)
        tail = block.fragment(block.text, block.part + 1)
        tail_height = total - available_height
        self.heights[tail.block_id] = tail_height
        return SplitResult(
            head=head,
            head_measurement=Measurement(block_id=head.block_id, height=available_height, can_split=True),
            tail=tail,
            tail_measurement=Measurement(block_id=tail.block_id, height=tail_height, can_split=True),
        )


class TestGreedyPacking:
    """贪心装箱"""

    @pytest.mark.parametrize("count,per_page", [
        (1, 3), (3, 3), (4, 3), (10, 3), (9, 1), (25, 4),
    ])
    def test_page_count_matches_total_height(self, count, per_page):
        """等高不可拆分块：页数 = ceil(n/k)"""
        items = [_text(f"p{i}", 100) for i in range(count)]
        plan = _plan(items, usable=100 * per_page)

        assert plan.page_count == math.ceil(count / per_page)
        assert plan.violations() == []

    def test_exact_fit(self):
        """恰好填满可用页高"""
        plan = _plan([_text("a", 100), _text("b", 150), _text("c", 50)], usable=300)

        assert plan.page_count == 1
        assert plan.pages[0].remaining_height == pytest.approx(0)

    def test_offsets_accumulate(self):
        plan = _plan([_text("a", 100), _text("b", 150)], usable=300)
        assert [p.offset for p in plan.pages[0].placements] == [0, 100]

    def test_overflow(self):
        """不可拆分块超过可用页高"""
        with pytest.raises(BlockOverflowError) as exc:
            _plan([_text("a", 100), _text("huge", 301)], usable=300)
        assert exc.value.block_id == "huge"
        assert exc.value.document_type == "test"

    def test_unsplittable_paragraph_on_empty_page(self):
        """可拆分但找不到拆分点，且已在空页"""
        with pytest.raises(BlockOverflowError):
            _plan([_text("long", 400, can_split=True)], usable=300)

    def test_empty_document(self):
        """空文档仍输出一页"""
        plan = _plan([], usable=300)
        assert plan.page_count == 1
        assert plan.pages[0].placements == []

    def test_length_mismatch(self):
        block, _ = _text("a", 10)
        with pytest.raises(ValueError):
            PagePlanner(300).plan([block], [])


class TestGroups:
    """块组"""

    def test_group_on_single_page(self):
        """放不下的块组整体移到下一页顶部"""
        plan = _plan([_text("body", 250), _group(100)], usable=300)

        assert plan.page_count == 2
        assert plan.page_of("execution") == 2
        placement = plan.pages[1].placements[0]
        assert placement.offset == 0
        assert plan.group_pages() == {"execution": [2]}
        assert plan.violations() == []

    def test_member_offsets_equal(self):
        """并排成员纵向偏移相同"""
        plan = _plan([_text("body", 120), _group(100)], usable=300)

        placement = plan.pages[0].placements[1]
        offsets = placement.member_offsets()
        assert offsets == {"assignor-signature": 144, "assignee-signature": 144}


class TestKeepWithNext:
    """标题与后续内容同页"""

    def test_heading_moves_with_next_block(self):
        plan = _plan(
            [_text("p1", 230), _heading("h1", 30), _text("p2", 60)],
            usable=300,
        )

        assert plan.pages[0].block_ids() == ["p1"]
        assert plan.pages[1].block_ids() == ["h1", "p2"]

    def test_heading_stays_when_lead_fits(self):
        """后续段落开头几行放得下时标题不换页"""
        splitter = _FillSplitter({"p2": 250})
        plan = _plan(
            [_text("p1", 150), _heading("h1", 30), _text("p2", 250, can_split=True, lead=60)],
            usable=300,
            splitter=splitter,
        )

        assert plan.pages[0].block_ids() == ["p1", "h1", "p2"]
        assert plan.pages[1].block_ids() == ["p2#1"]

    def test_trailing_heading_moved_when_split_fails(self):
        """后续段落拆不开时，页尾标题随之换页"""
        plan = _plan(
            [_text("p1", 200), _heading("h1", 20), _text("p2", 250, can_split=True, lead=40)],
            usable=300,
        )

        assert plan.pages[0].block_ids() == ["p1"]
        assert plan.pages[1].block_ids() == ["h1", "p2"]


class TestSplitting:
    """段落拆分顺延"""

    def test_tail_carried_forward(self):
        """前半段留在本页，余下部分从下一页顶部开始"""
        splitter = _FillSplitter({"p2": 250})
        plan = _plan([_text("p1", 200), _text("p2", 250, can_split=True)],
                     usable=300, splitter=splitter)

        assert plan.pages[0].block_ids() == ["p1", "p2"]
        assert plan.pages[0].used_height == pytest.approx(300)
        assert plan.pages[1].block_ids() == ["p2#1"]
        assert plan.pages[1].placements[0].block.continued
        assert plan.violations() == []

    def test_multi_page_paragraph(self):
        """超过一页的段落跨多页拆分"""
        splitter = _FillSplitter({"p1": 700})
        plan = _plan([_text("p1", 700, can_split=True)], usable=300, splitter=splitter)

        assert [p.block_ids() for p in plan.pages] == [["p1"], ["p1#1"], ["p1#2"]]
        assert plan.pages[2].used_height == pytest.approx(100)

    def test_split_refused_moves_block(self):
        """剩余空间太小，整段换页"""
        splitter = _FillSplitter({"p2": 120})
        plan = _plan([_text("p1", 260), _text("p2", 120, can_split=True)],
                     usable=300, splitter=splitter)

        assert plan.pages[0].block_ids() == ["p1"]
        assert plan.pages[1].block_ids() == ["p2"]
