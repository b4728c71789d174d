"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest

from legalpdf.interfaces import BlockOverflowError, LegalPdfError, MarkerParseError
from legalpdf.models import (
    ContentBlock,
    ContentKind,
    ExportJob,
    FieldDefinition,
    JobStatus,
    LineSpacing,
    Measurement,
    Page,
    PagePlan,
    Placement,
)


class TestContentBlock:
    """内容块测试"""

    def test_fragment_ids(self):
        """拆分片段ID：首段沿用原ID，续段带序号"""
        block = ContentBlock(block_id="paragraph-3", kind=ContentKind.PARAGRAPH, text="abc")

        head = block.fragment("a", 0)
        tail = block.fragment("bc", 1)
        tail2 = tail.fragment("c", 2)

        assert head.block_id == "paragraph-3"
        assert not head.continued
        assert tail.block_id == "paragraph-3#1"
        assert tail.continued
        assert tail2.block_id == "paragraph-3#2"
        assert tail2.root_id == "paragraph-3"

    def test_can_split(self):
        assert ContentBlock(block_id="a", kind=ContentKind.LIST_ITEM).can_split
        assert not ContentBlock(block_id="b", kind=ContentKind.HEADING).can_split
        assert not ContentBlock(block_id="c", kind=ContentKind.RULE).can_split

    def test_field_display_label(self):
        assert FieldDefinition(name="registration_number").display_label == "Registration Number"
        assert FieldDefinition(name="name", label="Signatory Name").display_label == "Signatory Name"


class TestLineSpacing:
    """行距"""

    @pytest.mark.parametrize("spacing,multiplier", [
        (LineSpacing.SINGLE, 1.0),
        (LineSpacing.ONE_HALF, 1.5),
        (LineSpacing.DOUBLE, 2.0),
    ])
    def test_multiplier(self, spacing, multiplier):
        assert spacing.multiplier == multiplier


class TestPagePlan:
    """分页计划校验"""

    @staticmethod
    def _placement(block_id: str, height: float, offset: float = 0) -> Placement:
        return Placement(
            block=ContentBlock(block_id=block_id, kind=ContentKind.PARAGRAPH),
            measurement=Measurement(block_id=block_id, height=height, can_split=False),
            offset=offset,
        )

    def test_valid_plan(self):
        plan = PagePlan(usable_height=100, pages=[
            Page(number=1, capacity=100, placements=[self._placement("a", 60), self._placement("b", 40, 60)]),
            Page(number=2, capacity=100, placements=[self._placement("c", 10)]),
        ])
        assert plan.violations() == []
        assert plan.page_of("c") == 2
        assert plan.page_of("missing") is None

    def test_over_height_detected(self):
        plan = PagePlan(usable_height=100, pages=[
            Page(number=1, capacity=100, placements=[self._placement("a", 80), self._placement("b", 30, 80)]),
        ])
        assert len(plan.violations()) == 1

    def test_page_numbering_detected(self):
        plan = PagePlan(usable_height=100, pages=[
            Page(number=1, capacity=100),
            Page(number=3, capacity=100),
        ])
        assert len(plan.violations()) == 1


class TestExportJob:
    """任务模型测试"""

    def test_job_lifecycle(self):
        """任务状态流转"""
        job = ExportJob(job_id="job-1", document_type="nda")
        assert job.status is JobStatus.QUEUED

        job.mark_running()
        assert job.status is JobStatus.RUNNING
        assert job.started_at is not None

        job.mark_succeeded()
        assert job.status is JobStatus.SUCCEEDED
        assert job.progress.percent == 100
        assert job.finished_at is not None

    def test_job_failed(self):
        job = ExportJob(job_id="job-2", document_type="nda")
        job.mark_failed("boom")
        assert job.status is JobStatus.FAILED
        assert job.errors == ["boom"]

    def test_job_has_no_warning_flags(self):
        """失败即中断，任务不携带告警标记"""
        job = ExportJob(job_id="job-3", document_type="nda")
        assert "flags" not in ExportJob.model_fields
        assert not hasattr(job, "add_flag")


class TestErrors:
    """异常上下文"""

    def test_attach_keeps_existing(self):
        error = LegalPdfError("失败", document_type="nda")
        error.attach(document_type="other", stage="PLAN_PAGES")

        assert error.document_type == "nda"
        assert error.stage == "PLAN_PAGES"
        assert str(error) == "失败 (document_type=nda, stage=PLAN_PAGES)"

    def test_parse_error_context(self):
        error = MarkerParseError("坏标记", substring="[X_BLOCK", offset=5, line=2)
        assert error.context() == {"offset": "5", "line": "2"}
        assert error.exit_code == 10

    def test_overflow_fields(self):
        error = BlockOverflowError("超高", block_id="execution", height=700, usable_height=600)
        assert error.height == 700
        assert error.usable_height == 600
        assert "block_id=execution" in str(error)
