"""
导出流水线 - 编排各阶段执行

职责：
1. 按顺序执行：解析标记 → 解析格式 → 构建注册表 → 测量 → 分页 → 渲染 → 完成输出
2. 通过回调同步上报进度（阶段边界 + 逐页）
3. 阶段边界与每页之前检查取消；取消时丢弃已写内容并返回 cancelled 结果
4. 失败时补全错误上下文（阶段/文书类型），丢弃输出后重新抛出

协作者（格式解析器/解析器/注册表构建器）通过构造函数注入，不依赖全局状态。

测试要点：
- test_export_to_buffer: 完整导出
- test_cancel_after_planning: 规划后取消不留文件
- test_error_carries_stage: 错误携带阶段
- test_progress_events: 进度事件
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel

from ..config import LayoutCalibration, RuntimeConfig
from ..interfaces import (
    IBlockRegistryBuilder,
    IFormattingResolver,
    IMarkerParser,
    IOutputSink,
    JobCancelled,
    LegalPdfError,
)
from ..layout import ContentMeasurer, PagePlanner, ReportLabMetrics, usable_page_height
from ..markup import (
    BlockRegistry,
    BlockRegistryBuilder,
    ContentAssembler,
    FormattingOverrides,
    FormattingRuleResolver,
    MarkerParser,
)
from ..models import (
    ContentBlock,
    ExportJob,
    ExportOutcome,
    FormattingRules,
    JobStatus,
    Measurement,
    PagePlan,
)
from ..render import BufferSink, FileSink, PdfRenderer
from .cancellation import CancellationToken
from .stages import EXPORT_STAGES, PipelineStage, StageEnum

logger = logging.getLogger(__name__)


class ProgressEvent(BaseModel):
    """进度事件"""
    job_id: str
    stage: str
    percent: int
    message: str = ""
    completed: bool = False  # 阶段结束事件
    page: int | None = None
    total_pages: int | None = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class PlannedDocument:
    """第一遍产物（预览/调试用）"""
    rules: FormattingRules
    registry: BlockRegistry
    blocks: list[ContentBlock]
    measurements: list[Measurement]
    plan: PagePlan


class ExportPipeline:
    """导出流水线"""

    def __init__(
        self,
        resolver: IFormattingResolver,
        *,
        calibration: LayoutCalibration | None = None,
        parser: IMarkerParser | None = None,
        registry_builder: IBlockRegistryBuilder | None = None,
        assembler: ContentAssembler | None = None,
    ):
        self.resolver = resolver
        self.calibration = calibration or LayoutCalibration()
        self.parser = parser or MarkerParser()
        self.registry_builder = registry_builder or BlockRegistryBuilder()
        self.assembler = assembler or ContentAssembler()

    def export(
        self,
        text: str,
        document_type: str,
        sink: IOutputSink,
        *,
        overrides: FormattingOverrides | None = None,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        title: str | None = None,
        job: ExportJob | None = None,
    ) -> ExportOutcome:
        """执行导出"""
        job = job or ExportJob(job_id=uuid.uuid4().hex, document_type=document_type)
        job.mark_running(StageEnum.PARSE_MARKERS.value)

        context: dict[str, Any] = {
            "text": text,
            "document_type": document_type,
            "overrides": overrides,
            "sink": sink,
            "progress": progress,
            "token": cancel_token,
            "title": title,
        }
        self._update_progress(job, context, message="任务开始")

        try:
            for stage in EXPORT_STAGES:
                self._execute_stage(job, stage, context)

        except JobCancelled as e:
            sink.discard()
            job.mark_cancelled()
            logger.warning(f"[{job.job_id}] 任务已取消 (阶段 {e.stage})")
            self._update_progress(job, context, message="任务已取消")
            return ExportOutcome(
                job_id=job.job_id,
                document_type=document_type,
                status=JobStatus.CANCELLED,
                stage=e.stage,
            )

        except LegalPdfError as e:
            sink.discard()
            logger.error(f"[{job.job_id}] 导出失败: {e}")
            job.mark_failed(str(e))
            self._update_progress(job, context, message=f"任务失败: {e.message}")
            raise

        except Exception as e:
            sink.discard()
            logger.exception(f"导出流水线执行失败: {job.job_id}")
            job.mark_failed(str(e))
            raise

        job.mark_succeeded()
        result = context["result"]
        plan: PagePlan = context["plan"]
        self._update_progress(job, context, message="任务完成")
        return ExportOutcome(
            job_id=job.job_id,
            document_type=context["rules"].document_type,
            status=JobStatus.SUCCEEDED,
            page_count=result.page_count or plan.page_count,
            byte_length=result.byte_length,
            output_path=result.path,
            data=result.data,
        )

    def export_to_file(self, text: str, document_type: str, output_path: str | Path, **kwargs) -> ExportOutcome:
        """导出到文件（临时文件 + 原子改名）"""
        return self.export(text, document_type, FileSink(output_path), **kwargs)

    def export_to_buffer(self, text: str, document_type: str, **kwargs) -> ExportOutcome:
        """导出到内存（结果 data 字段携带PDF字节）"""
        return self.export(text, document_type, BufferSink(), **kwargs)

    def plan(
        self,
        text: str,
        document_type: str,
        overrides: FormattingOverrides | None = None,
    ) -> PlannedDocument:
        """只执行第一遍（解析到分页），不产生任何输出"""
        job = ExportJob(job_id=uuid.uuid4().hex, document_type=document_type)
        context: dict[str, Any] = {
            "text": text,
            "document_type": document_type,
            "overrides": overrides,
        }
        for stage in EXPORT_STAGES:
            if stage.name == StageEnum.RENDER_PAGES.value:
                break
            self._execute_stage(job, stage, context)
        return PlannedDocument(
            rules=context["rules"],
            registry=context["registry"],
            blocks=context["blocks"],
            measurements=context["measurements"],
            plan=context["plan"],
        )

    # ------------------------------------------------------------------
    # 阶段
    # ------------------------------------------------------------------

    def _execute_stage(self, job: ExportJob, stage: PipelineStage, context: dict) -> None:
        """执行单个阶段"""
        token: CancellationToken | None = context.get("token")
        if token is not None:
            token.raise_if_cancelled(stage.name)

        job.progress.stage = stage.name
        logger.info(f"[{job.job_id}] 开始阶段: {stage.name}")
        self._update_progress(job, context, percent=stage.progress_start, message=f"开始阶段: {stage.name}")

        try:
            if stage.name == StageEnum.PARSE_MARKERS.value:
                self._stage_parse(context)

            elif stage.name == StageEnum.RESOLVE_FORMATTING.value:
                self._stage_resolve(context)

            elif stage.name == StageEnum.BUILD_REGISTRY.value:
                self._stage_registry(context)

            elif stage.name == StageEnum.MEASURE_CONTENT.value:
                self._stage_measure(context)

            elif stage.name == StageEnum.PLAN_PAGES.value:
                self._stage_plan(context)

            elif stage.name == StageEnum.RENDER_PAGES.value:
                self._stage_render(job, stage, context)

            elif stage.name == StageEnum.FINALIZE_OUTPUT.value:
                context["result"] = context["sink"].finalize()

        except LegalPdfError as e:
            rules = context.get("rules")
            e.attach(
                document_type=rules.document_type if rules else context["document_type"],
                stage=stage.name,
            )
            raise

        self._update_progress(
            job,
            context,
            percent=stage.progress_end,
            message=f"完成阶段: {stage.name}",
            completed=True,
        )

    def _stage_parse(self, context: dict) -> None:
        """解析标记"""
        context["parsed"] = self.parser.parse(context["text"])

    def _stage_resolve(self, context: dict) -> None:
        """解析格式规则与块定义"""
        document_type = context["document_type"]
        context["rules"] = self.resolver.resolve(document_type, context.get("overrides"))
        context["definitions"] = self.resolver.block_definitions(document_type)

    def _stage_registry(self, context: dict) -> None:
        """构建签名块注册表"""
        context["registry"] = self.registry_builder.build(
            context["parsed"].markers,
            context["definitions"],
            document_type=context["rules"].document_type,
        )

    def _stage_measure(self, context: dict) -> None:
        """组装内容块并测量（第一遍）"""
        rules: FormattingRules = context["rules"]
        blocks = self.assembler.assemble(context["parsed"].text, context["registry"])
        metrics = ReportLabMetrics(rules)
        measurer = ContentMeasurer(
            rules,
            usable_page_height(rules, self.calibration.safety_buffer_pct),
            metrics=metrics,
            safety_factor=self.calibration.paragraph_safety_factor,
            gutter=self.calibration.column_gutter,
            min_split_lines=self.calibration.min_split_lines,
        )
        context["blocks"] = blocks
        context["metrics"] = metrics
        context["measurer"] = measurer
        context["measurements"] = measurer.measure(blocks)

    def _stage_plan(self, context: dict) -> None:
        """分页规划"""
        measurer: ContentMeasurer = context["measurer"]
        planner = PagePlanner(
            measurer.usable_height,
            measurer,
            document_type=context["rules"].document_type,
        )
        context["plan"] = planner.plan(context["blocks"], context["measurements"])

    def _stage_render(self, job: ExportJob, stage: PipelineStage, context: dict) -> None:
        """逐页渲染（第二遍）"""
        span = stage.progress_end - stage.progress_start

        def _on_page(page_no: int, total: int) -> None:
            self._update_progress(
                job,
                context,
                percent=stage.progress_start + span * (page_no - 1) // max(total, 1),
                message=f"正在渲染第 {page_no}/{total} 页",
                page=page_no,
                total_pages=total,
            )

        renderer = PdfRenderer(
            context["rules"],
            context["metrics"],
            title=context.get("title"),
            cancel_token=context.get("token"),
            on_page=_on_page,
        )
        renderer.render(context["plan"], context["sink"])

    def _update_progress(
        self,
        job: ExportJob,
        context: dict,
        *,
        percent: int | None = None,
        message: str = "",
        completed: bool = False,
        page: int | None = None,
        total_pages: int | None = None,
    ) -> None:
        """更新任务进度并回调（同步，在流水线线程执行）"""
        if percent is not None:
            job.progress.percent = percent
        job.progress.message = message
        job.progress.page = page
        job.progress.total_pages = total_pages

        callback: ProgressCallback | None = context.get("progress")
        if callback is None:
            return
        callback(ProgressEvent(
            job_id=job.job_id,
            stage=job.progress.stage,
            percent=job.progress.percent,
            message=message,
            completed=completed,
            page=page,
            total_pages=total_pages,
        ))


def build_pipeline(config: RuntimeConfig | None = None) -> ExportPipeline:
    """按运行期配置装配流水线"""
    config = config or RuntimeConfig()
    resolver = FormattingRuleResolver(config.load_catalog())
    return ExportPipeline(resolver, calibration=config.layout)
