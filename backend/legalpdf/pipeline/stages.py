"""
流水线阶段定义

职责：
1. 定义各阶段的名称与进度区间
2. 阶段严格串行：第二遍渲染依赖第一遍测量与分页全部完成

测试要点：
- test_stage_order: 阶段顺序
- test_stage_progress_ranges: 进度区间连续
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """流水线阶段枚举"""
    PARSE_MARKERS = "PARSE_MARKERS"
    RESOLVE_FORMATTING = "RESOLVE_FORMATTING"
    BUILD_REGISTRY = "BUILD_REGISTRY"
    MEASURE_CONTENT = "MEASURE_CONTENT"
    PLAN_PAGES = "PLAN_PAGES"
    RENDER_PAGES = "RENDER_PAGES"
    FINALIZE_OUTPUT = "FINALIZE_OUTPUT"


@dataclass(frozen=True)
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# 导出流水线各阶段配置
EXPORT_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.PARSE_MARKERS.value, 0, 5),
    PipelineStage(StageEnum.RESOLVE_FORMATTING.value, 5, 10),
    PipelineStage(StageEnum.BUILD_REGISTRY.value, 10, 15),
    PipelineStage(StageEnum.MEASURE_CONTENT.value, 15, 40),
    PipelineStage(StageEnum.PLAN_PAGES.value, 40, 50),
    PipelineStage(StageEnum.RENDER_PAGES.value, 50, 95),
    PipelineStage(StageEnum.FINALIZE_OUTPUT.value, 95, 100),
]
