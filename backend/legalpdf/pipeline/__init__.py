"""
流水线层 - 阶段编排、进度与取消
"""

from .cancellation import CancellationToken
from .executor import ExportPipeline, PlannedDocument, ProgressEvent, build_pipeline
from .stages import EXPORT_STAGES, PipelineStage, StageEnum

__all__ = [
    "CancellationToken",
    "ExportPipeline",
    "PlannedDocument",
    "ProgressEvent",
    "build_pipeline",
    "EXPORT_STAGES",
    "PipelineStage",
    "StageEnum",
]
