"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- FormattingRules: 单次任务的格式规则
- ParsedMarker / BlockDefinition / BlockGroup: 标记与签名块
- ContentBlock / Measurement: 测量单元与测量结果
- PagePlan: 分页计划
- ExportJob: 任务状态与生命周期
"""

from .blocks import (
    PLACEHOLDER_RE,
    BlockDefinition,
    BlockGroup,
    FieldDefinition,
    FlatBlockDefinition,
    LayoutDirective,
    LayoutMode,
    MarkerType,
    ParsedMarker,
    ParseResult,
    PartyDefinition,
    ResolvedBlock,
    StandardBlockDefinition,
)
from .content import (
    ColumnGeometry,
    ContentBlock,
    ContentKind,
    GeometryRow,
    GroupGeometry,
    Measurement,
    RowKind,
    SplitResult,
)
from .formatting import (
    LINE_HEIGHT_FACTOR,
    FormattingRules,
    LineSpacing,
    Margins,
    PageNumberFormat,
    PageNumberPosition,
    PageNumberStyle,
)
from .job import ExportJob, ExportOutcome, JobProgress, JobStatus, SinkResult
from .plan import HEIGHT_EPSILON, Page, PagePlan, Placement

__all__ = [
    "PLACEHOLDER_RE",
    "BlockDefinition",
    "BlockGroup",
    "FieldDefinition",
    "FlatBlockDefinition",
    "LayoutDirective",
    "LayoutMode",
    "MarkerType",
    "ParsedMarker",
    "ParseResult",
    "PartyDefinition",
    "ResolvedBlock",
    "StandardBlockDefinition",
    "ColumnGeometry",
    "ContentBlock",
    "ContentKind",
    "GeometryRow",
    "GroupGeometry",
    "Measurement",
    "RowKind",
    "SplitResult",
    "LINE_HEIGHT_FACTOR",
    "FormattingRules",
    "LineSpacing",
    "Margins",
    "PageNumberFormat",
    "PageNumberPosition",
    "PageNumberStyle",
    "ExportJob",
    "ExportOutcome",
    "JobProgress",
    "JobStatus",
    "SinkResult",
    "HEIGHT_EPSILON",
    "Page",
    "PagePlan",
    "Placement",
]
