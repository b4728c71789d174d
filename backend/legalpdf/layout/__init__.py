"""
排版层 - 第一遍测量与分页规划

- metrics: reportlab 样式与测量原语
- measurer: 内容块测量与段落拆分
- planner: 贪心分页
"""

from .measurer import ContentMeasurer, sentence_breaks
from .metrics import ReportLabMetrics, to_markup, usable_page_height
from .planner import PagePlanner

__all__ = [
    "ContentMeasurer",
    "sentence_breaks",
    "ReportLabMetrics",
    "to_markup",
    "usable_page_height",
    "PagePlanner",
]
