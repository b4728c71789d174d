"""
输出层 - 第二遍渲染与输出目标
"""

from .renderer import PdfRenderer
from .sinks import BufferSink, FileSink, count_pdf_pages

__all__ = [
    "PdfRenderer",
    "BufferSink",
    "FileSink",
    "count_pdf_pages",
]
