"""
标记与规则层

- marker_parser: 标记扫描与切除
- formatting: 格式规则解析与覆盖
- registry: 签名块注册表与成组
- content_builder: 文本 → 内容块
"""

from .content_builder import ContentAssembler, is_legal_heading
from .formatting import FormattingOverrides, FormattingRuleResolver, apply_overrides
from .marker_parser import MarkerParser
from .registry import BlockRegistry, BlockRegistryBuilder

__all__ = [
    "ContentAssembler",
    "is_legal_heading",
    "FormattingOverrides",
    "FormattingRuleResolver",
    "apply_overrides",
    "MarkerParser",
    "BlockRegistry",
    "BlockRegistryBuilder",
]
