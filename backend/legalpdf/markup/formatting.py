"""
格式规则解析器 - 文书类型 → FormattingRules

职责：
1. 从文书类型目录合并默认格式与类型格式
2. 英寸/页面尺寸换算为 pt（reportlab 单位）
3. 应用单次任务的命令行覆盖（行距/字号/页边距/页码开关）
4. 结果按文书类型缓存（纯函数，只读共享）

测试要点：
- test_resolve_patent_assignment: 1.5倍行距 + 1英寸页边距
- test_office_action_top_margin: 1.5英寸上边距
- test_unknown_document_type: FormattingConfigError
- test_overrides_do_not_mutate_cache: 覆盖不污染缓存
"""

from __future__ import annotations

import logging
import threading

from pydantic import BaseModel, ValidationError
from reportlab.lib.pagesizes import A4, LEGAL, LETTER
from reportlab.lib.units import inch

from ..config.catalog_loader import DocumentTypeCatalog, FormattingSpec
from ..interfaces import FormattingConfigError, IFormattingResolver
from ..models import (
    BlockDefinition,
    FormattingRules,
    LineSpacing,
    Margins,
    PageNumberFormat,
)

logger = logging.getLogger(__name__)

PAGE_SIZES = {
    "letter": LETTER,
    "legal": LEGAL,
    "a4": A4,
}


class FormattingOverrides(BaseModel):
    """单次任务的格式覆盖（页边距单位 pt）"""
    line_spacing: LineSpacing | None = None
    font_size: float | None = None
    margins: Margins | None = None
    page_numbers: bool | None = None

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class FormattingRuleResolver(IFormattingResolver):
    """格式规则解析器"""

    def __init__(self, catalog: DocumentTypeCatalog):
        self.catalog = catalog
        self._cache: dict[str, FormattingRules] = {}
        self._lock = threading.Lock()

    def resolve(
        self,
        document_type: str,
        overrides: FormattingOverrides | None = None,
    ) -> FormattingRules:
        """解析格式规则（覆盖项生成新实例，不修改缓存）"""
        canonical = self.catalog.canonical_name(document_type)
        with self._lock:
            rules = self._cache.get(canonical)
        if rules is None:
            rules = self._build(canonical, self.catalog.formatting_spec(canonical))
            with self._lock:
                self._cache.setdefault(canonical, rules)
            logger.debug(
                f"格式规则已解析: {canonical} 行距={rules.line_spacing.value} "
                f"行高={rules.line_height:.1f}pt"
            )

        if overrides is not None and not overrides.is_empty():
            rules = apply_overrides(rules, overrides)
        return rules

    def block_definitions(self, document_type: str) -> list[BlockDefinition]:
        return self.catalog.block_definitions(document_type)

    @staticmethod
    def _build(document_type: str, spec: FormattingSpec) -> FormattingRules:
        page_size = PAGE_SIZES.get(spec.page_size.lower())
        if page_size is None:
            raise FormattingConfigError(
                f"不支持的纸张尺寸: {spec.page_size}",
                document_type=document_type,
            )
        width, height = page_size
        try:
            rules = FormattingRules(
                document_type=document_type,
                page_width=width,
                page_height=height,
                margins=Margins(
                    top=spec.margins.top * inch,
                    bottom=spec.margins.bottom * inch,
                    left=spec.margins.left * inch,
                    right=spec.margins.right * inch,
                ),
                font_size=spec.font_size,
                line_spacing=spec.line_spacing,
                page_numbers=PageNumberFormat(**spec.page_numbers.model_dump()),
                paragraph_indent=spec.paragraph_indent * inch,
                paragraph_spacing=spec.paragraph_spacing,
                block_quote_indent=spec.block_quote_indent * inch,
            )
        except ValidationError as e:
            raise FormattingConfigError(
                f"格式配置非法: {e.errors()[0].get('msg', '')}",
                document_type=document_type,
            ) from e
        _check_content_area(rules)
        return rules


def apply_overrides(rules: FormattingRules, overrides: FormattingOverrides) -> FormattingRules:
    """在已解析规则上叠加覆盖项，返回新实例"""
    data = rules.model_dump()
    if overrides.line_spacing is not None:
        data["line_spacing"] = overrides.line_spacing
    if overrides.font_size is not None:
        data["font_size"] = overrides.font_size
    if overrides.margins is not None:
        data["margins"] = overrides.margins.model_dump()
    if overrides.page_numbers is not None:
        data["page_numbers"]["enabled"] = overrides.page_numbers
    try:
        result = FormattingRules.model_validate(data)
    except ValidationError as e:
        raise FormattingConfigError(
            f"格式覆盖非法: {e.errors()[0].get('msg', '')}",
            document_type=rules.document_type,
        ) from e
    _check_content_area(result)
    return result


def _check_content_area(rules: FormattingRules) -> None:
    if rules.content_width <= 0 or rules.content_height <= 0:
        raise FormattingConfigError(
            "页边距过大，内容区为空",
            document_type=rules.document_type,
        )
