"""
格式规则解析器单元测试

每个模块完成后必须运行：pytest tests/unit/test_formatting.py -v
"""

import pytest

from legalpdf.config import DocumentTypeCatalog
from legalpdf.interfaces import FormattingConfigError
from legalpdf.markup import FormattingOverrides, FormattingRuleResolver
from legalpdf.models import LINE_HEIGHT_FACTOR, LineSpacing, Margins, PageNumberPosition


def _resolver(formatting: dict, defaults: dict | None = None) -> FormattingRuleResolver:
    catalog = DocumentTypeCatalog(
        defaults=defaults or {},
        document_types={"custom": {"formatting": formatting}},
    )
    return FormattingRuleResolver(catalog)


class TestResolveDocumentTypes:
    """按文书类型解析"""

    def test_resolve_patent_assignment(self, resolver: FormattingRuleResolver):
        """专利转让：1.5倍行距，四边1英寸"""
        rules = resolver.resolve("patent-assignment")

        assert rules.document_type == "patent-assignment-agreement"
        assert rules.line_spacing is LineSpacing.ONE_HALF
        assert rules.line_height == pytest.approx(12 * 1.5 * LINE_HEIGHT_FACTOR)
        assert rules.margins == Margins(top=72, bottom=72, left=72, right=72)
        assert rules.page_width == pytest.approx(612)
        assert rules.page_height == pytest.approx(792)
        assert rules.content_width == pytest.approx(468)

    def test_office_action_top_margin(self, resolver: FormattingRuleResolver):
        """审查意见答复：1.5英寸上边距，双倍行距，页码靠右"""
        rules = resolver.resolve("office-action-response")

        assert rules.margins.top == pytest.approx(108)
        assert rules.margins.bottom == pytest.approx(72)
        assert rules.line_spacing is LineSpacing.DOUBLE
        assert rules.page_number_position is PageNumberPosition.BOTTOM_RIGHT

    @pytest.mark.parametrize("document_type,spacing", [
        ("provisional-patent-application", LineSpacing.DOUBLE),
        ("trademark-application", LineSpacing.SINGLE),
        ("nda-ip-specific", LineSpacing.SINGLE),
        ("patent-license-agreement", LineSpacing.SINGLE),
        ("technology-transfer-agreement", LineSpacing.SINGLE),
        ("cease-and-desist-letter", LineSpacing.SINGLE),
    ])
    def test_line_spacing_per_type(self, resolver: FormattingRuleResolver, document_type, spacing):
        """各类型行距"""
        rules = resolver.resolve(document_type)
        assert rules.line_spacing is spacing
        assert rules.font_size == 12

    def test_unknown_document_type(self, resolver: FormattingRuleResolver):
        """未知类型"""
        with pytest.raises(FormattingConfigError) as exc:
            resolver.resolve("employment-contract")
        assert exc.value.document_type == "employment-contract"

    def test_resolution_is_cached(self, resolver: FormattingRuleResolver):
        """同一类型返回同一实例"""
        assert resolver.resolve("nda") is resolver.resolve("nda-ip-specific")


class TestOverrides:
    """命令行覆盖"""

    def test_overrides_do_not_mutate_cache(self, resolver: FormattingRuleResolver):
        """覆盖生成新实例，缓存不变"""
        base = resolver.resolve("patent-assignment")
        overridden = resolver.resolve(
            "patent-assignment",
            FormattingOverrides(line_spacing=LineSpacing.DOUBLE, font_size=14),
        )

        assert overridden.line_height == pytest.approx(14 * 2.0 * LINE_HEIGHT_FACTOR)
        assert resolver.resolve("patent-assignment") is base
        assert base.line_spacing is LineSpacing.ONE_HALF

    def test_disable_page_numbers(self, resolver: FormattingRuleResolver):
        """关闭页码"""
        rules = resolver.resolve("patent-assignment", FormattingOverrides(page_numbers=False))
        assert rules.page_number_position is None

    def test_margin_override_points(self, resolver: FormattingRuleResolver):
        """页边距覆盖单位为 pt"""
        rules = resolver.resolve(
            "patent-assignment",
            FormattingOverrides(margins=Margins(top=36, bottom=36, left=54, right=54)),
        )
        assert rules.content_width == pytest.approx(612 - 108)

    def test_empty_overrides(self, resolver: FormattingRuleResolver):
        """空覆盖返回缓存实例"""
        base = resolver.resolve("trademark")
        assert resolver.resolve("trademark", FormattingOverrides()) is base

    def test_margins_swallow_page(self, resolver: FormattingRuleResolver):
        """页边距过大"""
        with pytest.raises(FormattingConfigError):
            resolver.resolve(
                "trademark",
                FormattingOverrides(margins=Margins(top=400, bottom=400, left=72, right=72)),
            )


class TestInvalidConfiguration:
    """结构非法的配置"""

    def test_negative_margin(self):
        with pytest.raises(FormattingConfigError):
            _resolver({"line_spacing": "single", "margins": {"left": -0.5}}).resolve("custom")

    def test_zero_font_size(self):
        with pytest.raises(FormattingConfigError):
            _resolver({"line_spacing": "single", "font_size": 0}).resolve("custom")

    def test_missing_line_spacing(self):
        """行距是文书类型必填项"""
        with pytest.raises(FormattingConfigError) as exc:
            _resolver({"font_size": 12}).resolve("custom")
        assert exc.value.document_type == "custom"

    def test_unknown_line_spacing(self):
        with pytest.raises(FormattingConfigError):
            _resolver({"line_spacing": "triple"}).resolve("custom")

    def test_unknown_page_size(self):
        with pytest.raises(FormattingConfigError):
            _resolver({"line_spacing": "single", "page_size": "tabloid"}).resolve("custom")

    def test_camel_case_keys(self):
        """兼容 camelCase 键名"""
        rules = _resolver({
            "pageSize": "legal",
            "lineSpacing": "double",
            "fontSize": 11,
            "pageNumbers": {"position": "bottom-right"},
        }).resolve("custom")

        assert rules.page_height == pytest.approx(1008)
        assert rules.font_size == 11
        assert rules.line_spacing is LineSpacing.DOUBLE
        assert rules.page_number_position is PageNumberPosition.BOTTOM_RIGHT

    def test_margins_merged_field_wise(self):
        """类型页边距与默认值逐字段合并"""
        rules = _resolver(
            {"line_spacing": "single", "margins": {"top": 2}},
            defaults={"margins": {"top": 1, "bottom": 0.5, "left": 1, "right": 1}},
        ).resolve("custom")

        assert rules.margins.top == pytest.approx(144)
        assert rules.margins.bottom == pytest.approx(36)
