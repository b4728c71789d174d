"""
文书类型目录加载器 - 读取 document_types.yaml

职责：
- 解析YAML并提供类型安全访问
- 文书类型别名解析（patent-assignment → patent-assignment-agreement）
- 合并默认格式与类型格式（页边距/页码逐字段合并）
- 块定义按 kind 标签校验（standard / flat）
- 缓存加载结果（只读，可在并发任务间共享）

使用方式：
    catalog = CatalogLoader.load()
    spec = catalog.formatting_spec("patent-assignment")
    blocks = catalog.block_definitions("patent-assignment")
"""

from __future__ import annotations

import copy
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, PrivateAttr, TypeAdapter, ValidationError

from ..interfaces import FormattingConfigError
from ..models import BlockDefinition, LineSpacing, PageNumberPosition, PageNumberStyle

DEFAULT_CATALOG_PATH = Path(__file__).with_name("document_types.yaml")

_BLOCK_LIST = TypeAdapter(list[BlockDefinition])


class MarginSpec(BaseModel):
    """页边距配置（单位：英寸）"""
    top: float = Field(1.0, ge=0)
    bottom: float = Field(1.0, ge=0)
    left: float = Field(1.0, ge=0)
    right: float = Field(1.0, ge=0)


class PageNumberSpec(BaseModel):
    """页码配置"""
    enabled: bool = True
    position: PageNumberPosition = PageNumberPosition.BOTTOM_CENTER
    style: PageNumberStyle = Field(
        PageNumberStyle.NUMERIC, validation_alias=AliasChoices("style", "format")
    )
    prefix: str = ""
    suffix: str = ""
    font_size: float = Field(10, gt=0, validation_alias=AliasChoices("font_size", "fontSize"))


class FormattingSpec(BaseModel):
    """单个文书类型合并后的格式配置"""
    page_size: str = Field("letter", validation_alias=AliasChoices("page_size", "pageSize"))
    margins: MarginSpec = Field(default_factory=MarginSpec)
    font_size: float = Field(12, gt=0, validation_alias=AliasChoices("font_size", "fontSize"))
    line_spacing: LineSpacing = Field(
        ..., validation_alias=AliasChoices("line_spacing", "lineSpacing")
    )
    page_numbers: PageNumberSpec = Field(
        default_factory=PageNumberSpec,
        validation_alias=AliasChoices("page_numbers", "pageNumbers"),
    )
    paragraph_indent: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("paragraph_indent", "paragraphIndent")
    )
    paragraph_spacing: float = Field(
        12, ge=0, validation_alias=AliasChoices("paragraph_spacing", "paragraphSpacing")
    )
    block_quote_indent: float = Field(
        0.5, ge=0, validation_alias=AliasChoices("block_quote_indent", "blockQuoteIndent")
    )


class DocumentTypeSpec(BaseModel):
    """文书类型条目（格式与块定义延迟校验，错误归属到具体任务）"""
    title: str = ""
    category: str = "general"
    aliases: list[str] = Field(default_factory=list)
    formatting: dict[str, Any] = Field(default_factory=dict)
    blocks: list[dict[str, Any]] = Field(default_factory=list)


class DocumentTypeCatalog(BaseModel):
    """文书类型目录（document_types.yaml 的结构化表示）"""
    schema_version: str = "1.0"
    defaults: dict[str, Any] = Field(default_factory=dict)
    document_types: dict[str, DocumentTypeSpec] = Field(default_factory=dict)

    _block_cache: dict[str, list] = PrivateAttr(default_factory=dict)

    def list_types(self) -> list[str]:
        return sorted(self.document_types)

    def canonical_name(self, document_type: str) -> str:
        """解析别名；未知类型抛出 FormattingConfigError"""
        name = (document_type or "").strip().lower()
        if name in self.document_types:
            return name
        for canonical, spec in self.document_types.items():
            if name in spec.aliases:
                return canonical
        raise FormattingConfigError(
            f"未知文书类型: {document_type}",
            document_type=document_type,
        )

    def formatting_spec(self, document_type: str) -> FormattingSpec:
        """合并默认格式与类型格式并校验"""
        canonical = self.canonical_name(document_type)
        merged = _deep_merge(self.defaults, self.document_types[canonical].formatting)
        try:
            return FormattingSpec.model_validate(merged)
        except ValidationError as e:
            raise FormattingConfigError(
                f"格式配置非法: {_first_error(e)}",
                document_type=canonical,
            ) from e

    def block_definitions(self, document_type: str) -> list[BlockDefinition]:
        """按 kind 标签校验块定义（结果缓存）"""
        canonical = self.canonical_name(document_type)
        cached = self._block_cache.get(canonical)
        if cached is not None:
            return list(cached)
        try:
            definitions = _BLOCK_LIST.validate_python(self.document_types[canonical].blocks)
        except ValidationError as e:
            raise FormattingConfigError(
                f"块定义非法: {_first_error(e)}",
                document_type=canonical,
            ) from e
        self._block_cache[canonical] = definitions
        return list(definitions)


class CatalogLoader:
    """目录加载器（按路径缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, catalog_path: str | Path = DEFAULT_CATALOG_PATH) -> DocumentTypeCatalog:
        """加载并缓存目录"""
        path = Path(catalog_path)
        if not path.exists():
            raise FileNotFoundError(f"文书类型目录不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        try:
            return DocumentTypeCatalog.model_validate(data)
        except ValidationError as e:
            raise FormattingConfigError(f"文书类型目录结构非法: {_first_error(e)}") from e


def load_catalog(catalog_path: str | Path | None = None) -> DocumentTypeCatalog:
    """加载文书类型目录"""
    return CatalogLoader.load(catalog_path or DEFAULT_CATALOG_PATH)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg', '')}" if loc else first.get("msg", "")
