"""
模块接口契约 - 定义各模块的抽象接口与异常体系

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换（分页器可以用固定测量值单独测试）

使用方式：
    from legalpdf.interfaces import IOutputSink

    class MySink(IOutputSink):
        def write(self, data: bytes) -> None:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .markup.formatting import FormattingOverrides
    from .markup.registry import BlockRegistry
    from .models import (
        BlockDefinition,
        ContentBlock,
        FormattingRules,
        Measurement,
        PagePlan,
        ParsedMarker,
        ParseResult,
        SinkResult,
        SplitResult,
    )


# ============================================================================
# 解析阶段接口
# ============================================================================

class IMarkerParser(ABC):
    """标记解析器接口 - 纯语法扫描"""

    @abstractmethod
    def parse(self, text: str) -> ParseResult:
        """
        扫描原始文本中的 [TYPE_BLOCK:id] 标记

        Args:
            text: 生成的法律文书原文

        Returns:
            按出现顺序排列的标记列表，以及标记被占位符替换后的文本

        Raises:
            MarkerParseError: 标记语法错误（括号不匹配/未知类型关键字）
            DuplicateMarkerError: 同一文档内标记ID重复
        """
        ...


class IFormattingResolver(ABC):
    """格式规则解析器接口 - 文书类型 → 格式规则"""

    @abstractmethod
    def resolve(
        self,
        document_type: str,
        overrides: FormattingOverrides | None = None,
    ) -> FormattingRules:
        """
        解析文书类型的格式规则

        同一目录版本下，相同文书类型总是得到相同的规则（纯函数，可缓存）。

        Raises:
            FormattingConfigError: 未知文书类型或配置结构非法
        """
        ...

    @abstractmethod
    def block_definitions(self, document_type: str) -> list[BlockDefinition]:
        """获取文书类型声明的签名块定义（只读）"""
        ...


class IBlockRegistryBuilder(ABC):
    """签名块注册表构建器接口"""

    @abstractmethod
    def build(
        self,
        markers: Sequence[ParsedMarker],
        definitions: Sequence[BlockDefinition],
        *,
        document_type: str = "",
    ) -> BlockRegistry:
        """
        校验标记与声明的签名块定义，并合并成组

        Raises:
            UnknownBlockReferenceError: 标记引用了未声明的块
            MissingRequiredBlockError: 必需块未出现在文本中，或成组成员不全
        """
        ...


# ============================================================================
# 排版阶段接口
# ============================================================================

class IContentMeasurer(ABC):
    """内容测量器接口（第一遍）"""

    @abstractmethod
    def measure(self, blocks: Sequence[ContentBlock]) -> list[Measurement]:
        """
        测量每个内容块在当前格式规则下的高度

        Raises:
            BlockOverflowError: 单个不可拆分块超过最大可用页高
        """
        ...


class IParagraphSplitter(ABC):
    """段落拆分接口（分页器在段落放不下时调用）"""

    @abstractmethod
    def split(
        self,
        block: ContentBlock,
        available_height: float,
        *,
        fresh_page: bool = False,
    ) -> SplitResult | None:
        """
        在句子边界拆分段落，使前半部分不超过 available_height

        Args:
            block: 可拆分的文本块
            available_height: 当前页剩余高度
            fresh_page: 当前页是否为空（空页允许退化为按词拆分）

        Returns:
            拆分结果；找不到合法拆分点时返回 None
        """
        ...


class IPagePlanner(ABC):
    """分页规划器接口"""

    @abstractmethod
    def plan(
        self,
        blocks: Sequence[ContentBlock],
        measurements: Sequence[Measurement],
    ) -> PagePlan:
        """
        贪心装箱：决定每个内容块落在哪一页

        Raises:
            BlockOverflowError: 存在无法放入任何一页的块
        """
        ...


# ============================================================================
# 输出阶段接口
# ============================================================================

class IOutputSink(ABC):
    """输出目标接口 - 文件或内存缓冲"""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        追加写入字节

        Raises:
            IOWriteError: 写入失败，或已完成/已丢弃后继续写入
        """
        ...

    @abstractmethod
    def finalize(self) -> SinkResult:
        """完成输出并移交产物（只能调用一次）"""
        ...

    @abstractmethod
    def discard(self) -> None:
        """丢弃已写入的部分内容（失败/取消时调用，可重复调用）"""
        ...


class IRenderer(ABC):
    """渲染器接口（第二遍）"""

    @abstractmethod
    def render(self, plan: PagePlan, sink: IOutputSink) -> int:
        """
        按分页计划逐页输出

        Returns:
            写入输出目标的字节数

        Raises:
            IOWriteError: 输出目标写入失败
            JobCancelled: 渲染过程中任务被取消
        """
        ...


# ============================================================================
# 异常定义
# ============================================================================

class LegalPdfError(Exception):
    """基础异常（携带文书类型/块ID/失败阶段等诊断上下文）"""

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        document_type: str | None = None,
        block_id: str | None = None,
        stage: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.document_type = document_type
        self.block_id = block_id
        self.stage = stage

    def attach(
        self,
        *,
        document_type: str | None = None,
        stage: str | None = None,
    ) -> LegalPdfError:
        """补充缺失的上下文（已有值不覆盖）"""
        if self.document_type is None:
            self.document_type = document_type
        if self.stage is None:
            self.stage = stage
        return self

    def context(self) -> dict[str, str]:
        """诊断上下文（不含堆栈）"""
        ctx = {
            "document_type": self.document_type,
            "block_id": self.block_id,
            "stage": self.stage,
        }
        return {k: v for k, v in ctx.items() if v}

    def __str__(self) -> str:
        ctx = self.context()
        if not ctx:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.message} ({details})"


class MarkerParseError(LegalPdfError):
    """标记语法错误"""

    exit_code = 10

    def __init__(self, message: str, *, substring: str, offset: int, line: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.substring = substring
        self.offset = offset
        self.line = line

    def context(self) -> dict[str, str]:
        ctx = super().context()
        ctx["offset"] = str(self.offset)
        ctx["line"] = str(self.line)
        return ctx


class DuplicateMarkerError(LegalPdfError):
    """标记ID重复"""

    exit_code = 11


class UnknownBlockReferenceError(LegalPdfError):
    """标记引用了文书类型未声明的块"""

    exit_code = 12


class MissingRequiredBlockError(LegalPdfError):
    """必需块缺失"""

    exit_code = 13


class FormattingConfigError(LegalPdfError):
    """文书类型配置非法或未知"""

    exit_code = 14


class BlockOverflowError(LegalPdfError):
    """单个不可拆分块超过最大可用页高"""

    exit_code = 15

    def __init__(self, message: str, *, height: float, usable_height: float, **kwargs):
        super().__init__(message, **kwargs)
        self.height = height
        self.usable_height = usable_height


class IOWriteError(LegalPdfError):
    """输出目标写入失败"""

    exit_code = 16


class JobCancelled(LegalPdfError):
    """任务被协作式取消（流水线内部控制信号）"""

    exit_code = 130
