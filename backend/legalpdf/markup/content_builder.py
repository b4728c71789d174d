"""
内容组装 - 占位符文本 + 注册表 → 有序内容块

识别规则：
- Markdown 标题（# ~ ######）与法律文书标题（全大写行、ARTICLE/SECTION 行）
- 列表项（- * + 1. 1) (a) a.）
- 引用（> 开头，连续行合并）
- 分隔线（--- *** ___）
- 段落（连续非空行，保留换行）
- 占位符：在块组锚点处输出整个块组，其余成员位置不输出
"""

from __future__ import annotations

import logging
import re

from ..models import PLACEHOLDER_RE, ContentBlock, ContentKind
from .registry import BlockRegistry

logger = logging.getLogger(__name__)

_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_SECTION_HEADING_RE = re.compile(r"^(ARTICLE|Article|SECTION|Section)\s+[0-9IVXLC]+(\.\d+)*\b")
_RULE_RE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")
_LIST_RE = re.compile(r"^(\s*)([-*+•]|\d+[.)]|\([A-Za-z0-9]{1,4}\)|[a-z][.)])\s+(\S.*)$")
_QUOTE_RE = re.compile(r"^>\s?(.*)$")

MAX_HEADING_LENGTH = 100


def is_legal_heading(line: str) -> bool:
    """法律文书标题启发式：短行且全大写，或 ARTICLE/SECTION 开头且不以句读结尾"""
    s = line.strip()
    if not s or len(s) >= MAX_HEADING_LENGTH:
        return False
    letters = [c for c in s if c.isalpha()]
    if len(letters) >= 2 and s == s.upper():
        return True
    return bool(_SECTION_HEADING_RE.match(s)) and not s.endswith((".", ",", ";"))


class ContentAssembler:
    """内容组装器"""

    def assemble(self, text: str, registry: BlockRegistry) -> list[ContentBlock]:
        """按文档顺序生成内容块"""
        builder = _BlockBuilder()
        for line in text.splitlines():
            if PLACEHOLDER_RE.search(line):
                self._placeholder_line(line, registry, builder)
            else:
                builder.line(line)
        builder.flush()
        logger.debug(f"内容组装完成: {len(builder.blocks)} 个内容块")
        return builder.blocks

    @staticmethod
    def _placeholder_line(line: str, registry: BlockRegistry, builder: _BlockBuilder) -> None:
        cursor = 0
        for match in PLACEHOLDER_RE.finditer(line):
            before = line[cursor:match.start()]
            if before.strip():
                builder.line(before)
            builder.flush()
            group = registry.group_at(int(match.group(1)))
            if group is not None:
                builder.emit(ContentKind.BLOCK_GROUP, group_id=group.group_id, group=group)
            cursor = match.end()
        after = line[cursor:]
        if after.strip():
            builder.line(after)
            builder.flush()


class _BlockBuilder:
    """逐行状态机"""

    def __init__(self):
        self.blocks: list[ContentBlock] = []
        self._buffer: list[str] = []
        self._buffer_kind: ContentKind | None = None
        self._seq = 0

    def line(self, raw: str) -> None:
        stripped = raw.strip()
        if not stripped:
            self.flush()
            return

        heading = _MD_HEADING_RE.match(stripped)
        if heading:
            self.flush()
            self.emit(ContentKind.HEADING, text=heading.group(2), level=len(heading.group(1)))
            return
        if _RULE_RE.match(stripped):
            self.flush()
            self.emit(ContentKind.RULE)
            return
        if is_legal_heading(stripped):
            self.flush()
            self.emit(ContentKind.HEADING, text=stripped, level=1 if not self.blocks else 2)
            return

        quote = _QUOTE_RE.match(stripped)
        if quote:
            self._append(ContentKind.BLOCK_QUOTE, quote.group(1))
            return

        item = _LIST_RE.match(raw.rstrip())
        if item:
            self.flush()
            indent = len(item.group(1).expandtabs(4)) // 2
            self.emit(ContentKind.LIST_ITEM, text=item.group(3), level=indent, bullet=item.group(2))
            return

        self._append(ContentKind.PARAGRAPH, stripped)

    def _append(self, kind: ContentKind, text: str) -> None:
        if self._buffer_kind is not kind:
            self.flush()
            self._buffer_kind = kind
        self._buffer.append(text)

    def flush(self) -> None:
        if self._buffer and self._buffer_kind is not None:
            text = "\n".join(self._buffer).strip()
            if text:
                self.emit(self._buffer_kind, text=text)
        self._buffer = []
        self._buffer_kind = None

    def emit(self, kind: ContentKind, *, group_id: str | None = None, **fields) -> None:
        self._seq += 1
        block_id = group_id or f"{kind.value}-{self._seq}"
        self.blocks.append(ContentBlock(block_id=block_id, kind=kind, **fields))
