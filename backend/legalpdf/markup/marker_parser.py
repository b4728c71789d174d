"""
标记解析器 - 扫描 [SIGNATURE_BLOCK:id] / [INITIALS_BLOCK:id] / [NOTARY_BLOCK:id]

职责：
1. 单遍从左到右扫描，按出现顺序产出 ParsedMarker
2. 把标记替换为占位符（记录其序号），其余文本原样保留
3. 语法错误（未知关键字/括号不匹配/缺冒号/空ID）抛 MarkerParseError
4. 同一文档内ID重复抛 DuplicateMarkerError

不理解文书类型语义，纯语法层。

测试要点：
- test_parse_markers_in_order: 顺序与偏移
- test_unknown_keyword: 未知关键字
- test_unbalanced_at_end: 末尾括号未闭合
- test_unbalanced_across_lines: 括号跨行
- test_duplicate_id: ID重复
"""

from __future__ import annotations

import logging
import re

from ..interfaces import DuplicateMarkerError, IMarkerParser, MarkerParseError
from ..models import MarkerType, ParsedMarker, ParseResult
from ..models.blocks import PLACEHOLDER_CHAR

logger = logging.getLogger(__name__)

# 候选标记：左括号 + 大写关键字 + _BLOCK
_CANDIDATE_RE = re.compile(r"\[(?P<keyword>[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*_BLOCK)")
# 缺少左括号的已知关键字
_BARE_KEYWORD_RE = re.compile(r"(?<![\[\w])(?:SIGNATURE|INITIALS|NOTARY)_BLOCK:")
_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

_EXCERPT_LEN = 40


class MarkerParser(IMarkerParser):
    """标记解析器"""

    def parse(self, text: str) -> ParseResult:
        """扫描并切除标记"""
        if PLACEHOLDER_CHAR in text:
            offset = text.index(PLACEHOLDER_CHAR)
            raise MarkerParseError(
                "文本包含保留占位字符 U+FFFC",
                substring=PLACEHOLDER_CHAR,
                offset=offset,
                line=_line_of(text, offset),
            )

        markers: list[ParsedMarker] = []
        first_seen: dict[str, int] = {}
        pieces: list[str] = []
        cursor = 0

        for match in _CANDIDATE_RE.finditer(text):
            start = match.start()
            if start < cursor:
                continue
            self._check_plain_text(text, cursor, start)

            keyword = match.group("keyword")
            marker_type = MarkerType.from_keyword(keyword)
            if marker_type is None:
                raise MarkerParseError(
                    f"未知标记类型: {keyword}",
                    substring=_excerpt(text, start),
                    offset=start,
                    line=_line_of(text, start),
                )

            close = self._find_close(text, start, match.end())
            body = text[match.end():close]
            if not body.startswith(":"):
                raise MarkerParseError(
                    f"标记缺少冒号: {text[start:close + 1]}",
                    substring=text[start:close + 1],
                    offset=start,
                    line=_line_of(text, start),
                )
            block_id = body[1:].strip()
            if not _ID_RE.match(block_id):
                raise MarkerParseError(
                    f"标记ID非法: {text[start:close + 1]}",
                    substring=text[start:close + 1],
                    offset=start,
                    line=_line_of(text, start),
                )
            if block_id in first_seen:
                raise DuplicateMarkerError(
                    f"标记ID重复: {block_id}（偏移 {first_seen[block_id]} 与 {start}）",
                    block_id=block_id,
                )
            first_seen[block_id] = start

            marker = ParsedMarker(
                type=marker_type,
                id=block_id,
                offset=start,
                end=close + 1,
                line=_line_of(text, start),
                index=len(markers),
            )
            markers.append(marker)
            pieces.append(text[cursor:start])
            pieces.append(marker.placeholder)
            cursor = close + 1

        self._check_plain_text(text, cursor, len(text))
        pieces.append(text[cursor:])

        logger.debug(f"解析到 {len(markers)} 个标记: {[m.id for m in markers]}")
        return ParseResult(markers=markers, text="".join(pieces))

    @staticmethod
    def _find_close(text: str, start: int, pos: int) -> int:
        """查找右括号；遇到换行/左括号/文末视为不匹配"""
        for i in range(pos, len(text)):
            ch = text[i]
            if ch == "]":
                return i
            if ch in "[\n":
                break
        raise MarkerParseError(
            "标记缺少右括号",
            substring=_excerpt(text, start),
            offset=start,
            line=_line_of(text, start),
        )

    @staticmethod
    def _check_plain_text(text: str, start: int, end: int) -> None:
        """标记之间的普通文本里不应出现缺左括号的关键字"""
        bare = _BARE_KEYWORD_RE.search(text, start, end)
        if bare:
            raise MarkerParseError(
                "标记缺少左括号",
                substring=_excerpt(text, bare.start()),
                offset=bare.start(),
                line=_line_of(text, bare.start()),
            )


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _excerpt(text: str, start: int) -> str:
    end = text.find("\n", start)
    if end == -1:
        end = len(text)
    return text[start:min(end, start + _EXCERPT_LEN)]
