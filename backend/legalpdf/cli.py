"""
命令行入口 - 导出法律文书PDF

用法：
    legalpdf export draft.md out.pdf --document-type patent-assignment
    legalpdf export draft.md out.pdf -l double -f 12 -m 72,54 --no-page-numbers

文书类型来源（优先级）：--document-type > 文首 front matter 的 documentType > 文件名
退出码：0 成功；各错误类型见 interfaces 中的 exit_code；130 取消
"""

from __future__ import annotations

import argparse
import logging
import re
import signal
import sys
import threading
from pathlib import Path
from typing import Any

import yaml

from .config import DocumentTypeCatalog, load_config, setup_logging
from .interfaces import FormattingConfigError, LegalPdfError
from .markup import FormattingOverrides, FormattingRuleResolver
from .models import LineSpacing, Margins
from .pipeline import CancellationToken, ExportPipeline, ProgressEvent

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_USAGE = 2
EXIT_INPUT_NOT_FOUND = 3
EXIT_CANCELLED = 130

MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 24

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.S)


def parse_margins(value: str) -> Margins:
    """页边距（pt）：1个值=四边，2个值=上下,左右，4个值=上,右,下,左"""
    try:
        parts = [float(p) for p in value.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"页边距必须是数字: {value}")
    if len(parts) == 1:
        top = right = bottom = left = parts[0]
    elif len(parts) == 2:
        top = bottom = parts[0]
        right = left = parts[1]
    elif len(parts) == 4:
        top, right, bottom, left = parts
    else:
        raise argparse.ArgumentTypeError(f"页边距需要1、2或4个值: {value}")
    if min(parts) < 0:
        raise argparse.ArgumentTypeError(f"页边距不能为负: {value}")
    return Margins(top=top, bottom=bottom, left=left, right=right)


def parse_font_size(value: str) -> float:
    try:
        size = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"字号必须是数字: {value}")
    if not MIN_FONT_SIZE <= size <= MAX_FONT_SIZE:
        raise argparse.ArgumentTypeError(f"字号需在 {MIN_FONT_SIZE}-{MAX_FONT_SIZE} 之间: {value}")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="legalpdf", description="法律文书排版与PDF导出")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="导出PDF")
    export.add_argument("input", type=Path, help="输入文本文件（含签名块标记）")
    export.add_argument("output", type=Path, help="输出PDF路径")
    export.add_argument("-t", "--document-type", help="文书类型或别名")
    export.add_argument("-m", "--margins", type=parse_margins, help="页边距（pt）")
    export.add_argument(
        "-l", "--line-spacing",
        choices=[s.value for s in LineSpacing],
        help="行距模式",
    )
    export.add_argument("-f", "--font-size", type=parse_font_size, help="正文字号（pt）")
    export.add_argument("--no-page-numbers", action="store_true", help="不输出页码")
    export.add_argument("-c", "--config", type=Path, help="运行期配置 runtime.yaml")
    export.add_argument("-d", "--debug", action="store_true", help="输出调试日志")
    return parser


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """拆出文首 YAML front matter"""
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end():]


def detect_document_type(
    explicit: str | None,
    front_matter: dict[str, Any],
    input_path: Path,
    catalog: DocumentTypeCatalog,
) -> str:
    """确定文书类型"""
    if explicit:
        return explicit
    declared = front_matter.get("documentType") or front_matter.get("document_type")
    if declared:
        return str(declared)

    stem = input_path.stem.lower()
    candidates = []
    for name in catalog.list_types():
        candidates.append((name, name))
        candidates.extend((alias, name) for alias in catalog.document_types[name].aliases)
    for key, name in sorted(candidates, key=lambda c: len(c[0]), reverse=True):
        if key in stem:
            return name
    raise FormattingConfigError(
        f"无法确定文书类型，请使用 --document-type 指定（可选: {', '.join(catalog.list_types())}）"
    )


def _print_progress(event: ProgressEvent) -> None:
    if event.page is not None or event.completed:
        print(f"[{event.percent:3d}%] {event.message}", file=sys.stderr)


def run_export(args: argparse.Namespace) -> int:
    if args.output.suffix.lower() != ".pdf":
        print(f"错误: 输出文件必须以 .pdf 结尾: {args.output}", file=sys.stderr)
        return EXIT_USAGE
    if not args.input.is_file():
        print(f"错误: 输入文件不存在: {args.input}", file=sys.stderr)
        return EXIT_INPUT_NOT_FOUND

    config = load_config(args.config)
    setup_logging(config.logging, debug=args.debug)

    try:
        catalog = config.load_catalog()
    except FileNotFoundError as e:
        print(f"错误: {e}", file=sys.stderr)
        return EXIT_INPUT_NOT_FOUND

    text = args.input.read_text(encoding="utf-8")
    front_matter, body = split_front_matter(text)
    overrides = FormattingOverrides(
        line_spacing=LineSpacing(args.line_spacing) if args.line_spacing else None,
        font_size=args.font_size,
        margins=args.margins,
        page_numbers=False if args.no_page_numbers else None,
    )

    token = CancellationToken()
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, lambda *_: token.cancel())
    try:
        document_type = detect_document_type(args.document_type, front_matter, args.input, catalog)
        pipeline = ExportPipeline(FormattingRuleResolver(catalog), calibration=config.layout)
        outcome = pipeline.export_to_file(
            body,
            document_type,
            args.output,
            overrides=overrides,
            progress=_print_progress,
            cancel_token=token,
            title=str(front_matter["title"]) if front_matter.get("title") else None,
        )
    except LegalPdfError as e:
        print(f"错误: {e}", file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.exception("导出失败")
        print(f"错误: {e}", file=sys.stderr)
        return EXIT_UNEXPECTED
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    if outcome.cancelled:
        print("已取消，未生成输出文件", file=sys.stderr)
        return EXIT_CANCELLED

    print(f"已导出: {outcome.output_path} ({outcome.page_count} 页, {outcome.byte_length} 字节)")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "export":
        return run_export(args)
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
