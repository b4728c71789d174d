"""
输出目标 - 文件 / 内存缓冲

职责：
1. FileSink: 先写同目录临时文件，finalize 时原子改名；discard 删除临时文件
2. BufferSink: 内存累积，finalize 返回字节与页数（供查看器显示）
3. 只能 finalize 一次；finalize/discard 之后再写入视为 IOWriteError

测试要点：
- test_file_sink_atomic_rename: 完成前目标文件不存在
- test_file_sink_discard: 丢弃后不留文件
- test_buffer_sink_page_count: 缓冲页数
- test_write_after_finalize: 完成后写入报错
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path

from pypdf import PdfReader

from ..interfaces import IOutputSink, IOWriteError
from ..models import SinkResult

logger = logging.getLogger(__name__)


def count_pdf_pages(data: bytes) -> int:
    """统计PDF页数"""
    reader = PdfReader(io.BytesIO(data))
    return len(reader.pages)


class _SinkState(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"
    DISCARDED = "discarded"


class FileSink(IOutputSink):
    """文件输出（临时文件 + 原子改名）"""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._tmp_path: Path | None = None
        self._handle = None
        self._written = 0
        self._state = _SinkState.OPEN

    def write(self, data: bytes) -> None:
        self._ensure_open()
        try:
            if self._handle is None:
                self._open_temp()
            self._handle.write(data)
        except OSError as e:
            raise IOWriteError(f"写入输出文件失败: {self.path}: {e}") from e
        self._written += len(data)

    def finalize(self) -> SinkResult:
        self._ensure_open()
        try:
            if self._handle is None:
                # 没有任何写入时也产出空文件
                self._open_temp()
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._handle.close()
            self._handle = None
            os.replace(self._tmp_path, self.path)
        except OSError as e:
            self.discard()
            raise IOWriteError(f"输出文件落盘失败: {self.path}: {e}") from e
        self._state = _SinkState.FINALIZED
        logger.info(f"输出文件已生成: {self.path} ({self._written} 字节)")
        return SinkResult(byte_length=self._written, path=self.path)

    def discard(self) -> None:
        if self._state is _SinkState.FINALIZED:
            return
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                logger.warning(f"关闭临时文件失败: {self._tmp_path}: {e}")
            self._handle = None
        if self._tmp_path is not None and self._tmp_path.exists():
            self._tmp_path.unlink()
            logger.debug(f"已丢弃临时文件: {self._tmp_path}")
        self._tmp_path = None
        self._state = _SinkState.DISCARDED

    @property
    def bytes_written(self) -> int:
        return self._written

    def _open_temp(self) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".part",
            dir=self.path.parent,
        )
        self._tmp_path = Path(tmp_name)
        self._handle = os.fdopen(fd, "wb")

    def _ensure_open(self) -> None:
        if self._state is not _SinkState.OPEN:
            raise IOWriteError(f"输出目标已{'完成' if self._state is _SinkState.FINALIZED else '丢弃'}: {self.path}")


class BufferSink(IOutputSink):
    """内存缓冲输出"""

    def __init__(self):
        self._buffer: io.BytesIO | None = io.BytesIO()
        self._state = _SinkState.OPEN

    def write(self, data: bytes) -> None:
        self._ensure_open()
        self._buffer.write(data)

    def finalize(self) -> SinkResult:
        self._ensure_open()
        data = self._buffer.getvalue()
        self._buffer = None
        self._state = _SinkState.FINALIZED
        page_count = count_pdf_pages(data) if data.startswith(b"%PDF") else None
        return SinkResult(byte_length=len(data), page_count=page_count, data=data)

    def discard(self) -> None:
        if self._state is _SinkState.FINALIZED:
            return
        self._buffer = None
        self._state = _SinkState.DISCARDED

    @property
    def bytes_written(self) -> int:
        return len(self._buffer.getvalue()) if self._buffer is not None else 0

    def _ensure_open(self) -> None:
        if self._state is not _SinkState.OPEN:
            raise IOWriteError(f"输出缓冲已{'完成' if self._state is _SinkState.FINALIZED else '丢弃'}")
