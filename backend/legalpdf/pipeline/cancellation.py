"""
协作式取消 - 调用方线程设置，流水线线程在阶段边界/每页之前检查
"""

from __future__ import annotations

import threading

from ..interfaces import JobCancelled


class CancellationToken:
    """取消令牌（线程安全）"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        if self._event.is_set():
            raise JobCancelled("任务已取消", stage=stage)
