"""
任务模型 - 导出任务状态与生命周期
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobProgress(BaseModel):
    """任务进度"""
    stage: str = "INIT"
    percent: int = 0
    message: str = ""
    page: int | None = None
    total_pages: int | None = None


class ExportJob(BaseModel):
    """导出任务"""
    job_id: str = Field(..., description="UUID")
    document_type: str

    # 状态
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)

    # 结果
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_running(self, stage: str = "PARSE_MARKERS") -> None:
        """标记为运行中"""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()
        self.progress.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = JobStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_cancelled(self) -> None:
        """标记为已取消"""
        self.status = JobStatus.CANCELLED
        self.finished_at = datetime.now()


class ExportOutcome(BaseModel):
    """导出结果（返回给调用方）"""
    job_id: str
    document_type: str
    status: JobStatus
    stage: str | None = None  # 取消/失败时所在阶段
    page_count: int = 0
    byte_length: int = 0
    output_path: Path | None = None
    data: bytes | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.status is JobStatus.CANCELLED


class SinkResult(BaseModel):
    """输出目标完成后的产物信息"""
    byte_length: int
    page_count: int | None = None
    path: Path | None = None
    data: bytes | None = None
