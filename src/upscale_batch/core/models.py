"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

JOB_SUCCEEDED = "succeeded"
JOB_FAILED = "failed"
JOB_CANCELLED = "cancelled"

BATCH_ALL_SUCCEEDED = "all-succeeded"
BATCH_COMPLETED_WITH_ERRORS = "completed-with-errors"
BATCH_CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class WorkItem:
    """一个待处理的 (源目录, 输出目录) 对。"""

    source_dir: Path
    dest_dir: Path
    relative_path: Path


@dataclass(slots=True)
class MetadataOutcome:
    """单个文件的元数据复制结果。"""

    source_path: Path
    dest_path: Path
    ok: bool
    message: Optional[str] = None


@dataclass(slots=True)
class JobOutcome:
    """单个目录任务的最终结果。"""

    work_item: WorkItem
    status: str
    reason: Optional[str] = None
    return_code: Optional[int] = None
    metadata: list[MetadataOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == JOB_SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == JOB_FAILED

    @property
    def cancelled(self) -> bool:
        return self.status == JOB_CANCELLED

    @classmethod
    def success(cls, item: WorkItem, return_code: Optional[int] = None) -> "JobOutcome":
        return cls(work_item=item, status=JOB_SUCCEEDED, return_code=return_code)

    @classmethod
    def failure(cls, item: WorkItem, reason: str, return_code: Optional[int] = None) -> "JobOutcome":
        return cls(work_item=item, status=JOB_FAILED, reason=reason, return_code=return_code)

    @classmethod
    def cancel(cls, item: WorkItem, return_code: Optional[int] = None) -> "JobOutcome":
        return cls(work_item=item, status=JOB_CANCELLED, return_code=return_code)


@dataclass(slots=True)
class BatchResult:
    """整个批次的汇总结果。"""

    output_root: Path
    status: str
    outcomes: list[JobOutcome]
    encountered_error: bool
    skipped: list[WorkItem] = field(default_factory=list)

    def failed_outcomes(self) -> list[JobOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    def metadata_failures(self) -> list[MetadataOutcome]:
        """返回所有任务中复制失败的元数据记录。"""

        return [record for outcome in self.outcomes for record in outcome.metadata if not record.ok]
