"""进度事件的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from upscale_batch.core.models import WorkItem

EVENT_PROGRESS = "progress"
EVENT_CONVERTING = "converting"
EVENT_ERROR = "error"
EVENT_DONE = "done"
EVENT_METADATA_ERROR = "metadata-error"


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """批处理过程中推送给界面层的离散事件。"""

    kind: str
    message: Optional[str] = None
    work_item: Optional[WorkItem] = None


ProgressCallback = Optional[Callable[[ProgressEvent], None]]


def emit(callback: ProgressCallback, kind: str, message: Optional[str] = None, work_item: Optional[WorkItem] = None) -> None:
    if not callback:
        return
    callback(ProgressEvent(kind=kind, message=message, work_item=work_item))
