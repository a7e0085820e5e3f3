"""批处理流程：展开目录、顺序运行任务、汇总结果并发出通知。"""

from __future__ import annotations

import logging
from typing import Optional

from upscale_batch.core.config import BatchRequest
from upscale_batch.core.context import OrchestrationContext
from upscale_batch.core.exceptions import BatchIOError
from upscale_batch.core.models import (
    BATCH_ALL_SUCCEEDED,
    BATCH_CANCELLED,
    BATCH_COMPLETED_WITH_ERRORS,
    BatchResult,
    JobOutcome,
    WorkItem,
)
from upscale_batch.core.notify import (
    NOTIFY_SUCCESS,
    NOTIFY_TITLE,
    NOTIFY_WITH_ERRORS,
    LoggingNotifier,
    Notifier,
)
from upscale_batch.core.progress import EVENT_DONE, EVENT_ERROR, ProgressCallback, emit
from upscale_batch.core.scanner import collect_work_items
from upscale_batch.processing.job_runner import JobRunner
from upscale_batch.processing.postprocess import PostProcessor

LOGGER = logging.getLogger(__name__)


class BatchOrchestrator:
    """顺序执行一个批次，任意时刻最多只有一个外部进程在运行。"""

    def __init__(
        self,
        context: Optional[OrchestrationContext] = None,
        job_runner: Optional[JobRunner] = None,
        post_processor: Optional[PostProcessor] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.context = context or OrchestrationContext()
        self._job_runner = job_runner or JobRunner()
        self._post_processor = post_processor or PostProcessor()
        self._notifier = notifier or LoggingNotifier()

    def run(self, request: BatchRequest, progress_callback: ProgressCallback = None) -> BatchResult:
        """执行批处理。

        配置错误与输入目录扫描错误会直接抛出，此时不会启动任何任务；
        单个任务的错误只记录在结果中，循环继续处理下一个目录。
        """

        self.context.reset()
        encountered_error = False
        request.validate()

        work_items = collect_work_items(request)
        output_root = request.batch_output_root
        LOGGER.info("开始批处理：%d 个目录，输出到 %s", len(work_items), output_root)

        outcomes: list[JobOutcome] = []
        skipped: list[WorkItem] = []

        for index, item in enumerate(work_items):
            if self.context.stop_requested:
                skipped = work_items[index:]
                LOGGER.info("批处理已停止，跳过剩余 %d 个目录", len(skipped))
                break

            outcome = self._run_job(item, request, progress_callback)
            outcomes.append(outcome)

            if outcome.failed:
                encountered_error = True
            elif outcome.succeeded and request.copy_metadata:
                outcome.metadata = self._post_processor.copy_all(item.source_dir, item.dest_dir, progress_callback)

        emit(progress_callback, EVENT_DONE, str(output_root))

        if not encountered_error:
            self._notifier.notify(NOTIFY_TITLE, NOTIFY_SUCCESS)
        else:
            self._notifier.notify(NOTIFY_TITLE, NOTIFY_WITH_ERRORS)

        result = BatchResult(
            output_root=output_root,
            status=_resolve_status(outcomes, skipped, encountered_error),
            outcomes=outcomes,
            encountered_error=encountered_error,
            skipped=skipped,
        )
        LOGGER.info(
            "批处理结束（%s）：完成 %d 个目录，失败 %d 个，跳过 %d 个",
            result.status,
            len(outcomes),
            len(result.failed_outcomes()),
            len(skipped),
        )
        return result

    def _run_job(self, item: WorkItem, request: BatchRequest, progress_callback: ProgressCallback) -> JobOutcome:
        LOGGER.info("处理目录：%s -> %s", item.source_dir, item.dest_dir)
        try:
            return self._job_runner.run(item, request, self.context, progress_callback)
        except BatchIOError as exc:
            LOGGER.error("❌ %s", exc)
            emit(progress_callback, EVENT_ERROR, f"Error upscaling images! {exc}", item)
            return JobOutcome.failure(item, str(exc))


def _resolve_status(outcomes: list[JobOutcome], skipped: list[WorkItem], encountered_error: bool) -> str:
    if skipped or any(outcome.cancelled for outcome in outcomes):
        return BATCH_CANCELLED
    if encountered_error:
        return BATCH_COMPLETED_WITH_ERRORS
    return BATCH_ALL_SUCCEEDED


def process_batch(
    request: BatchRequest,
    progress_callback: ProgressCallback = None,
    context: Optional[OrchestrationContext] = None,
) -> BatchResult:
    """批处理入口：使用默认的外部程序启动器、元数据复制与通知实现。"""

    return BatchOrchestrator(context=context).run(request, progress_callback=progress_callback)
