"""单个目录任务：启动外部程序、分类输出行并得到任务结果。"""

from __future__ import annotations

import logging
from typing import Optional

from upscale_batch.core.config import BatchRequest
from upscale_batch.core.context import OrchestrationContext
from upscale_batch.core.exceptions import LaunchError, OutputDirectoryError, ProcessError
from upscale_batch.core.models import JobOutcome, WorkItem
from upscale_batch.core.progress import (
    EVENT_CONVERTING,
    EVENT_ERROR,
    EVENT_PROGRESS,
    ProgressCallback,
    emit,
)
from upscale_batch.processing.arguments import build_command
from upscale_batch.processing.spawner import ProcessHandle, Spawner, spawn_process

LOGGER = logging.getLogger(__name__)

LINE_FATAL = "fatal"
LINE_CONVERTING = "converting"
LINE_PROGRESS = "progress"

FATAL_MARKERS = ("Error", "failed")
CONVERTING_MARKER = "Resizing"


def classify_line(line: str) -> str:
    """按子串匹配对一行诊断输出分类。

    注意：这里只做子串匹配，任何包含 "failed" 的正常进度行也会被当作致命错误。
    """

    if any(marker in line for marker in FATAL_MARKERS):
        return LINE_FATAL
    if CONVERTING_MARKER in line:
        return LINE_CONVERTING
    return LINE_PROGRESS


class JobRunner:
    """对一个 WorkItem 运行外部程序，阻塞直到得到 JobOutcome。"""

    def __init__(self, spawner: Spawner = spawn_process) -> None:
        self._spawner = spawner

    def run(
        self,
        item: WorkItem,
        request: BatchRequest,
        context: OrchestrationContext,
        progress_callback: ProgressCallback = None,
    ) -> JobOutcome:
        if context.stop_requested:
            LOGGER.info("已请求停止，不再启动：%s", item.source_dir)
            return JobOutcome.cancel(item)

        self._prepare_output_dir(item)

        command = build_command(request, item.source_dir, item.dest_dir)
        try:
            handle = self._spawner(command)
        except LaunchError as exc:
            LOGGER.error("❌ %s", exc)
            emit(progress_callback, EVENT_ERROR, f"Error upscaling images! {exc}", item)
            return JobOutcome.failure(item, str(exc))

        context.register_process(handle)
        try:
            return self._watch(handle, item, context, progress_callback)
        finally:
            context.unregister_process(handle)

    def _prepare_output_dir(self, item: WorkItem) -> None:
        if item.dest_dir.is_dir():
            return
        try:
            item.dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputDirectoryError(f"无法创建输出目录: {item.dest_dir}") from exc

    def _watch(
        self,
        handle: ProcessHandle,
        item: WorkItem,
        context: OrchestrationContext,
        progress_callback: ProgressCallback,
    ) -> JobOutcome:
        failure: Optional[ProcessError] = None

        try:
            for line in handle.lines():
                if not line:
                    continue
                kind = classify_line(line)
                emit(progress_callback, EVENT_PROGRESS, line, item)
                if kind == LINE_FATAL:
                    failure = ProcessError(line)
                    break
                if kind == LINE_CONVERTING:
                    emit(progress_callback, EVENT_CONVERTING, line, item)
        except OSError as exc:
            failure = ProcessError(f"读取外部程序输出失败: {exc}")

        if failure is not None:
            LOGGER.error("❌ %s: %s", item.source_dir, failure)
            handle.kill()
            return_code = handle.wait()
            emit(progress_callback, EVENT_ERROR, f"Error upscaling images! {failure}", item)
            return JobOutcome.failure(item, str(failure), return_code)

        return_code = handle.wait()
        if context.stop_requested:
            LOGGER.info("外部程序已退出，批处理已被停止：%s", item.source_dir)
            return JobOutcome.cancel(item, return_code)

        if return_code < 0:
            # 被信号终止的进程视为异常退出；普通非零退出码沿用只记录警告的做法。
            failure = ProcessError(f"外部程序被信号 {-return_code} 终止")
            LOGGER.error("❌ %s: %s", item.source_dir, failure)
            emit(progress_callback, EVENT_ERROR, f"Error upscaling images! {failure}", item)
            return JobOutcome.failure(item, str(failure), return_code)

        if return_code != 0:
            LOGGER.warning("外部程序退出码为 %s：%s", return_code, item.source_dir)
        LOGGER.info("💯 完成：%s", item.source_dir)
        return JobOutcome.success(item, return_code)
