"""命令行入口。"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from upscale_batch.core.config import BUILTIN_MODELS, SUPPORTED_FORMATS, BatchRequest, ToolConfig
from upscale_batch.core.context import OrchestrationContext
from upscale_batch.core.exceptions import DirectoryScanError, InvalidConfigurationError
from upscale_batch.core.models import BATCH_ALL_SUCCEEDED, BATCH_CANCELLED, BatchResult, WorkItem
from upscale_batch.core.progress import (
    EVENT_CONVERTING,
    EVENT_DONE,
    EVENT_ERROR,
    EVENT_METADATA_ERROR,
    EVENT_PROGRESS,
    ProgressEvent,
)
from upscale_batch.processing.orchestrator import BatchOrchestrator
from upscale_batch.utils.logging import setup_logging

app = typer.Typer(help="调用外部放大程序批量处理图片目录。")
console = Console()

EXIT_ERRORS = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


class QueueNotifier:
    """把通知转发到主线程的事件队列。"""

    def __init__(self, events: queue.Queue) -> None:
        self._events = events

    def notify(self, title: str, body: str) -> None:
        self._events.put(("notify", (title, body)))


def _run_batch_thread(
    orchestrator: BatchOrchestrator,
    request: BatchRequest,
    events: queue.Queue,
) -> None:
    def progress_callback(event: ProgressEvent) -> None:
        events.put(("event", event))

    try:
        result = orchestrator.run(request, progress_callback=progress_callback)
        events.put(("result", result))
    except (InvalidConfigurationError, DirectoryScanError) as exc:
        events.put(("failure", str(exc)))
    except Exception as exc:  # noqa: BLE001
        logging.getLogger(__name__).exception("批处理异常终止")
        events.put(("crash", str(exc)))


class _EventRenderer:
    """在主线程中用 rich 渲染批处理事件。"""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._tasks: Dict[WorkItem, int] = {}
        self._current: Optional[WorkItem] = None

    def handle(self, event: ProgressEvent) -> None:
        if event.work_item is not None:
            self._switch_to(event.work_item)

        task_id = self._tasks.get(self._current) if self._current else None
        if event.kind == EVENT_PROGRESS and task_id is not None:
            self._progress.update(task_id, status=event.message or "")
        elif event.kind == EVENT_CONVERTING and task_id is not None:
            self._progress.update(task_id, status="缩放并转换格式…")
        elif event.kind == EVENT_ERROR:
            self._progress.log(f"[red]{escape(event.message or '')}")
        elif event.kind == EVENT_METADATA_ERROR:
            self._progress.log(f"[yellow]元数据复制失败：{escape(event.message or '')}")
        elif event.kind == EVENT_DONE:
            self._finish_current()
            self._progress.log(f"输出目录：{event.message}")

    def _switch_to(self, item: WorkItem) -> None:
        if item == self._current:
            return
        self._finish_current()
        label = str(item.relative_path) if str(item.relative_path) != "." else item.source_dir.name
        self._tasks[item] = self._progress.add_task(label, total=None, status="")
        self._current = item

    def _finish_current(self) -> None:
        if self._current is None:
            return
        task_id = self._tasks[self._current]
        self._progress.update(task_id, total=1, completed=1, status="完成")
        self._current = None


def _wait_for_result(
    events: queue.Queue,
    renderer: _EventRenderer,
    progress: Progress,
    context: OrchestrationContext,
    worker: threading.Thread,
) -> tuple[Optional[BatchResult], Optional[tuple[str, str]]]:
    """等待工作线程结束，返回批处理结果或 (失败类型, 信息)。"""

    interrupts = 0
    result: Optional[BatchResult] = None
    failure: Optional[tuple[str, str]] = None

    try:
        while True:
            try:
                if not worker.is_alive() and events.empty():
                    break
                kind, payload = events.get(timeout=0.2)
                if kind == "event":
                    renderer.handle(payload)
                elif kind == "notify":
                    title, body = payload
                    progress.log(f"[bold]{title}[/bold] {body}")
                elif kind == "result":
                    result = payload
                elif kind in ("failure", "crash"):
                    failure = (kind, payload)
            except queue.Empty:
                continue
            except KeyboardInterrupt:
                interrupts += 1
                if interrupts == 1:
                    context.request_stop()
                    progress.log("[yellow]已请求停止：当前目录完成后结束（再次 Ctrl+C 立即结束外部程序）")
                else:
                    context.kill_all()
                    progress.log("[red]已结束所有外部程序")
    finally:
        # 主线程异常退出时工作线程是守护线程，外部程序需要在这里结束。
        if worker.is_alive():
            context.request_stop()
            context.kill_all()

    return result, failure


@app.command("run")
def run_cli(  # noqa: PLR0913
    input_dir: Path = typer.Argument(..., help="待处理的图片目录"),
    output: Path = typer.Option(..., "--output", "-o", help="输出根目录"),
    model: str = typer.Option(BUILTIN_MODELS[0], "--model", "-n", help="模型名称"),
    scale: int = typer.Option(4, "--scale", "-s", help="放大倍率"),
    width: Optional[int] = typer.Option(None, "--width", "-w", help="自定义输出宽度，设置后忽略倍率"),
    tile_size: Optional[int] = typer.Option(None, "--tile-size", "-t", help="分块大小，0 表示由程序决定"),
    compression: int = typer.Option(0, "--compression", "-c", help="压缩等级 0~100"),
    tta_mode: bool = typer.Option(False, "--tta", help="启用 TTA 模式"),
    gpu_id: Optional[str] = typer.Option(None, "--gpu-id", "-g", help="GPU 编号"),
    save_image_as: str = typer.Option("png", "--format", "-f", help=f"输出格式：{'/'.join(SUPPORTED_FORMATS)}"),
    recursive: bool = typer.Option(False, "--recursive/--no-recursive", help="是否处理所有子目录"),
    copy_metadata: bool = typer.Option(False, "--copy-metadata", help="把源图片的元数据复制到输出图片"),
    executable: Path = typer.Option(
        Path("upscayl-bin"), "--bin", envvar="UPSCALE_BATCH_BIN", help="外部放大程序路径"
    ),
    models_path: Path = typer.Option(
        Path("models"), "--models-path", envvar="UPSCALE_BATCH_MODELS", help="内置模型目录"
    ),
    custom_models_path: Optional[Path] = typer.Option(
        None, "--custom-models-path", envvar="UPSCALE_BATCH_CUSTOM_MODELS", help="自定义模型目录"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量放大。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    request = BatchRequest(
        input_dir=input_dir.expanduser().resolve(),
        output_dir=output.expanduser().resolve(),
        model=model,
        scale=scale,
        custom_width=width,
        tile_size=tile_size,
        compression=compression,
        tta_mode=tta_mode,
        gpu_id=gpu_id,
        save_image_as=save_image_as.lower(),
        recursive=recursive,
        copy_metadata=copy_metadata,
        tool=ToolConfig(
            executable=executable.expanduser(),
            models_path=models_path.expanduser().resolve(),
            custom_models_path=custom_models_path.expanduser().resolve() if custom_models_path else None,
        ),
    )

    events: queue.Queue = queue.Queue()
    context = OrchestrationContext()
    orchestrator = BatchOrchestrator(context=context, notifier=QueueNotifier(events))

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TextColumn("{task.fields[status]}", markup=False),
        TimeElapsedColumn(),
        console=console,
    )
    worker = threading.Thread(
        target=_run_batch_thread, args=(orchestrator, request, events), name="batch", daemon=True
    )

    with progress:
        worker.start()
        result, failure = _wait_for_result(events, _EventRenderer(progress), progress, context, worker)

    if failure is not None:
        kind, message = failure
        if kind == "failure":
            typer.echo(f"批处理未能启动：{message}", err=True)
            raise typer.Exit(code=EXIT_CONFIG)
        typer.echo(f"批处理中途异常终止：{message}", err=True)
        raise typer.Exit(code=EXIT_ERRORS)
    if result is None:
        typer.echo("批处理异常终止：未得到处理结果", err=True)
        raise typer.Exit(code=EXIT_ERRORS)

    typer.echo(
        f"处理完成：成功 {sum(1 for o in result.outcomes if o.succeeded)} 个目录，"
        f"失败 {len(result.failed_outcomes())} 个，跳过 {len(result.skipped)} 个。"
    )
    typer.echo(f"输出目录：{result.output_root}")

    if result.status == BATCH_CANCELLED:
        raise typer.Exit(code=EXIT_CANCELLED)
    if result.status != BATCH_ALL_SUCCEEDED:
        raise typer.Exit(code=EXIT_ERRORS)


@app.command("models")
def list_models() -> None:
    """列出内置模型。"""

    for name in BUILTIN_MODELS:
        typer.echo(name)


if __name__ == "__main__":
    app()
