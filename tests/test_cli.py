"""测试命令行入口。"""

from __future__ import annotations

import logging
import queue
from pathlib import Path

import pytest
from typer.testing import CliRunner

from upscale_batch.cli.main import EXIT_CONFIG, EXIT_ERRORS, _EventRenderer, _wait_for_result, app
from upscale_batch.core.config import BUILTIN_MODELS
from upscale_batch.core.context import OrchestrationContext
from upscale_batch.processing.orchestrator import BatchOrchestrator
from upscale_batch.utils.logging import setup_logging

runner = CliRunner()


def test_models_command_lists_builtin_models() -> None:
    result = runner.invoke(app, ["models"])

    assert result.exit_code == 0
    assert result.output.split() == list(BUILTIN_MODELS)


def test_missing_input_directory_exits_with_config_code(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", str(tmp_path / "missing"), "--output", str(tmp_path / "out")])

    assert result.exit_code == EXIT_CONFIG
    assert "批处理未能启动" in result.output


def test_missing_executable_reports_errors(tmp_path: Path) -> None:
    source = tmp_path / "in"
    source.mkdir()

    result = runner.invoke(
        app,
        ["run", str(source), "--output", str(tmp_path / "out"), "--bin", str(tmp_path / "no-such-upscaler")],
    )

    assert result.exit_code == EXIT_ERRORS
    assert (tmp_path / "out" / "upscayl_png_upscayl-standard-4x_4x").is_dir()


def test_crash_during_batch_is_reported_separately(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "in"
    source.mkdir()

    def crash(self, request, progress_callback=None):
        raise RuntimeError("磁盘已满")

    monkeypatch.setattr(BatchOrchestrator, "run", crash)

    result = runner.invoke(app, ["run", str(source), "--output", str(tmp_path / "out")])

    assert result.exit_code == EXIT_ERRORS
    assert "批处理中途异常终止：磁盘已满" in result.output
    assert "未能启动" not in result.output


class InterruptOnceWorker:
    """第一次检查存活状态时模拟 Ctrl+C，之后表现为已结束。"""

    def __init__(self) -> None:
        self.checks = 0

    def is_alive(self) -> bool:
        self.checks += 1
        if self.checks == 1:
            raise KeyboardInterrupt
        return False


class RecordingProgress:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def log(self, message: str) -> None:
        self.lines.append(message)


class KillCountingContext(OrchestrationContext):
    def __init__(self) -> None:
        super().__init__()
        self.kill_calls = 0

    def kill_all(self) -> int:
        self.kill_calls += 1
        return super().kill_all()


def test_interrupt_while_checking_worker_requests_stop() -> None:
    events: queue.Queue = queue.Queue()
    progress = RecordingProgress()
    context = KillCountingContext()

    result, failure = _wait_for_result(events, _EventRenderer(progress), progress, context, InterruptOnceWorker())

    assert (result, failure) == (None, None)
    assert context.stop_requested
    assert context.kill_calls == 0
    assert len(progress.lines) == 1


class AliveWorker:
    def is_alive(self) -> bool:
        return True


class ExplodingQueue(queue.Queue):
    def get(self, block: bool = True, timeout=None):
        raise RuntimeError("渲染失败")


def test_unexpected_exit_kills_running_processes() -> None:
    progress = RecordingProgress()
    context = KillCountingContext()

    with pytest.raises(RuntimeError):
        _wait_for_result(ExplodingQueue(), _EventRenderer(progress), progress, context, AliveWorker())

    assert context.stop_requested
    assert context.kill_calls == 1


def test_verbose_logging_keeps_pillow_quiet(monkeypatch: pytest.MonkeyPatch) -> None:
    pil_logger = logging.getLogger("PIL")
    monkeypatch.setattr(pil_logger, "level", logging.NOTSET)

    setup_logging(logging.DEBUG)

    assert pil_logger.level == logging.INFO
