"""外部程序的子进程封装。"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Iterator, Optional, Protocol, Sequence

from upscale_batch.core.exceptions import LaunchError

LOGGER = logging.getLogger(__name__)


class ProcessHandle(Protocol):
    """单个任务持有的子进程。"""

    pid: Optional[int]

    def lines(self) -> Iterator[str]:
        ...

    def kill(self) -> None:
        ...

    def wait(self) -> int:
        ...

    def poll(self) -> Optional[int]:
        ...


Spawner = Callable[[Sequence[str]], ProcessHandle]


class SubprocessHandle:
    """基于 subprocess.Popen 的实现，逐行读取 stderr 诊断输出。"""

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process
        self.pid: Optional[int] = process.pid

    def lines(self) -> Iterator[str]:
        stream = self._process.stderr
        if stream is None:
            return
        for line in stream:
            yield line.rstrip("\r\n")

    def kill(self) -> None:
        if self._process.poll() is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass

    def wait(self) -> int:
        return_code = self._process.wait()
        if self._process.stderr is not None:
            self._process.stderr.close()
        return return_code

    def poll(self) -> Optional[int]:
        return self._process.poll()


def spawn_process(command: Sequence[str]) -> SubprocessHandle:
    """启动外部程序。子进程放入独立的进程组，终端的 Ctrl+C 不会直接传给它。"""

    popen_kwargs: dict = {}
    if os.name == "nt":
        popen_kwargs["creationflags"] = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
    else:
        popen_kwargs["start_new_session"] = True

    LOGGER.debug("启动外部程序：%s", " ".join(command))
    try:
        process = subprocess.Popen(
            list(command),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            **popen_kwargs,
        )
    except OSError as exc:
        raise LaunchError(f"无法启动外部程序 {command[0]}: {exc}") from exc
    return SubprocessHandle(process)
