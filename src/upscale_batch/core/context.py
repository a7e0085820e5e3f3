"""批处理的运行上下文：停止信号与存活子进程登记表。"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class Killable(Protocol):
    def kill(self) -> None:
        ...


class OrchestrationContext:
    """由调用方持有，跨线程共享。

    停止信号可以在任意线程设置；登记表记录所有仍在运行的子进程，
    ``kill_all`` 会结束其中的每一个，不论它属于哪个批次。
    """

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._processes: list[Killable] = []

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        LOGGER.info("收到停止请求，当前目录完成后结束批处理")
        self._stop_event.set()

    def reset(self) -> None:
        self._stop_event.clear()

    def register_process(self, process: Killable) -> None:
        with self._lock:
            self._processes.append(process)

    def unregister_process(self, process: Killable) -> None:
        with self._lock:
            try:
                self._processes.remove(process)
            except ValueError:
                pass

    def live_processes(self) -> list[Killable]:
        with self._lock:
            return list(self._processes)

    def kill_all(self) -> int:
        """结束所有登记的子进程，返回尝试结束的数量。"""

        with self._lock:
            processes = list(self._processes)
            self._processes.clear()

        for process in processes:
            try:
                process.kill()
            except OSError as exc:
                LOGGER.warning("结束子进程失败：%s", exc)
        if processes:
            LOGGER.info("已结束 %d 个子进程", len(processes))
        return len(processes)
