"""批处理结束时的用户通知。"""

from __future__ import annotations

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)

NOTIFY_TITLE = "Upscayled"
NOTIFY_SUCCESS = "Images upscayled successfully!"
NOTIFY_WITH_ERRORS = "Images were upscayled but encountered some errors!"


class Notifier(Protocol):
    def notify(self, title: str, body: str) -> None:
        ...


class LoggingNotifier:
    """没有桌面环境时的默认实现，直接写入日志。"""

    def notify(self, title: str, body: str) -> None:
        LOGGER.info("%s: %s", title, body)
