"""日志初始化。"""

from __future__ import annotations

import logging

# 第三方库的调试日志过于冗长，调试模式下也只保留 INFO 及以上。
QUIET_LOGGERS = ("PIL",)


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置，日志中带上线程名以区分批处理工作线程。"""

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
