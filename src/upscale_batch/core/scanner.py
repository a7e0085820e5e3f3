"""目录展开与任务列表生成。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from upscale_batch.core.config import BatchRequest
from upscale_batch.core.exceptions import DirectoryScanError
from upscale_batch.core.models import WorkItem

LOGGER = logging.getLogger(__name__)


def _list_subdirectories(path: Path) -> list[Path]:
    try:
        children = [child for child in path.iterdir() if child.is_dir()]
    except OSError as exc:
        raise DirectoryScanError(f"无法读取目录: {path}") from exc
    children.sort(key=lambda child: child.name)
    return children


def expand_directories(root: Path, recursive: bool) -> list[Path]:
    """返回需要处理的目录列表，根目录总在第一位。

    递归模式下按深度优先前序遍历：目录在首次访问时加入结果，
    随后立即展开其子目录，再处理同级目录。同级目录按名称排序。
    符号链接形成的环不做检测。
    """

    if not root.is_dir():
        raise DirectoryScanError(f"输入目录不存在或不是目录: {root}")

    if not recursive:
        # 非递归时仍需确认根目录可读。
        _list_subdirectories(root)
        return [root]

    collected: list[Path] = []
    stack = [root]
    while stack:
        current = stack.pop()
        collected.append(current)
        stack.extend(reversed(_list_subdirectories(current)))

    LOGGER.debug("展开得到 %d 个目录", len(collected))
    return collected


def build_work_items(request: BatchRequest, directories: Iterable[Path]) -> list[WorkItem]:
    """将目录映射到批次输出目录下相同的相对位置。"""

    output_root = request.batch_output_root
    items: list[WorkItem] = []
    for directory in directories:
        relative = directory.relative_to(request.input_dir)
        items.append(WorkItem(source_dir=directory, dest_dir=output_root / relative, relative_path=relative))
    return items


def collect_work_items(request: BatchRequest) -> list[WorkItem]:
    """展开输入目录并生成任务列表。"""

    directories = expand_directories(request.input_dir, request.recursive)
    LOGGER.info("发现 %d 个待处理目录", len(directories))
    return build_work_items(request, directories)
