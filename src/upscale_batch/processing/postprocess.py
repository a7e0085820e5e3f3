"""任务成功后的元数据传递。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from upscale_batch.core.exceptions import MetadataError
from upscale_batch.core.models import MetadataOutcome
from upscale_batch.core.progress import EVENT_METADATA_ERROR, ProgressCallback, emit
from upscale_batch.processing.metadata import copy_metadata

LOGGER = logging.getLogger(__name__)

MetadataCopier = Callable[[Path, Path], object]


class PostProcessor:
    """对输出目录中与源目录同名的文件逐个复制元数据。

    单个文件失败只记录并推送 metadata-error 事件，不影响任务或批次结果。
    """

    def __init__(self, copier: MetadataCopier = copy_metadata) -> None:
        self._copier = copier

    def copy_all(
        self,
        source_dir: Path,
        dest_dir: Path,
        progress_callback: ProgressCallback = None,
    ) -> list[MetadataOutcome]:
        LOGGER.info("🏷️ 复制元数据：%s", dest_dir)
        outcomes: list[MetadataOutcome] = []

        try:
            names = sorted(entry.name for entry in dest_dir.iterdir())
        except OSError as exc:
            LOGGER.error("❌ 读取输出目录失败，跳过元数据复制：%s (%s)", dest_dir, exc)
            return outcomes

        for name in names:
            dest_file = dest_dir / name
            source_file = source_dir / name
            if not (dest_file.is_file() and source_file.is_file()):
                continue
            outcomes.append(self._copy_one(source_file, dest_file, progress_callback))
        return outcomes

    def _copy_one(self, source_file: Path, dest_file: Path, progress_callback: ProgressCallback) -> MetadataOutcome:
        try:
            self._copier(source_file, dest_file)
        except (MetadataError, OSError) as exc:
            LOGGER.error("❌ 复制元数据失败：%s", exc)
            emit(progress_callback, EVENT_METADATA_ERROR, str(exc))
            return MetadataOutcome(source_path=source_file, dest_path=dest_file, ok=False, message=str(exc))

        LOGGER.debug("✅ 元数据已写入：%s", dest_file)
        return MetadataOutcome(source_path=source_file, dest_path=dest_file, ok=True)
