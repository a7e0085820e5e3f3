"""将源图片的 EXIF / ICC 信息写入放大后的图片。"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image

from upscale_batch.core.exceptions import MetadataError

LOGGER = logging.getLogger(__name__)


@contextmanager
def _unbounded_image_size() -> Iterator[None]:
    """放大后的输出图片来自本机外部程序，读取时不受解压炸弹像素上限限制。"""

    previous = Image.MAX_IMAGE_PIXELS
    Image.MAX_IMAGE_PIXELS = None
    try:
        yield
    finally:
        Image.MAX_IMAGE_PIXELS = previous


def _read_metadata(source: Path) -> tuple[Optional[bytes], Optional[bytes]]:
    with Image.open(source) as img:
        exif = img.info.get("exif")
        if not exif:
            exif_obj = img.getexif()
            exif = exif_obj.tobytes() if len(exif_obj) else None
        icc_profile = img.info.get("icc_profile")
    return exif, icc_profile


def copy_metadata(source: Path, destination: Path) -> bool:
    """复制元数据，返回是否实际写入。

    目标文件按原格式重新保存：JPEG 沿用原量化表，PNG 无损。
    源图片没有 EXIF 与 ICC 时不改动目标文件。
    """

    tmp_path = destination.with_name(f".{destination.name}.metadata-tmp")
    try:
        exif, icc_profile = _read_metadata(source)
        if not exif and not icc_profile:
            LOGGER.debug("源图片没有可复制的元数据：%s", source)
            return False

        with _unbounded_image_size(), Image.open(destination) as img:
            img.load()
            image_format = img.format
            save_params: dict = {}
            if exif:
                save_params["exif"] = exif
            if icc_profile:
                save_params["icc_profile"] = icc_profile
            if image_format == "JPEG":
                save_params.update(quality="keep", subsampling="keep")
            elif image_format == "WEBP":
                save_params.update(lossless=True)
            img.save(tmp_path, format=image_format, **save_params)

        tmp_path.replace(destination)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        tmp_path.unlink(missing_ok=True)
        raise MetadataError(f"复制元数据失败: {source} -> {destination}: {exc}") from exc
    return True
