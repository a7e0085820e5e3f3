"""批处理任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from upscale_batch.core.exceptions import InvalidConfigurationError

OutputFormat = str  # png | jpg | webp

SUPPORTED_FORMATS = ("png", "jpg", "webp")

# 随外部程序一起发布的内置模型，其余模型视为自定义模型。
BUILTIN_MODELS = (
    "upscayl-standard-4x",
    "upscayl-lite-4x",
    "high-fidelity-4x",
    "remacri-4x",
    "ultramix-balanced-4x",
    "ultrasharp-4x",
    "digital-art-4x",
)

OUTPUT_FOLDER_PREFIX = "upscayl"


@dataclass(slots=True, frozen=True)
class ToolConfig:
    """外部放大程序及模型目录的位置。"""

    executable: Path = Path("upscayl-bin")
    models_path: Path = Path("models")
    custom_models_path: Optional[Path] = None


@dataclass(slots=True, frozen=True)
class BatchRequest:
    """单次批处理的完整参数，运行期间不可变。"""

    input_dir: Path
    output_dir: Path
    model: str = BUILTIN_MODELS[0]
    scale: int = 4
    custom_width: Optional[int] = None
    tile_size: Optional[int] = None
    compression: int = 0
    tta_mode: bool = False
    gpu_id: Optional[str] = None
    save_image_as: OutputFormat = "png"
    recursive: bool = False
    copy_metadata: bool = False
    tool: ToolConfig = field(default_factory=ToolConfig)

    @property
    def output_folder_name(self) -> str:
        """批次输出目录名，由格式、模型与宽度/倍率确定。"""

        if self.custom_width:
            size_part = f"{self.custom_width}px"
        else:
            size_part = f"{self.scale}x"
        return f"{OUTPUT_FOLDER_PREFIX}_{self.save_image_as}_{self.model}_{size_part}"

    @property
    def batch_output_root(self) -> Path:
        return self.output_dir / self.output_folder_name

    def validate(self) -> None:
        """检查参数范围，不合法时抛出 InvalidConfigurationError。"""

        if not self.model:
            raise InvalidConfigurationError("模型名称不能为空")
        if self.scale < 1:
            raise InvalidConfigurationError(f"放大倍率必须 >= 1: {self.scale}")
        if self.custom_width is not None and self.custom_width <= 0:
            raise InvalidConfigurationError(f"自定义宽度必须大于 0: {self.custom_width}")
        if not 0 <= self.compression <= 100:
            raise InvalidConfigurationError(f"压缩等级必须在 0~100 之间: {self.compression}")
        if self.tile_size is not None and self.tile_size < 0:
            raise InvalidConfigurationError(f"分块大小不能为负数: {self.tile_size}")
        if self.save_image_as not in SUPPORTED_FORMATS:
            raise InvalidConfigurationError(f"不支持的输出格式: {self.save_image_as}")
