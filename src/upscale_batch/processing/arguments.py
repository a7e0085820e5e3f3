"""外部放大程序的命令行参数构造。"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from upscale_batch.core.config import BUILTIN_MODELS, BatchRequest, ToolConfig


def resolve_models_path(model: str, tool: ToolConfig) -> Path:
    """内置模型使用默认模型目录，其余模型优先使用自定义模型目录。"""

    if model in BUILTIN_MODELS:
        return tool.models_path
    return tool.custom_models_path or tool.models_path


def build_batch_arguments(
    input_dir: Path,
    output_dir: Path,
    models_path: Path,
    model: str,
    gpu_id: Optional[str],
    save_image_as: str,
    scale: int,
    custom_width: Optional[int],
    compression: int,
    tile_size: Optional[int],
    tta_mode: bool,
) -> list[str]:
    args = ["-i", str(input_dir), "-o", str(output_dir)]
    if custom_width:
        args += ["-w", str(custom_width)]
    else:
        args += ["-s", str(scale)]
    args += ["-m", str(models_path), "-n", model]
    if gpu_id:
        args += ["-g", str(gpu_id)]
    args += ["-f", save_image_as, "-c", str(compression)]
    if tile_size:
        args += ["-t", str(tile_size)]
    if tta_mode:
        args.append("-x")
    return args


def build_command(request: BatchRequest, input_dir: Path, output_dir: Path) -> list[str]:
    """生成完整命令（可执行文件 + 参数）。"""

    args = build_batch_arguments(
        input_dir=input_dir,
        output_dir=output_dir,
        models_path=resolve_models_path(request.model, request.tool),
        model=request.model,
        gpu_id=request.gpu_id,
        save_image_as=request.save_image_as,
        scale=request.scale,
        custom_width=request.custom_width,
        compression=request.compression,
        tile_size=request.tile_size,
        tta_mode=request.tta_mode,
    )
    return [str(request.tool.executable), *args]
