"""测试目录展开与任务列表生成。"""

from __future__ import annotations

from pathlib import Path

import pytest

from upscale_batch.core.config import BatchRequest
from upscale_batch.core.exceptions import BatchIOError, DirectoryScanError
from upscale_batch.core.scanner import build_work_items, collect_work_items, expand_directories


def make_tree(root: Path, *relative_dirs: str) -> None:
    root.mkdir(parents=True, exist_ok=True)
    for rel in relative_dirs:
        (root / rel).mkdir(parents=True, exist_ok=True)


def test_non_recursive_returns_only_root(tmp_path: Path) -> None:
    root = tmp_path / "in"
    make_tree(root, "a", "a/b", "c")

    assert expand_directories(root, recursive=False) == [root]


def test_recursive_nested_chain(tmp_path: Path) -> None:
    root = tmp_path / "in"
    make_tree(root, "a/b")

    assert expand_directories(root, recursive=True) == [root, root / "a", root / "a" / "b"]


def test_recursive_is_preorder_depth_first(tmp_path: Path) -> None:
    root = tmp_path / "in"
    make_tree(root, "a/x/deep", "a/y", "b", "c/z")
    (root / "a" / "image.png").write_bytes(b"not a directory")

    result = expand_directories(root, recursive=True)

    assert result == [
        root,
        root / "a",
        root / "a" / "x",
        root / "a" / "x" / "deep",
        root / "a" / "y",
        root / "b",
        root / "c",
        root / "c" / "z",
    ]
    # 每个目录都在父目录之后、在自己的子目录之前出现。
    for index, directory in enumerate(result[1:], start=1):
        assert result.index(directory.parent) < index


def test_recursive_covers_every_directory(tmp_path: Path) -> None:
    root = tmp_path / "in"
    make_tree(root, "one/two/three", "one/four", "five")

    result = expand_directories(root, recursive=True)
    expected = {root, *(p for p in root.rglob("*") if p.is_dir())}

    assert set(result) == expected
    assert len(result) == len(expected)


def test_missing_root_aborts(tmp_path: Path) -> None:
    with pytest.raises(DirectoryScanError):
        expand_directories(tmp_path / "missing", recursive=True)


def test_root_that_is_a_file_aborts(tmp_path: Path) -> None:
    target = tmp_path / "file.png"
    target.write_bytes(b"")

    with pytest.raises(BatchIOError):
        expand_directories(target, recursive=False)


def test_scan_error_is_an_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        expand_directories(tmp_path / "missing", recursive=False)


def test_work_items_mirror_relative_paths(tmp_path: Path) -> None:
    root = tmp_path / "in"
    make_tree(root, "a/b")
    request = BatchRequest(input_dir=root, output_dir=tmp_path / "out", model="remacri-4x", recursive=True)

    items = collect_work_items(request)
    output_root = tmp_path / "out" / "upscayl_png_remacri-4x_4x"

    assert [item.source_dir for item in items] == [root, root / "a", root / "a" / "b"]
    assert [item.dest_dir for item in items] == [output_root, output_root / "a", output_root / "a" / "b"]
    assert items[2].relative_path == Path("a/b")


def test_output_folder_name_prefers_custom_width(tmp_path: Path) -> None:
    request = BatchRequest(
        input_dir=tmp_path,
        output_dir=tmp_path / "out",
        model="ultrasharp-4x",
        scale=2,
        custom_width=1920,
        save_image_as="jpg",
    )

    assert request.output_folder_name == "upscayl_jpg_ultrasharp-4x_1920px"
    assert build_work_items(request, [tmp_path])[0].dest_dir == tmp_path / "out" / "upscayl_jpg_ultrasharp-4x_1920px"
