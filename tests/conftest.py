"""测试共用的图片构造 fixture。"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image


def _write_noise_image(path: Path, size: tuple[int, int] = (64, 64), mode: str = "RGB", seed: int = 0) -> Path:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(size[1], size[0], len(mode)), dtype=np.uint8)
    Image.fromarray(pixels).save(path)
    return path


@pytest.fixture
def make_noise_image() -> Callable[..., Path]:
    """写入一张随机噪点图片，返回其路径。"""

    return _write_noise_image


@pytest.fixture
def make_truncated_png() -> Callable[[Path], Path]:
    """写入一张只保留前半部分字节的 PNG。"""

    def factory(path: Path) -> Path:
        _write_noise_image(path, seed=7)
        data = path.read_bytes()
        path.write_bytes(data[: len(data) // 2])
        return path

    return factory


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "input"
    output = tmp_path / "output"
    source.mkdir()
    output.mkdir()
    return source, output
