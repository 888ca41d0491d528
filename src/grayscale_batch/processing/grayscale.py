"""灰度转换：gray = (R + G + B) // 3，Alpha 通道原样保留。"""

from __future__ import annotations

import numpy as np
from PIL import Image

# Pillow 将 16 位灰度 PNG 打开为这些模式，convert("RGB") 会把数值截断到 255。
WIDE_GRAY_MODES = {"I", "I;16", "I;16B", "I;16L", "I;16N"}


def has_alpha(image: Image.Image) -> bool:
    return "A" in image.getbands() or "transparency" in image.info


def grayscale_array(pixels: np.ndarray) -> np.ndarray:
    """对形如 (H, W, 3) 或 (H, W, 4) 的 uint8 像素数组做灰度转换。

    三个颜色通道都写为整除平均值，第四个通道（Alpha）不变。返回新数组。
    """

    if pixels.ndim != 3 or pixels.shape[-1] not in (3, 4):
        raise ValueError(f"不支持的像素数组形状: {pixels.shape}")

    gray = pixels[..., :3].astype(np.uint16).sum(axis=-1) // 3
    result = pixels.copy()
    result[..., :3] = gray.astype(np.uint8)[..., np.newaxis]
    return result


def to_grayscale(image: Image.Image) -> Image.Image:
    """返回灰度化后的新图像；带透明度的图像输出 RGBA，否则输出 RGB。"""

    if image.mode in WIDE_GRAY_MODES:
        return Image.fromarray(grayscale_array(_wide_gray_to_rgb(image)))

    mode = "RGBA" if has_alpha(image) else "RGB"
    working = image if image.mode == mode else image.convert(mode)
    pixels = np.asarray(working, dtype=np.uint8)
    return Image.fromarray(grayscale_array(pixels))


def _wide_gray_to_rgb(image: Image.Image) -> np.ndarray:
    """16 位灰度右移 8 位缩放到 8 位，并复制为三个颜色通道。"""

    values = np.clip(np.asarray(image).astype(np.int64), 0, 0xFFFF) >> 8
    channel = values.astype(np.uint8)
    return np.stack([channel, channel, channel], axis=-1)
