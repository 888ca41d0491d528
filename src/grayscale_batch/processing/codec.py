"""图片编解码：对 Pillow 的薄封装。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from PIL import Image, UnidentifiedImageError

from grayscale_batch.core.exceptions import GrayscaleBatchError

LOGGER = logging.getLogger(__name__)


class ImageDecodeError(GrayscaleBatchError):
    """文件可识别但像素数据解码失败。"""


class ImageCodec(Protocol):
    def decode(self, path: Path) -> Optional[Image.Image]: ...

    def encode(self, image: Image.Image, path: Path, image_format: str) -> bool: ...


class PillowCodec:
    """默认编解码器。

    - ``decode`` 对无法识别的文件返回 None，像素解码失败抛出 ImageDecodeError，
      其他 OSError（文件不存在、无权限等）原样抛出。
    - ``encode`` 在没有对应编码器时返回 False，写盘的 OSError 原样抛出。
    """

    def decode(self, path: Path) -> Optional[Image.Image]:
        try:
            img = Image.open(path)
        except UnidentifiedImageError as exc:
            LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
            return None

        with img:
            try:
                img.load()
            except (OSError, SyntaxError, ValueError) as exc:
                raise ImageDecodeError(f"图像数据解码失败: {path}") from exc
            return img.copy()

    def encode(self, image: Image.Image, path: Path, image_format: str) -> bool:
        image_format = image_format.upper()
        Image.init()
        if image_format not in Image.SAVE:
            LOGGER.debug("没有可用的 %s 编码器", image_format)
            return False

        image_to_save = image
        if image_format == "JPEG" and image.mode not in {"RGB", "L"}:
            image_to_save = image.convert("RGB")

        try:
            image_to_save.save(path, format=image_format)
        except (KeyError, ValueError) as exc:
            LOGGER.debug("编码 %s 失败: %s", path, exc)
            return False
        finally:
            if image_to_save is not image:
                image_to_save.close()
        return True
