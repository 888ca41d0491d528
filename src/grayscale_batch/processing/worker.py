"""并发处理的工作单元。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PIL import Image

from grayscale_batch.core.models import FileOutcome, TaskStatus, WorkItem
from grayscale_batch.core.output_manager import output_format_for
from grayscale_batch.processing.codec import ImageCodec, ImageDecodeError, PillowCodec
from grayscale_batch.processing.grayscale import to_grayscale

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ImageTransformTask:
    """单张图片的灰度处理任务：加载、转换、按原文件名写入输出目录。

    ``execute`` 只执行一次，任何失败都转换为 FileOutcome 返回，不向外抛出异常。
    """

    item: WorkItem
    codec: ImageCodec = field(default_factory=PillowCodec)

    @property
    def source_path(self) -> Path:
        return self.item.source_path

    def execute(self) -> FileOutcome:
        try:
            return self._run()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("处理 %s 时发生未预期异常", self.source_path.name)
            return self._failure(TaskStatus.DECODE_EXCEPTION, str(exc))

    def _run(self) -> FileOutcome:
        source = self.item.source_path

        try:
            image = self.codec.decode(source)
        except ImageDecodeError as exc:
            return self._failure(TaskStatus.LOAD_FAILED, str(exc))
        except OSError as exc:
            return self._failure(TaskStatus.DECODE_EXCEPTION, f"读取失败: {exc}")

        if image is None:
            return self._failure(TaskStatus.LOAD_FAILED, f"无法加载: {source.name}")

        size = image.size
        LOGGER.debug("处理中: %s (%dx%d)", source.name, size[0], size[1])

        gray: Optional[Image.Image] = None
        destination = self.item.destination
        try:
            gray = to_grayscale(image)
            saved = self.codec.encode(gray, destination, output_format_for(destination))
        except OSError as exc:
            return self._failure(TaskStatus.DECODE_EXCEPTION, f"写入失败: {exc}", size)
        finally:
            _close_if_needed(image, gray)

        if not saved:
            return self._failure(TaskStatus.SAVE_FAILED, f"保存失败: {destination}", size)

        LOGGER.info("已保存: %s", source.name)
        return FileOutcome(
            source_path=source,
            status=TaskStatus.SUCCESS,
            output_path=destination,
            size=size,
        )

    def _failure(
        self, status: TaskStatus, message: str, size: Optional[tuple[int, int]] = None
    ) -> FileOutcome:
        LOGGER.warning("%s [%s]: %s", self.source_path.name, status.value, message)
        return FileOutcome(source_path=self.source_path, status=status, message=message, size=size)


def build_tasks(items: list[WorkItem], codec: Optional[ImageCodec] = None) -> list[ImageTransformTask]:
    """为每个 WorkItem 构造一个任务。"""

    if codec is None:
        return [ImageTransformTask(item) for item in items]
    return [ImageTransformTask(item, codec) for item in items]


def _close_if_needed(*images: Optional[Image.Image]) -> None:
    for img in images:
        if img is not None:
            img.close()
