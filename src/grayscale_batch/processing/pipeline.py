"""处理流水线：扫描、准备输出目录、构造任务并交给执行器。"""

from __future__ import annotations

import logging
from typing import Optional

from grayscale_batch.core.config import JobConfig
from grayscale_batch.core.exceptions import NoSourceImagesError
from grayscale_batch.core.models import BatchReport
from grayscale_batch.core.output_manager import prepare_output_dir
from grayscale_batch.core.scanner import collect_work_items
from grayscale_batch.processing.codec import ImageCodec
from grayscale_batch.processing.runners import build_runner
from grayscale_batch.processing.worker import build_tasks

LOGGER = logging.getLogger(__name__)


def process_batch(config: JobConfig, codec: Optional[ImageCodec] = None) -> BatchReport:
    """批量处理入口。

    输入目录缺失、没有匹配图片、输出目录无法创建时，在构造任何任务之前抛出异常。
    """

    runner = build_runner(config.runner)

    LOGGER.info("开始扫描输入目录: %s", config.input_dir)
    items = collect_work_items(config)
    LOGGER.info("发现 %d 个候选图片文件", len(items))
    if not items:
        raise NoSourceImagesError(f"输入目录中没有匹配的图片: {config.input_dir}")

    prepare_output_dir(config.output_dir)

    tasks = build_tasks(items, codec)
    return runner.run_all(tasks)
