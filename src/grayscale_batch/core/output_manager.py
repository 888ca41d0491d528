"""输出目录准备与输出格式选择。"""

from __future__ import annotations

import logging
from pathlib import Path

from grayscale_batch.core.exceptions import OutputDirectoryError

LOGGER = logging.getLogger(__name__)


def output_format_for(destination: Path) -> str:
    """根据目标文件扩展名选择编码格式：.png 为 PNG，其余一律 JPEG。"""

    return "PNG" if destination.suffix.lower() == ".png" else "JPEG"


def prepare_output_dir(output_dir: Path) -> Path:
    """确保输出目录存在，必须在任何任务执行之前调用一次。"""

    resolved = output_dir.resolve()
    if resolved.is_dir():
        return resolved

    try:
        resolved.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputDirectoryError(f"无法创建输出目录: {resolved}") from exc

    LOGGER.info("已创建输出目录: %s", resolved)
    return resolved
