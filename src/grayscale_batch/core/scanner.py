"""文件扫描与筛选逻辑。"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Sequence

from grayscale_batch.core.config import DEFAULT_PATTERNS, JobConfig
from grayscale_batch.core.exceptions import InputDirectoryNotFoundError
from grayscale_batch.core.models import WorkItem

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(fnmatch(lowered, pattern.lower()) for pattern in patterns)


def list_source_images(input_dir: Path, patterns: Sequence[str] = DEFAULT_PATTERNS) -> list[Path]:
    """列出输入目录（不递归）下匹配的图片文件，按小写路径排序。"""

    resolved = input_dir.resolve()
    if not resolved.is_dir():
        raise InputDirectoryNotFoundError(f"输入目录不存在: {resolved}")

    collected = [
        candidate
        for candidate in resolved.iterdir()
        if candidate.is_file()
        and _matches_any(candidate.name, patterns or DEFAULT_PATTERNS)
        and candidate.suffix.lower() in IMAGE_EXTENSIONS
    ]
    collected.sort(key=lambda path: str(path).lower())
    return collected


def collect_work_items(config: JobConfig) -> list[WorkItem]:
    """根据配置扫描输入目录，每个匹配文件生成一个 WorkItem。"""

    output_dir = config.output_dir.resolve()
    return [
        WorkItem(source_path=path, output_dir=output_dir)
        for path in list_source_images(config.input_dir, config.include_patterns)
    ]
