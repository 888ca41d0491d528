"""处理任务的配置模型。"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from grayscale_batch.core.exceptions import InvalidConfigurationError

RunnerMode = str  # sequential | concurrent
ExecutorKind = str  # thread | process

RUNNER_MODES = ("sequential", "concurrent")
EXECUTOR_KINDS = ("thread", "process")

DEFAULT_INPUT_DIRNAME = "Imagenes"
DEFAULT_OUTPUT_DIRNAMES = {
    "sequential": "imagenes_grises_secuencial",
    "concurrent": "imagenes_grises_concurrente",
}
DEFAULT_PATTERNS: tuple[str, ...] = ("*.jpg", "*.jpeg", "*.png")


@dataclass(slots=True)
class RunnerConfig:
    """执行器配置：顺序或并发，以及并发时的工作线程/进程上限。"""

    mode: RunnerMode = "concurrent"
    max_workers: Optional[int] = None  # None 表示使用可用 CPU 数
    per_task: bool = False  # True 时每张图片一个 worker
    executor: ExecutorKind = "thread"

    def validate(self) -> None:
        if self.mode not in RUNNER_MODES:
            raise InvalidConfigurationError(f"未知的执行模式: {self.mode}")
        if self.executor not in EXECUTOR_KINDS:
            raise InvalidConfigurationError(f"未知的执行器类型: {self.executor}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigurationError("max_workers 必须大于 0")

    def resolve_workers(self, task_count: int) -> int:
        """计算实际使用的 worker 数量，范围为 [1, task_count]。"""

        if self.per_task:
            bound = task_count
        else:
            bound = self.max_workers or os.cpu_count() or 1
        return max(1, min(bound, task_count))


@dataclass(slots=True)
class JobConfig:
    """单次批处理任务的配置集合。"""

    input_dir: Path
    output_dir: Path
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    include_patterns: Sequence[str] = field(default_factory=lambda: DEFAULT_PATTERNS)

    @classmethod
    def from_working_dir(
        cls,
        mode: RunnerMode,
        base_dir: Optional[Path] = None,
        runner: Optional[RunnerConfig] = None,
    ) -> "JobConfig":
        """以工作目录为基准，生成使用默认输入/输出目录名的配置。"""

        if mode not in DEFAULT_OUTPUT_DIRNAMES:
            raise InvalidConfigurationError(f"未知的执行模式: {mode}")
        base = (base_dir or Path.cwd()).resolve()
        return cls(
            input_dir=base / DEFAULT_INPUT_DIRNAME,
            output_dir=base / DEFAULT_OUTPUT_DIRNAMES[mode],
            runner=runner or RunnerConfig(mode=mode),
        )
