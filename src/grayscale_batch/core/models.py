"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


class TaskStatus(str, Enum):
    """单个任务的终态，封闭集合。"""

    SUCCESS = "processed"
    LOAD_FAILED = "error-load"
    SAVE_FAILED = "error-save"
    DECODE_EXCEPTION = "error-io"

    @property
    def is_failure(self) -> bool:
        return self is not TaskStatus.SUCCESS


FAILURE_STATUSES = tuple(status for status in TaskStatus if status.is_failure)


@dataclass(frozen=True, slots=True)
class WorkItem:
    """一个待处理的图片：源文件路径与输出目录。"""

    source_path: Path
    output_dir: Path

    @property
    def destination(self) -> Path:
        """输出文件路径，与源文件同名。"""

        return self.output_dir / self.source_path.name


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件的处理结果。"""

    source_path: Path
    status: TaskStatus
    output_path: Optional[Path] = None
    message: Optional[str] = None
    size: Optional[tuple[int, int]] = None

    @property
    def succeeded(self) -> bool:
        return self.status is TaskStatus.SUCCESS


def _zero_counts() -> dict[TaskStatus, int]:
    return {status: 0 for status in TaskStatus}


@dataclass(slots=True)
class BatchReport:
    """一次批处理的汇总：按结果类型计数与整批耗时。

    只在所有任务到达终态后由汇总步骤写入；调用方不会看到中间状态。
    """

    runner: str
    total: int = 0
    counts: dict[TaskStatus, int] = field(default_factory=_zero_counts)
    elapsed: float = 0.0  # 秒，整批墙钟时间

    @classmethod
    def from_outcomes(cls, runner: str, outcomes: Iterable[FileOutcome], elapsed: float) -> "BatchReport":
        report = cls(runner=runner)
        for outcome in outcomes:
            report.record(outcome)
        report.elapsed = elapsed
        return report

    def record(self, outcome: FileOutcome) -> None:
        self.counts[outcome.status] += 1
        self.total += 1

    @property
    def successes(self) -> int:
        return self.counts[TaskStatus.SUCCESS]

    @property
    def failures(self) -> int:
        return sum(self.counts[status] for status in FAILURE_STATUSES)

    @property
    def failure_counts(self) -> dict[TaskStatus, int]:
        return {status: self.counts[status] for status in FAILURE_STATUSES}

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0

    @property
    def average_ms(self) -> Optional[float]:
        """每张成功图片的平均耗时；没有成功图片时返回 None。"""

        if self.successes == 0:
            return None
        return self.elapsed_ms / self.successes
