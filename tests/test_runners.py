"""环节二：顺序与并发执行器的汇总、隔离与屏障语义。"""

from __future__ import annotations

import os
import random
import threading
import time
from concurrent.futures import BrokenExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import pytest

from grayscale_batch.core.config import RunnerConfig
from grayscale_batch.core.exceptions import BatchInterrupted, InvalidConfigurationError
from grayscale_batch.core.models import FileOutcome, TaskStatus, WorkItem
from grayscale_batch.processing import runners
from grayscale_batch.processing.runners import ConcurrentBatchRunner, SequentialRunner, build_runner
from grayscale_batch.processing.worker import build_tasks


@dataclass
class FakeTask:
    source_path: Path
    status: TaskStatus = TaskStatus.SUCCESS
    delay: float = 0.0
    on_done: Optional[Callable[[], None]] = None
    calls: int = field(default=0)

    def execute(self) -> FileOutcome:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.on_done is not None:
            self.on_done()
        return FileOutcome(source_path=self.source_path, status=self.status)


class BrokenTask(FakeTask):
    def execute(self) -> FileOutcome:
        raise RuntimeError("worker crashed")


@dataclass
class ExitingTask:
    """在工作进程中直接退出，使进程池损坏。"""

    source_path: Path

    def execute(self) -> FileOutcome:
        os._exit(1)


class BreakingExecutor(ThreadPoolExecutor):
    """接受前 accepted 次提交，之后表现为已损坏的执行器。"""

    def __init__(self, accepted: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.accepted = accepted
        self.shutdown_calls: list[bool] = []

    def submit(self, fn, /, *args, **kwargs):
        if self.accepted == 0:
            raise BrokenExecutor("pool is gone")
        self.accepted -= 1
        return super().submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self.shutdown_calls.append(wait)
        super().shutdown(wait=wait, cancel_futures=cancel_futures)


def _mixed_tasks() -> list[FakeTask]:
    statuses = [
        TaskStatus.SUCCESS,
        TaskStatus.LOAD_FAILED,
        TaskStatus.SUCCESS,
        TaskStatus.SAVE_FAILED,
        TaskStatus.DECODE_EXCEPTION,
        TaskStatus.SUCCESS,
    ]
    rng = random.Random(3)
    return [
        FakeTask(Path(f"img{idx}.png"), status, delay=rng.uniform(0, 0.01))
        for idx, status in enumerate(statuses)
    ]


@pytest.fixture
def image_batch(make_noise_image) -> Callable[..., list[WorkItem]]:
    """写入若干张正常图片和一张损坏图片，返回对应的 WorkItem。"""

    def factory(source: Path, output: Path, good: int = 6) -> list[WorkItem]:
        for idx in range(good):
            make_noise_image(source / f"good_{idx}.png", size=(32, 32), seed=idx)
        (source / "broken.png").write_text("not an image")
        return [WorkItem(path, output) for path in sorted(source.iterdir())]

    return factory


@pytest.mark.parametrize(
    "runner",
    [SequentialRunner(), ConcurrentBatchRunner(RunnerConfig(max_workers=3))],
    ids=["sequential", "concurrent"],
)
def test_counts_are_conserved(runner) -> None:
    tasks = _mixed_tasks()

    report = runner.run_all(tasks)

    assert report.total == len(tasks)
    assert report.successes + report.failures == len(tasks)
    assert report.successes == 3
    assert report.failure_counts == {
        TaskStatus.LOAD_FAILED: 1,
        TaskStatus.SAVE_FAILED: 1,
        TaskStatus.DECODE_EXCEPTION: 1,
    }
    assert all(task.calls == 1 for task in tasks)


@pytest.mark.parametrize(
    "runner",
    [SequentialRunner(), ConcurrentBatchRunner()],
    ids=["sequential", "concurrent"],
)
def test_empty_batch_reports_zero(runner) -> None:
    report = runner.run_all([])

    assert report.total == 0
    assert report.successes == 0
    assert report.failures == 0
    assert report.elapsed >= 0
    assert report.average_ms is None


def test_failing_item_does_not_affect_others(dirs: tuple[Path, Path], image_batch) -> None:
    source, output = dirs
    items = image_batch(source, output, good=8)

    report = ConcurrentBatchRunner(RunnerConfig(per_task=True)).run_all(build_tasks(items))

    assert report.successes == 8
    assert report.counts[TaskStatus.LOAD_FAILED] == 1
    for item in items:
        if item.source_path.name != "broken.png":
            assert item.destination.exists()


def test_concurrent_report_is_stable_across_runs() -> None:
    reports = [
        ConcurrentBatchRunner(RunnerConfig(per_task=True)).run_all(_mixed_tasks()) for _ in range(5)
    ]

    assert len({tuple(report.counts.items()) for report in reports}) == 1


def test_sequential_and_concurrent_agree(tmp_path: Path, image_batch) -> None:
    source = tmp_path / "input"
    source.mkdir()
    out_seq = tmp_path / "seq"
    out_con = tmp_path / "con"
    out_seq.mkdir()
    out_con.mkdir()
    image_batch(source, out_seq)
    paths = sorted(source.iterdir())

    seq = SequentialRunner().run_all(build_tasks([WorkItem(p, out_seq) for p in paths]))
    con = ConcurrentBatchRunner().run_all(build_tasks([WorkItem(p, out_con) for p in paths]))

    assert seq.counts == con.counts
    assert seq.runner == "sequential"
    assert con.runner == "concurrent"
    assert sorted(p.name for p in out_seq.iterdir()) == sorted(p.name for p in out_con.iterdir())


def test_report_only_after_every_worker_finished() -> None:
    total = 50
    flags = [False] * total
    lock = threading.Lock()
    rng = random.Random(11)

    def marker(index: int) -> Callable[[], None]:
        def mark() -> None:
            with lock:
                flags[index] = True

        return mark

    tasks = [
        FakeTask(Path(f"{idx}.png"), delay=rng.uniform(0, 0.02), on_done=marker(idx)) for idx in range(total)
    ]

    report = ConcurrentBatchRunner(RunnerConfig(per_task=True)).run_all(tasks)

    assert all(flags)
    assert report.successes == total


def test_crashed_worker_is_counted_not_raised() -> None:
    tasks = [FakeTask(Path("a.png")), BrokenTask(Path("b.png")), FakeTask(Path("c.png"))]

    report = ConcurrentBatchRunner().run_all(tasks)

    assert report.total == 3
    assert report.successes == 2
    assert report.counts[TaskStatus.DECODE_EXCEPTION] == 1


def test_interrupted_wait_raises_without_report(monkeypatch: pytest.MonkeyPatch) -> None:
    def interrupted(*_args, **_kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(runners, "wait", interrupted)

    with pytest.raises(BatchInterrupted):
        ConcurrentBatchRunner().run_all([FakeTask(Path("a.png"))])


def test_process_executor_runs_real_tasks(dirs: tuple[Path, Path], image_batch) -> None:
    source, output = dirs
    items = image_batch(source, output, good=3)

    report = ConcurrentBatchRunner(RunnerConfig(executor="process", max_workers=2)).run_all(build_tasks(items))

    assert report.successes == 3
    assert report.counts[TaskStatus.LOAD_FAILED] == 1


def test_worker_bound_resolution() -> None:
    assert RunnerConfig(max_workers=4).resolve_workers(2) == 2
    assert RunnerConfig(max_workers=4).resolve_workers(10) == 4
    assert RunnerConfig(per_task=True).resolve_workers(50) == 50
    assert 1 <= RunnerConfig().resolve_workers(100) <= 100
    assert RunnerConfig().resolve_workers(0) == 1


@pytest.mark.parametrize(
    "config",
    [RunnerConfig(mode="parallel"), RunnerConfig(executor="fiber"), RunnerConfig(max_workers=0)],
)
def test_invalid_runner_config_is_rejected(config: RunnerConfig) -> None:
    with pytest.raises(InvalidConfigurationError):
        build_runner(config)


def test_build_runner_selects_mode() -> None:
    assert isinstance(build_runner(RunnerConfig(mode="sequential")), SequentialRunner)
    assert isinstance(build_runner(RunnerConfig(mode="concurrent")), ConcurrentBatchRunner)


def test_broken_executor_on_submit_is_counted(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[BreakingExecutor] = []

    def make_executor(self, workers: int) -> BreakingExecutor:
        executor = BreakingExecutor(2, max_workers=workers)
        created.append(executor)
        return executor

    monkeypatch.setattr(ConcurrentBatchRunner, "_make_executor", make_executor)
    tasks = [FakeTask(Path(f"{idx}.png")) for idx in range(4)]

    report = ConcurrentBatchRunner(RunnerConfig(max_workers=2)).run_all(tasks)

    assert report.total == 4
    assert report.successes == 2
    assert report.counts[TaskStatus.DECODE_EXCEPTION] == 2
    assert created[0].shutdown_calls == [True]


def test_dead_worker_process_does_not_escape_runner() -> None:
    tasks = [ExitingTask(Path("dies.png"))] + [FakeTask(Path(f"{idx}.png")) for idx in range(3)]

    report = ConcurrentBatchRunner(RunnerConfig(executor="process", max_workers=1)).run_all(tasks)

    assert report.total == 4
    assert report.successes + report.failures == 4
    assert report.counts[TaskStatus.DECODE_EXCEPTION] >= 1


def test_interrupted_wait_shuts_down_without_waiting(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[BreakingExecutor] = []

    def make_executor(self, workers: int) -> BreakingExecutor:
        executor = BreakingExecutor(10, max_workers=workers)
        created.append(executor)
        return executor

    def interrupted(*_args, **_kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(ConcurrentBatchRunner, "_make_executor", make_executor)
    monkeypatch.setattr(runners, "wait", interrupted)

    with pytest.raises(BatchInterrupted):
        ConcurrentBatchRunner().run_all([FakeTask(Path("a.png"))])
    assert created[0].shutdown_calls == [False]
