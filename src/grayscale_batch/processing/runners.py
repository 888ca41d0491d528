"""批处理执行器：顺序执行与并发执行，两者产出相同格式的 BatchReport。"""

from __future__ import annotations

import logging
import time
from concurrent.futures import (
    ALL_COMPLETED,
    BrokenExecutor,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from pathlib import Path
from typing import Optional, Protocol, Sequence

from grayscale_batch.core.config import RunnerConfig
from grayscale_batch.core.exceptions import BatchInterrupted
from grayscale_batch.core.models import BatchReport, FileOutcome, TaskStatus

LOGGER = logging.getLogger(__name__)


class Task(Protocol):
    source_path: Path

    def execute(self) -> FileOutcome: ...


class BatchRunner(Protocol):
    name: str

    def run_all(self, tasks: Sequence[Task]) -> BatchReport: ...


class SequentialRunner:
    """在调用线程上按输入顺序逐个执行任务，作为并发执行的基准。"""

    name = "sequential"

    def run_all(self, tasks: Sequence[Task]) -> BatchReport:
        LOGGER.info("开始顺序处理 %d 个任务", len(tasks))
        report = BatchReport(runner=self.name)
        start = time.perf_counter()
        for task in tasks:
            report.record(task.execute())
        report.elapsed = time.perf_counter() - start
        _log_finished(report)
        return report


class ConcurrentBatchRunner:
    """每个任务提交到执行器池中独立执行，全部到达终态后再汇总。

    Future 列表按任务下标一一对应，每个 Future 只写一次，充当结果槽；
    汇总在屏障之后单线程完成，不依赖完成顺序，也不需要共享计数器。
    """

    name = "concurrent"

    def __init__(self, config: Optional[RunnerConfig] = None) -> None:
        self.config = config or RunnerConfig()

    def run_all(self, tasks: Sequence[Task]) -> BatchReport:
        tasks = list(tasks)
        start = time.perf_counter()
        if not tasks:
            return BatchReport(runner=self.name, elapsed=time.perf_counter() - start)

        workers = self.config.resolve_workers(len(tasks))
        LOGGER.info("开始并发处理 %d 个任务（%s x %d）", len(tasks), self.config.executor, workers)

        executor = self._make_executor(workers)
        interrupted = False
        try:
            slots = _submit_all(executor, tasks)
            _await_all(slots)
        except KeyboardInterrupt as exc:
            # 只终止等待：正在运行的任务不会被强制取消，尚未开始的任务不再启动。
            interrupted = True
            raise BatchInterrupted("等待任务完成时被中断，本批次不生成报告") from exc
        finally:
            executor.shutdown(wait=not interrupted, cancel_futures=interrupted)
        elapsed = time.perf_counter() - start

        outcomes = [_collect(slot, task) for slot, task in zip(slots, tasks)]
        report = BatchReport.from_outcomes(self.name, outcomes, elapsed)
        _log_finished(report)
        return report

    def _make_executor(self, workers: int) -> Executor:
        if self.config.executor == "process":
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="grayscale")


def build_runner(config: RunnerConfig) -> BatchRunner:
    """根据配置构造执行器，配置在此处统一校验。"""

    config.validate()
    if config.mode == "sequential":
        return SequentialRunner()
    return ConcurrentBatchRunner(config)


def _submit_all(executor: Executor, tasks: list[Task]) -> list[Future]:
    """逐个提交任务；执行器已损坏时，未能提交的任务以失败的 Future 占位。"""

    slots: list[Future] = []
    for task in tasks:
        try:
            slots.append(executor.submit(task.execute))
        except BrokenExecutor as exc:
            LOGGER.error("执行器已损坏，无法提交 %s: %s", task.source_path.name, exc)
            failed: Future = Future()
            failed.set_exception(exc)
            slots.append(failed)
    return slots


def _await_all(slots: list[Future]) -> None:
    """屏障：阻塞直到所有 Future 完成。"""

    wait(slots, return_when=ALL_COMPLETED)


def _collect(slot: Future, task: Task) -> FileOutcome:
    try:
        return slot.result()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("任务执行异常：%s", exc)
        return FileOutcome(
            source_path=task.source_path,
            status=TaskStatus.DECODE_EXCEPTION,
            message=str(exc),
        )


def _log_finished(report: BatchReport) -> None:
    LOGGER.info(
        "%s 处理完成：成功 %d，失败 %d，耗时 %.0f ms",
        report.runner,
        report.successes,
        report.failures,
        report.elapsed_ms,
    )
