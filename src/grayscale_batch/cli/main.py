"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from grayscale_batch.core.config import EXECUTOR_KINDS, JobConfig, RunnerConfig
from grayscale_batch.core.exceptions import BatchInterrupted, GrayscaleBatchError
from grayscale_batch.core.models import BatchReport
from grayscale_batch.core.report import build_table
from grayscale_batch.processing.pipeline import process_batch
from grayscale_batch.utils.logging import setup_logging

app = typer.Typer(help="批量图片灰度转换：顺序与并发执行对比。")
console = Console()

EXIT_PREBATCH_ERROR = 1
EXIT_INTERRUPTED = 130


def _build_job(
    mode: str,
    input_dir: Optional[Path],
    output_dir: Optional[Path],
    runner: RunnerConfig,
) -> JobConfig:
    job = JobConfig.from_working_dir(mode, runner=runner)
    if input_dir is not None:
        job.input_dir = input_dir.expanduser().resolve()
    if output_dir is not None:
        job.output_dir = output_dir.expanduser().resolve()
    return job


def _run_job(job: JobConfig) -> BatchReport:
    """执行一个批次；预处理错误与中断转换为对应的退出码。"""

    label = "顺序" if job.runner.mode == "sequential" else "并发"
    try:
        with console.status(f"[bold blue]{label}处理中: {job.input_dir}"):
            return process_batch(job)
    except BatchInterrupted as exc:
        console.print(f"[bold red]处理被中断：{exc}")
        raise typer.Exit(code=EXIT_INTERRUPTED) from exc
    except GrayscaleBatchError as exc:
        console.print(f"[red]错误：{exc}")
        raise typer.Exit(code=EXIT_PREBATCH_ERROR) from exc


def _runner_config(
    mode: str, workers: Optional[int], per_image: bool, executor: str
) -> RunnerConfig:
    if executor not in EXECUTOR_KINDS:
        raise typer.BadParameter(f"执行器必须为 {' / '.join(EXECUTOR_KINDS)}")
    if workers is not None and workers < 1:
        raise typer.BadParameter("worker 数量必须大于 0")
    return RunnerConfig(mode=mode, max_workers=workers, per_task=per_image, executor=executor)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志")) -> None:
    setup_logging(logging.DEBUG if verbose else logging.INFO)


@app.command("sequential")
def sequential_cli(
    input_dir: Optional[Path] = typer.Option(None, "--input", "-i", help="输入目录，默认 ./Imagenes"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="输出目录"),
) -> None:
    """在单线程上逐张处理。"""

    job = _build_job("sequential", input_dir, output_dir, RunnerConfig(mode="sequential"))
    report = _run_job(job)
    console.print(build_table(report))


@app.command("concurrent")
def concurrent_cli(
    input_dir: Optional[Path] = typer.Option(None, "--input", "-i", help="输入目录，默认 ./Imagenes"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="输出目录"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="并发数量上限，默认 CPU 数"),
    per_image: bool = typer.Option(
        False, "--per-image", help="每张图片一个 worker，不设上限（默认按 CPU 数限制并发）"
    ),
    executor: str = typer.Option("thread", "--executor", help="执行器类型 thread 或 process"),
) -> None:
    """每张图片一个独立任务并发处理。

    默认并发上限为 CPU 数；传入 --per-image 时每张图片一个 worker。
    """

    runner = _runner_config("concurrent", workers, per_image, executor)
    job = _build_job("concurrent", input_dir, output_dir, runner)
    report = _run_job(job)
    console.print(build_table(report))


@app.command("compare")
def compare_cli(
    input_dir: Optional[Path] = typer.Option(None, "--input", "-i", help="输入目录，默认 ./Imagenes"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="并发数量上限，默认 CPU 数"),
    per_image: bool = typer.Option(
        False, "--per-image", help="每张图片一个 worker，不设上限（默认按 CPU 数限制并发）"
    ),
    executor: str = typer.Option("thread", "--executor", help="执行器类型 thread 或 process"),
) -> None:
    """对同一批图片先顺序、再并发处理，并输出加速比。"""

    concurrent_runner = _runner_config("concurrent", workers, per_image, executor)
    concurrent_job = _build_job("concurrent", input_dir, None, concurrent_runner)
    sequential_job = _build_job("sequential", input_dir, None, RunnerConfig(mode="sequential"))

    sequential = _run_job(sequential_job)
    concurrent = _run_job(concurrent_job)

    console.print(build_table(sequential))
    console.print(build_table(concurrent))
    if concurrent.elapsed > 0:
        console.print(f"加速比：{sequential.elapsed / concurrent.elapsed:.2f}x")


if __name__ == "__main__":
    app()
