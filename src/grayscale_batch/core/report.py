"""报告生成工具。"""

from __future__ import annotations

from typing import Optional

from rich.table import Table

from grayscale_batch.core.models import BatchReport, TaskStatus

RUNNER_TITLES = {
    "sequential": "顺序处理结果",
    "concurrent": "并发处理结果",
}

FAILURE_LABELS = {
    TaskStatus.LOAD_FAILED: "加载失败",
    TaskStatus.SAVE_FAILED: "保存失败",
    TaskStatus.DECODE_EXCEPTION: "读写异常",
}


def report_title(report: BatchReport) -> str:
    return RUNNER_TITLES.get(report.runner, f"{report.runner} 处理结果")


def report_rows(report: BatchReport) -> list[tuple[str, str]]:
    """返回 (名称, 数值) 形式的报告行。"""

    rows = [
        ("图片总数", str(report.total)),
        ("成功", str(report.successes)),
        ("失败", str(report.failures)),
    ]
    rows.extend((f"  {FAILURE_LABELS[status]}", str(count)) for status, count in report.failure_counts.items())
    rows.append(("总耗时", f"{report.elapsed_ms:.0f} ms"))
    rows.append(("平均每张", _format_average(report.average_ms)))
    return rows


def build_table(report: BatchReport) -> Table:
    """将报告渲染为 rich 表格。"""

    table = Table(title=report_title(report), show_header=False)
    table.add_column("项目", style="bold")
    table.add_column("数值", justify="right")
    for name, value in report_rows(report):
        table.add_row(name, value)
    return table


def _format_average(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.2f} ms"
