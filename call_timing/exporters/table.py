#!/usr/bin/env python3
"""
table.py

Statistics as CSV text or as a Rich table in the terminal, with
human-friendly time units.
"""

import csv
import io
import math

from rich import print
from rich.table import Table

CSV_HEADER = [
    "group",
    "name",
    "is_async",
    "blocking_avg",
    "blocking_min",
    "blocking_max",
    "blocking_first",
    "blocking_p99",
    "execution_avg",
    "execution_min",
    "execution_max",
    "execution_first",
    "execution_p99",
    "invocations",
]


def format_time(ms: float) -> str:
    """Convert milliseconds to a human-friendly string."""
    if math.isnan(ms):
        return "-"
    if ms >= 1_000:
        return f"{ms / 1_000:.2f}s"
    elif ms >= 1:
        return f"{ms:.2f}ms"
    else:
        return f"{ms * 1_000:.0f}μs"


def to_csv(stats) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in stats:
        writer.writerow(
            [item.group_name, item.bare_name, str(item.is_async).lower()]
            + list(item.blocking)
            + list(item.execution)
            + [item.invocations]
        )
    return buf.getvalue()


def build_table(stats, title: str = "Call timings") -> Table:
    table = Table(title=title)
    table.add_column("group")
    table.add_column("name", style="bold")
    table.add_column("async")
    for column in ("blocking avg", "blocking p99", "exec avg", "exec min", "exec max", "exec first", "exec p99"):
        table.add_column(column, justify="right")
    table.add_column("calls", justify="right")
    for item in stats:
        table.add_row(
            item.group_name or "-",
            item.bare_name,
            "yes" if item.is_async else "no",
            format_time(item.blocking.avg),
            format_time(item.blocking.p99),
            format_time(item.execution.avg),
            format_time(item.execution.min),
            format_time(item.execution.max),
            format_time(item.execution.first),
            format_time(item.execution.p99),
            str(item.invocations),
        )
    return table


def print_table(stats, title: str = "Call timings") -> None:
    print(build_table(stats, title=title))
