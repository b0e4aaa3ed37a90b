"""
Summary statistics over recorded durations.
"""

import math
from typing import NamedTuple, Sequence

NAN = float("nan")

SEPARATOR = "."


class DurationStats(NamedTuple):
    avg: float
    min: float
    max: float
    first: float
    p99: float

    @property
    def is_empty(self) -> bool:
        return math.isnan(self.avg)


EMPTY_STATS = DurationStats(NAN, NAN, NAN, NAN, NAN)


class FunctionStats(NamedTuple):
    group_name: str
    bare_name: str
    is_async: bool
    blocking: DurationStats
    execution: DurationStats
    timestamps: tuple

    @property
    def invocations(self) -> int:
        return len(self.timestamps)


def summarize(samples: Sequence[float]) -> DurationStats:
    """
    Reduce a sample sequence to avg/min/max/first/p99.

    `first` is the earliest recorded sample, not the smallest. p99 is the
    sample at index floor(n * 0.99), clamped to the last index. An empty
    sequence yields NaN for every field.
    """
    n = len(samples)
    if n == 0:
        return EMPTY_STATS
    p99_index = min(max(math.floor(n * 0.99), 0), n - 1)
    return DurationStats(
        avg=sum(samples) / n,
        min=min(samples),
        max=max(samples),
        first=samples[0],
        p99=samples[p99_index],
    )


def split_name(function_name: str):
    """Split "Group.name" into ("Group", "name"); ungrouped names get ""."""
    group, sep, bare = function_name.partition(SEPARATOR)
    if not sep:
        return "", function_name
    return group, bare


def function_stats(snapshot) -> list:
    """Statistics for every function of a snapshot, in store order."""
    results = []
    for function_name, timing_set in snapshot.functions.items():
        group, bare = split_name(function_name)
        results.append(
            FunctionStats(
                group_name=group,
                bare_name=bare,
                is_async=timing_set.is_async,
                blocking=summarize(timing_set.blocking_ms),
                execution=summarize(timing_set.execution_ms),
                timestamps=tuple(timing_set.timestamps),
            )
        )
    return results


def sort_by_execution(stats: list) -> list:
    """Order by descending average execution time; undefined averages last."""

    def key(item):
        avg = item.execution.avg
        return (math.isnan(avg), -avg if not math.isnan(avg) else 0.0)

    return sorted(stats, key=key)


def sample_stats(snapshot) -> dict:
    return {sample_id: summarize(values) for sample_id, values in snapshot.samples.items()}
