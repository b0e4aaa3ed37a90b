"""
Call timing recorder with statistics and sequence-diagram views.
"""

from call_timing.recorder import (
    TimingStore,
    get_profiler,
    init_profiler,
    profile,
    profile_block,
    profile_method,
    reset_profiler,
)
from call_timing.stats import summarize

__all__ = [
    "TimingStore",
    "get_profiler",
    "init_profiler",
    "profile",
    "profile_block",
    "profile_method",
    "reset_profiler",
    "summarize",
]
