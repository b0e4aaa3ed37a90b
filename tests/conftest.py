import itertools

import pytest

from call_timing import recorder
from call_timing.recorder import FunctionTimingSet, Snapshot, TimingStore


def make_snapshot(functions, samples=None):
    """
    Build a snapshot from {name: (timestamps, durations)} or
    {name: (timestamps, durations, blocking, is_async)}.
    """
    built = {}
    for name, entry in functions.items():
        timestamps, durations = entry[0], entry[1]
        blocking = entry[2] if len(entry) > 2 else ()
        is_async = entry[3] if len(entry) > 3 else False
        built[name] = FunctionTimingSet(tuple(timestamps), tuple(durations), tuple(blocking), is_async)
    return Snapshot(built, dict(samples or {}))


@pytest.fixture
def store():
    return TimingStore(enabled=True)


@pytest.fixture
def fake_clock(monkeypatch):
    """Replace the recorder clock with one advancing 5ms per reading."""
    ticks = itertools.count(0.0, 5.0)
    monkeypatch.setattr(recorder, "now_ms", lambda: next(ticks))
    return ticks


@pytest.fixture(autouse=True)
def no_default_profiler():
    recorder.reset_profiler()
    yield
    recorder.reset_profiler()


@pytest.fixture
def sample_flow():
    """App.init calls DataService.fetch, which calls Utils.parse; then a sibling call."""
    return make_snapshot(
        {
            "App.init": ([0], [100]),
            "DataService.fetch": ([10], [50]),
            "Utils.parse": ([30], [20]),
            "DataService.process": ([60], [15]),
        }
    )


@pytest.fixture
def snapshot_of():
    return make_snapshot
