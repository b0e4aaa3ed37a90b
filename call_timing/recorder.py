"""
Call-timing recorder.

Features:
- `TimingStore`: explicitly constructed store of per-function timing samples
- `init_profiler` / `get_profiler` for an optional module-level default store
- `@profile` decorator for free functions (sync or coroutine functions)
- `profile_method` descriptor for methods, named "<Owner>.<method>"
- `profile_block` context manager for code block timings
- JSON snapshot `dump` / `load`
"""

import functools
import inspect
import json
import threading
import time
from contextlib import contextmanager
from typing import Callable, NamedTuple, Optional, Union

from call_timing import config

# globals
_LOCK = threading.Lock()
_default_store = None


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.perf_counter() * 1000


class FunctionTimingSet(NamedTuple):
    """Immutable view of one function's samples, as captured by a snapshot."""

    timestamps: tuple
    execution_ms: tuple
    blocking_ms: tuple
    is_async: bool


class Snapshot(NamedTuple):
    functions: dict
    samples: dict


class _MutableTimingSet:
    __slots__ = ("timestamps", "execution_ms", "blocking_ms", "is_async")

    def __init__(self, is_async: bool = False):
        self.timestamps = []
        self.execution_ms = []
        self.blocking_ms = []
        self.is_async = is_async

    def freeze(self) -> FunctionTimingSet:
        return FunctionTimingSet(
            tuple(self.timestamps),
            tuple(self.execution_ms),
            tuple(self.blocking_ms),
            self.is_async,
        )


class TimingStore:
    """
    Name-keyed, append-only store of timing samples.

    `enabled` may be a bool or a zero-argument callable; it is evaluated on
    every write, and a false value turns recording into a no-op.
    """

    def __init__(self, enabled: Union[bool, Callable[[], bool]] = True):
        self.enabled = enabled
        self._lock = threading.Lock()
        self._functions = {}
        self._samples = {}

    def is_enabled(self) -> bool:
        enabled = self.enabled
        if callable(enabled):
            enabled = enabled()
        return bool(enabled)

    def _timing_set(self, name: str, is_async: bool) -> _MutableTimingSet:
        timing_set = self._functions.get(name)
        if timing_set is None:
            timing_set = self._functions[name] = _MutableTimingSet(is_async)
        return timing_set

    def record_call(
        self,
        name: str,
        start: float,
        blocking_ms: Optional[float],
        execution_ms: Optional[float],
        is_async: bool = False,
    ) -> None:
        """
        Record a completed call.

        The invocation timestamp and execution duration are appended together
        so that their indices always pair up. Zero durations are skipped.
        Either duration may be None when it is recorded separately.
        """
        if not blocking_ms and not execution_ms:
            return
        if not self.is_enabled():
            return
        with self._lock:
            timing_set = self._timing_set(name, is_async)
            if blocking_ms:
                timing_set.blocking_ms.append(blocking_ms)
            if execution_ms:
                timing_set.timestamps.append(start)
                timing_set.execution_ms.append(execution_ms)
                timing_set.is_async = is_async

    def record_blocking(self, name: str, blocking_ms: float, is_async: bool = False) -> None:
        self.record_call(name, 0.0, blocking_ms, None, is_async)

    def record_sample(self, sample_id: str, duration_ms: float) -> None:
        """Append an externally measured duration to the series `sample_id`."""
        if not self.is_enabled():
            return
        with self._lock:
            self._samples.setdefault(sample_id, []).append(duration_ms)

    def snapshot(self) -> Snapshot:
        """Copy the current samples under the store lock."""
        with self._lock:
            functions = {name: ts.freeze() for name, ts in self._functions.items()}
            samples = {key: tuple(values) for key, values in self._samples.items()}
        return Snapshot(functions, samples)

    def clear(self) -> None:
        with self._lock:
            self._functions.clear()
            self._samples.clear()

    def dump(self, path: str) -> None:
        """Write a JSON snapshot of the store to `path`."""
        snap = self.snapshot()
        payload = {
            "functions": {
                name: {
                    "is_async": ts.is_async,
                    "timestamps": list(ts.timestamps),
                    "execution_ms": list(ts.execution_ms),
                    "blocking_ms": list(ts.blocking_ms),
                }
                for name, ts in snap.functions.items()
            },
            "samples": {key: list(values) for key, values in snap.samples.items()},
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    @classmethod
    def load(cls, path: str, enabled=True) -> "TimingStore":
        """
        Build a store from a JSON snapshot written by `dump`.

        Sequences are loaded as-is, so a snapshot produced elsewhere may carry
        unpaired timestamps; consumers treat a missing duration as 0.
        """
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError(f"{path}: expected a JSON object")
        functions = _mapping(payload.get("functions", {}), f"{path}: functions")
        samples = _mapping(payload.get("samples", {}), f"{path}: samples")
        store = cls(enabled=enabled)
        for name, data in functions.items():
            data = _mapping(data, f"{path}: functions[{name!r}]")
            timing_set = store._timing_set(name, bool(data.get("is_async", False)))
            for field in ("timestamps", "execution_ms", "blocking_ms"):
                values = _numbers(data.get(field, []), f"{path}: functions[{name!r}].{field}")
                getattr(timing_set, field).extend(values)
        for key, values in samples.items():
            store._samples[key] = _numbers(values, f"{path}: samples[{key!r}]")
        return store

    # Convenience views, mirroring the module-level helpers.

    def show_results(self) -> list:
        from call_timing.stats import function_stats

        return function_stats(self.snapshot())

    def generate_sequence_diagram(self, max_iterations: int = config.DEFAULT_MAX_ITERATIONS) -> str:
        from call_timing.exporters.sequence import generate_sequence_diagram

        return generate_sequence_diagram(self, max_iterations=max_iterations)

    def log(self) -> None:
        """Print the statistics table to the console."""
        from call_timing.exporters.table import print_table
        from call_timing.stats import sort_by_execution

        print_table(sort_by_execution(self.show_results()))

    def save_results(self, name: str = "profiler-results") -> Optional[str]:
        from call_timing.exporters.save import save_file
        from call_timing.exporters.table import to_csv

        return save_file(to_csv(self.show_results()), name, "csv")

    def save_sequence_diagram(self, name: str = "sequence-diagram") -> Optional[str]:
        from call_timing.exporters.save import save_file

        return save_file(self.generate_sequence_diagram(), name, "markdown")


def init_profiler(enabled=None) -> TimingStore:
    """
    Create the module-level default store used by the decorators.
    When `enabled` is None, CALL_TIMING_ENABLED decides.
    Calling it again returns the existing store.
    """
    global _default_store
    with _LOCK:
        if _default_store is None:
            if enabled is None:
                enabled = config.enabled_from_env()
            _default_store = TimingStore(enabled=enabled)
        return _default_store


def get_profiler() -> Optional[TimingStore]:
    return _default_store


def reset_profiler() -> None:
    """Drop the module-level default store."""
    global _default_store
    with _LOCK:
        _default_store = None


def _resolve(store: Optional[TimingStore]) -> Optional[TimingStore]:
    return store if store is not None else _default_store


def _function_name(func) -> str:
    name = getattr(func, "__name__", None)
    if not name or name == "<lambda>":
        return "anonymous"
    return name


async def _await_and_record(awaitable, target, name: str, start: float):
    try:
        return await awaitable
    finally:
        target.record_call(name, start, None, now_ms() - start, is_async=True)


def _instrument(func, name: str, deferred: bool, store: Optional[TimingStore]):
    """Build the timing wrapper shared by `profile` and `profile_method`."""
    if deferred and not inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        def deferred_wrapper(*args, **kwargs):
            target = _resolve(store)
            start = now_ms()
            result = func(*args, **kwargs)
            if target is None:
                return result
            target.record_blocking(name, now_ms() - start, is_async=True)
            if callable(getattr(result, "add_done_callback", None)):
                # asyncio and concurrent.futures futures are returned untouched
                result.add_done_callback(
                    lambda _: target.record_call(name, start, None, now_ms() - start, is_async=True)
                )
                return result
            if inspect.isawaitable(result):
                return _await_and_record(result, target, name, start)
            # nothing pending after all
            target.record_call(name, start, None, now_ms() - start)
            return result

        return deferred_wrapper

    if deferred:

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            target = _resolve(store)
            start = now_ms()
            awaitable = func(*args, **kwargs)
            if target is not None:
                target.record_blocking(name, now_ms() - start, is_async=True)
            try:
                return await awaitable
            finally:
                if target is not None:
                    target.record_call(name, start, None, now_ms() - start, is_async=True)

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        target = _resolve(store)
        start = now_ms()
        try:
            return func(*args, **kwargs)
        finally:
            if target is not None:
                elapsed = now_ms() - start
                target.record_call(name, start, elapsed, elapsed)

    return wrapper


def profile(func=None, *, name: str = None, deferred: bool = None, store: TimingStore = None):
    """
    Decorator: time every call of a free function.

    `deferred` marks functions whose result completes later; it defaults to
    True for coroutine functions. A plain function marked deferred runs at
    call time; a returned future is handed back as-is and timed when done.
    Usable bare (`@profile`) or with options
    (`@profile(name="Loader.fetch")`).
    """

    def decorate(fn):
        is_deferred = inspect.iscoroutinefunction(fn) if deferred is None else deferred
        return _instrument(fn, name or _function_name(fn), is_deferred, store)

    if func is None:
        return decorate
    return decorate(func)


class profile_method:
    """
    Method descriptor timing every call as "<Owner>.<method>".

    Accepts plain functions, staticmethods and classmethods.
    """

    def __init__(self, func=None, *, deferred: bool = None, store: TimingStore = None):
        self._func = func
        self._deferred = deferred
        self._store = store
        self._name = None
        self._wrapped = None
        if func is not None:
            functools.update_wrapper(self, _unwrap_descriptor(func))

    def __call__(self, func):
        # @profile_method(...) with options
        if self._func is not None:
            raise TypeError("profile_method already wraps a function")
        self._func = func
        functools.update_wrapper(self, _unwrap_descriptor(func))
        return self

    def __set_name__(self, owner, name):
        self._name = f"{owner.__name__}.{name}"
        raw = _unwrap_descriptor(self._func)
        deferred = inspect.iscoroutinefunction(raw) if self._deferred is None else self._deferred
        self._wrapped = _instrument(raw, self._name, deferred, self._store)

    def __get__(self, instance, owner=None):
        if self._wrapped is None:
            # used outside a class body
            owner = owner if owner is not None else type(instance)
            self.__set_name__(owner, _function_name(_unwrap_descriptor(self._func)))
        if isinstance(self._func, staticmethod):
            return self._wrapped
        if isinstance(self._func, classmethod):
            return self._wrapped.__get__(owner if owner is not None else type(instance), owner)
        if instance is None:
            return self._wrapped
        return self._wrapped.__get__(instance, owner)


def _unwrap_descriptor(func):
    if isinstance(func, (staticmethod, classmethod)):
        return func.__func__
    return func


@contextmanager
def profile_block(name: str, store: TimingStore = None):
    """Context manager: time a code block as one call of `name`."""
    target = _resolve(store)
    start = now_ms()
    try:
        yield
    finally:
        if target is not None:
            elapsed = now_ms() - start
            target.record_call(name, start, elapsed, elapsed)


def _mapping(value, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where}: expected a JSON object")
    return value


def _numbers(values, where: str) -> list:
    if not isinstance(values, list):
        raise ValueError(f"{where}: expected a list of numbers")
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"{where}: {v!r} is not a number")
    return [float(v) for v in values]
