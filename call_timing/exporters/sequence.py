"""
sequence.py

Infers a call flow from recorded timings and renders it as a Mermaid
sequence diagram.

Only invocation timestamps and durations are available, so the flow is a
heuristic: an invocation that starts while another is still running is
taken to be called by it. Coincidental overlap (threads, interleaved
coroutines) is indistinguishable from a real call. The output is
deterministic for a given snapshot and iteration cap.
"""

import enum
from typing import NamedTuple

from call_timing import config
from call_timing.stats import SEPARATOR, split_name

CYCLE_NOTE = "Circular pattern detected - diagram truncated"
NO_DATA_LINE = "  Note over Profiler: No profiling data recorded"
# Names kept in a trace signature; checking starts once this many are seen.
SIGNATURE_LENGTH = 3


class SequenceEvent(NamedTuple):
    timestamp: float
    function_name: str
    duration: float
    is_async: bool


class EdgeKind(enum.Enum):
    CALL = "call"
    RETURN = "return"


class Participant(NamedTuple):
    name: str


class CallEdge(NamedTuple):
    source: str
    target: str
    kind: EdgeKind
    label: str


class TruncationNote(NamedTuple):
    participant: str


class NoData(NamedTuple):
    pass


def participant_of(function_name: str) -> str:
    """"Class.method" -> "Class"; names without a separator stand alone."""
    return function_name.split(SEPARATOR, 1)[0]


def flatten_events(snapshot) -> list:
    """One event per recorded invocation, sorted by start time (stable)."""
    events = []
    for function_name, timing_set in snapshot.functions.items():
        durations = timing_set.execution_ms
        for i, timestamp in enumerate(timing_set.timestamps):
            duration = durations[i] if i < len(durations) else 0
            events.append(SequenceEvent(timestamp, function_name, duration, timing_set.is_async))
    # list.sort is stable: equal timestamps keep flattening order
    events.sort(key=lambda e: e.timestamp)
    return events


def _starts_within(inner: SequenceEvent, outer: SequenceEvent) -> bool:
    return outer.timestamp <= inner.timestamp <= outer.timestamp + outer.duration


def reconstruct(snapshot, max_iterations: int = config.DEFAULT_MAX_ITERATIONS) -> list:
    """
    Turn a snapshot into render instructions.

    Walks adjacent pairs of the time-ordered events. A pair where the second
    event starts before the first one ends becomes a call edge. Otherwise the
    first event is checked against its predecessor and, if it started inside
    it, a return edge is emitted. Names along an unbroken nesting chain form
    a trace; a trace signature seen before ends the walk with a note.
    """
    events = flatten_events(snapshot)
    if not events:
        return [NoData()]

    instructions = []
    seen = set()
    for event in events:
        participant = participant_of(event.function_name)
        if participant not in seen:
            seen.add(participant)
            instructions.append(Participant(participant))

    trace = []
    history = set()
    for i in range(min(len(events) - 1, max_iterations)):
        current = events[i]
        nxt = events[i + 1]
        current_participant = participant_of(current.function_name)

        nested = nxt.timestamp < current.timestamp + current.duration
        if nested:
            instructions.append(
                CallEdge(
                    current_participant,
                    participant_of(nxt.function_name),
                    EdgeKind.CALL,
                    split_name(nxt.function_name)[1],
                )
            )
        elif i > 0:
            prev = events[i - 1]
            if _starts_within(current, prev):
                instructions.append(
                    CallEdge(
                        current_participant,
                        participant_of(prev.function_name),
                        EdgeKind.RETURN,
                        "return",
                    )
                )

        trace.append(current.function_name)
        if len(trace) >= SIGNATURE_LENGTH:
            signature = "->".join(trace[-SIGNATURE_LENGTH:])
            if signature in history:
                instructions.append(TruncationNote(current_participant))
                break
            history.add(signature)

        if not nested:
            trace = []

    return instructions


def render(instructions) -> str:
    """Format render instructions as a fenced Mermaid sequence diagram."""
    lines = ["```mermaid", "sequenceDiagram"]
    for instruction in instructions:
        if isinstance(instruction, NoData):
            lines.append(NO_DATA_LINE)
        elif isinstance(instruction, Participant):
            lines.append(f"  participant {instruction.name}")
        elif isinstance(instruction, CallEdge):
            arrow = "->>" if instruction.kind is EdgeKind.CALL else "-->>"
            lines.append(f"  {instruction.source}{arrow}{instruction.target}: {instruction.label}")
        elif isinstance(instruction, TruncationNote):
            lines.append(f"  Note over {instruction.participant}: {CYCLE_NOTE}")
    lines.append("```")
    return "\n".join(lines) + "\n"


def generate_sequence_diagram(store, max_iterations: int = config.DEFAULT_MAX_ITERATIONS) -> str:
    return render(reconstruct(store.snapshot(), max_iterations=max_iterations))

