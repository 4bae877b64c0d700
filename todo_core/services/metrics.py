"""
Metrics observation seam.

Services report each mutating call as an OperationEvent to an injected sink.
The core never talks to a metrics backend itself; front-ends adapt a sink to
whatever they export.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from todo_core.domain.enums import Outcome


@dataclass(frozen=True)
class OperationEvent:
    operation: str
    outcome: Outcome
    duration: float


class MetricsSink(Protocol):
    def observe(self, event: OperationEvent) -> None: ...


class NullMetrics:
    def observe(self, event: OperationEvent) -> None:
        return


class CounterMetrics:
    """Thread-safe in-process aggregation of operation events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[tuple[str, Outcome], int] = defaultdict(int)
        self._durations: dict[str, float] = defaultdict(float)

    def observe(self, event: OperationEvent) -> None:
        with self._lock:
            self._counts[(event.operation, event.outcome)] += 1
            self._durations[event.operation] += event.duration

    def count(self, operation: str, outcome: Outcome = Outcome.SUCCESS) -> int:
        with self._lock:
            return self._counts.get((operation, outcome), 0)

    def total_duration(self, operation: str) -> float:
        with self._lock:
            return self._durations.get(operation, 0.0)

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            result: dict[str, dict[str, int]] = {}
            for (operation, outcome), count in self._counts.items():
                result.setdefault(operation, {})[outcome.value] = count
            return result


@contextmanager
def observed(sink: MetricsSink, operation: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    except Exception:
        sink.observe(OperationEvent(operation, Outcome.FAILURE, time.perf_counter() - started))
        raise
    sink.observe(OperationEvent(operation, Outcome.SUCCESS, time.perf_counter() - started))
