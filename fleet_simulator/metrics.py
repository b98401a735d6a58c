"""Metrics counters emitted by the simulator.

The scheduler and controller only talk to the :class:`MetricsSink`
interface, so any backend can be plugged in.  :class:`InMemoryMetrics`
is the default and is what the tests inspect.
"""

from __future__ import annotations

import collections
import threading
from abc import ABC, abstractmethod

__all__ = [
    "ANOMALIES",
    "DATA_SENT",
    "DISCONNECTED",
    "InMemoryMetrics",
    "MetricsSink",
    "RECONNECTED",
]

ANOMALIES = "simulator.anomalies"
DATA_SENT = "simulator.data.sent"
DISCONNECTED = "simulator.disconnected"
RECONNECTED = "simulator.reconnected"


class MetricsSink(ABC):
    """Monotonic counter interface."""

    @abstractmethod
    def increment(self, name: str, amount: int = 1) -> None:
        """Add *amount* to the counter called *name*."""


class InMemoryMetrics(MetricsSink):
    """Thread-safe counters held in a :class:`collections.Counter`."""

    def __init__(self) -> None:
        self._counts: collections.Counter[str] = collections.Counter()
        self._lock = threading.Lock()

    def increment(self, name: str, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError("Counters are monotonic - amount must be >= 0")
        with self._lock:
            self._counts[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)
