from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Any, Iterator

_ALLOWED_LABELS = {"status", "source"}
_MetricKey = tuple[str, tuple[tuple[str, str], ...]]


@dataclass
class _TimerStats:
    count: int = 0
    total: float = 0.0
    minimum: float = float("inf")
    maximum: float = 0.0

    def add(self, ms: float) -> None:
        self.count += 1
        self.total += ms
        self.minimum = min(self.minimum, ms)
        self.maximum = max(self.maximum, ms)

    def as_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "sum": self.total,
            "min": self.minimum if self.count else 0.0,
            "max": self.maximum,
            "avg": self.total / self.count if self.count else 0.0,
        }


_lock = Lock()
_counters: dict[_MetricKey, int] = {}
_timers: dict[_MetricKey, _TimerStats] = {}


def _metric_key(name: str, labels: dict[str, Any] | None) -> _MetricKey:
    if not labels:
        return name, ()
    kept = sorted((key, str(value)) for key, value in labels.items() if key in _ALLOWED_LABELS and value is not None)
    return name, tuple(kept)


def _render_key(key: _MetricKey) -> str:
    name, labels = key
    if not labels:
        return name
    joined = ",".join(f"{k}={v}" for k, v in labels)
    return f"{name}{{{joined}}}"


def increment(name: str, value: int = 1, labels: dict[str, Any] | None = None) -> None:
    key = _metric_key(name, labels)
    with _lock:
        _counters[key] = _counters.get(key, 0) + value


def observe_ms(name: str, ms: float, labels: dict[str, Any] | None = None) -> None:
    key = _metric_key(name, labels)
    with _lock:
        _timers.setdefault(key, _TimerStats()).add(ms)


@contextmanager
def timed(name: str, labels: dict[str, Any] | None = None) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        observe_ms(name, (time.perf_counter() - started) * 1000.0, labels=labels)


def snapshot() -> dict[str, Any]:
    with _lock:
        counters = {_render_key(key): value for key, value in _counters.items()}
        timers = {_render_key(key): stats.as_dict() for key, stats in _timers.items()}
    return {"counters": counters, "timers_ms": timers}


def reset() -> None:
    with _lock:
        _counters.clear()
        _timers.clear()
