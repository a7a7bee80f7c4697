"""In-process metrics for the card analysis pipeline.

Counters and duration observations live in memory and are exposed through
the ``/metrics`` endpoint in Prometheus text format.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Mapping

LabelKey = tuple[tuple[str, str], ...]


def _labels_to_key(labels: Mapping[str, str] | None) -> LabelKey:
    if labels is None:
        return ()
    return tuple(sorted(labels.items()))


@dataclass
class Counter:
    """A monotonically increasing counter."""

    name: str
    help_text: str = ""
    _values: dict[LabelKey, float] = field(
        default_factory=lambda: defaultdict(float)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc(self, value: float = 1.0, labels: Mapping[str, str] | None = None) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Mapping[str, str] | None = None) -> float:
        key = _labels_to_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)


@dataclass
class Histogram:
    """Records observations and reports count, sum and average."""

    name: str
    help_text: str = ""
    _observations: dict[LabelKey, list[float]] = field(
        default_factory=lambda: defaultdict(list)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(self, value: float, labels: Mapping[str, str] | None = None) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            self._observations[key].append(value)

    def get_stats(self, labels: Mapping[str, str] | None = None) -> dict[str, float]:
        key = _labels_to_key(labels)
        with self._lock:
            values = list(self._observations.get(key, []))
        if not values:
            return {"count": 0, "sum": 0.0, "avg": 0.0}
        return {
            "count": len(values),
            "sum": sum(values),
            "avg": sum(values) / len(values),
        }


class MetricRegistry:
    """Registry holding every counter and histogram by name."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name, help_text=help_text)
            return self._counters[name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name=name, help_text=help_text)
            return self._histograms[name]

    def all_counters(self) -> dict[str, Counter]:
        with self._lock:
            return dict(self._counters)

    def all_histograms(self) -> dict[str, Histogram]:
        with self._lock:
            return dict(self._histograms)

    def reset(self) -> None:
        """Drop every metric (used between tests)."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


_registry = MetricRegistry()


def get_registry() -> MetricRegistry:
    """Return the process-wide registry."""
    return _registry


def increment_counter(
    name: str,
    value: float = 1.0,
    labels: Mapping[str, str] | None = None,
    help_text: str = "",
) -> None:
    """Increment a counter by name, creating it if needed."""
    _registry.counter(name, help_text).inc(value, labels)


def observe_histogram(
    name: str,
    value: float,
    labels: Mapping[str, str] | None = None,
    help_text: str = "",
) -> None:
    """Record an observation in a histogram, creating it if needed."""
    _registry.histogram(name, help_text).observe(value, labels)


# ---------------------------------------------------------------------------
# Pipeline metrics
# ---------------------------------------------------------------------------

RECOGNIZER_RUNS = "recognizer_runs_total"
RECOGNIZER_DURATION = "recognizer_duration_seconds"
ANALYSES = "card_analyses_total"
ANALYSIS_DURATION = "card_analysis_duration_seconds"


def record_recognizer_result(recognizer: str, outcome: str, duration: float) -> None:
    """Record one recognizer run.

    Args:
        recognizer: 'qr', 'barcode' or 'ocr'.
        outcome: 'hit', 'empty', 'error' or 'timeout'.
        duration: Wall-clock seconds spent waiting for the recognizer.
    """
    increment_counter(
        RECOGNIZER_RUNS,
        labels={"recognizer": recognizer, "outcome": outcome},
        help_text="Recognizer runs by outcome",
    )
    observe_histogram(
        RECOGNIZER_DURATION,
        duration,
        labels={"recognizer": recognizer},
        help_text="Recognizer duration in seconds",
    )


def record_analysis(source: str, duration: float) -> None:
    """Record a finished analysis by the source of its best value.

    Args:
        source: 'qr', 'barcode', 'ocr', 'none' or 'failed'.
        duration: Total analysis time in seconds.
    """
    increment_counter(
        ANALYSES, labels={"source": source}, help_text="Card analyses by source"
    )
    observe_histogram(
        ANALYSIS_DURATION, duration, help_text="Card analysis duration in seconds"
    )


def _label_str(key: LabelKey) -> str:
    return ",".join(f"{k}={v}" for k, v in key) if key else "default"


def get_metrics_summary() -> dict[str, object]:
    """Return a summary of all metrics for logging or API response."""
    counters: dict[str, dict[str, float]] = {}
    histograms: dict[str, dict[str, dict[str, float]]] = {}

    for name, counter in _registry.all_counters().items():
        counters[name] = {_label_str(k): v for k, v in counter._values.items()}

    for name, histogram in _registry.all_histograms().items():
        histograms[name] = {
            _label_str(k): histogram.get_stats(dict(k) if k else None)
            for k in list(histogram._observations)
        }

    return {"counters": counters, "histograms": histograms}


def format_prometheus() -> str:
    """Format metrics in Prometheus text exposition format."""
    lines: list[str] = []

    for name, counter in _registry.all_counters().items():
        if counter.help_text:
            lines.append(f"# HELP {name} {counter.help_text}")
        lines.append(f"# TYPE {name} counter")
        for key, value in counter._values.items():
            if key:
                label_str = ",".join(f'{k}="{v}"' for k, v in key)
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

    for name, histogram in _registry.all_histograms().items():
        if histogram.help_text:
            lines.append(f"# HELP {name} {histogram.help_text}")
        lines.append(f"# TYPE {name} summary")
        for key in list(histogram._observations):
            stats = histogram.get_stats(dict(key) if key else None)
            suffix = ""
            if key:
                suffix = "{" + ",".join(f'{k}="{v}"' for k, v in key) + "}"
            lines.append(f"{name}_count{suffix} {stats['count']}")
            lines.append(f"{name}_sum{suffix} {stats['sum']}")

    return "\n".join(lines)
