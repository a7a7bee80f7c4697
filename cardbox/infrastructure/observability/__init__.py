"""Observability and logging facades."""

from .logging import (
    configure_logging,
    get_logger,
    log_context,
    log_exception,
)
from .metrics import (
    format_prometheus,
    get_metrics_summary,
    increment_counter,
    observe_histogram,
    record_analysis,
    record_recognizer_result,
)
from .tracing import (
    configure_tracing,
    is_tracing_enabled,
    record_exception,
    set_span_attribute,
    trace_span,
    traced,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
    "log_exception",
    # Metrics
    "format_prometheus",
    "get_metrics_summary",
    "increment_counter",
    "observe_histogram",
    "record_analysis",
    "record_recognizer_result",
    # Tracing
    "configure_tracing",
    "is_tracing_enabled",
    "record_exception",
    "set_span_attribute",
    "trace_span",
    "traced",
]
