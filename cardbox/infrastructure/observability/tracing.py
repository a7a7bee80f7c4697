"""Optional OpenTelemetry tracing for the analysis pipeline.

Tracing is off until :func:`configure_tracing` succeeds, which requires the
``opentelemetry-sdk`` package (installed with the ``tracing`` extra). While
off, every helper here is a no-op so recognizers can be wrapped
unconditionally.

Usage::

    configure_tracing(service_name="cardbox-api")

    with trace_span("decode_qr", edge=800):
        ...

    @traced("score_candidate")
    def score(candidate: str) -> ScoreBreakdown:
        ...
"""

from __future__ import annotations

import functools
import inspect
import os
from contextlib import AbstractContextManager
from typing import Any, Callable, TypeVar

from .logging import get_logger, log_context

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_tracer: Any = None
_tracing_enabled: bool = False


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


def configure_tracing(
    *,
    service_name: str = "cardbox",
    enable: bool = True,
    sample_rate: float = 1.0,
) -> bool:
    """Configure OpenTelemetry tracing.

    Spans are printed to the console when ``OTEL_TRACES_CONSOLE=true``;
    otherwise they are recorded for any processor registered elsewhere.

    Returns:
        True if tracing was successfully configured, False otherwise.
    """
    global _tracer, _tracing_enabled

    if not enable:
        _tracing_enabled = False
        logger.info("Tracing disabled by configuration")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
        from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
    except ImportError as e:
        logger.debug("OpenTelemetry not available: %s", e)
        _tracing_enabled = False
        return False

    provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sample_rate),
    )
    if os.environ.get("OTEL_TRACES_CONSOLE", "").lower() == "true":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console trace exporter enabled")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)
    _tracing_enabled = True
    logger.info("Tracing enabled for service '%s'", service_name)
    return True


class trace_span(AbstractContextManager):
    """Context manager opening a span; yields None when tracing is off.

    While the span is open its trace and span IDs are part of the log
    context, so log lines can be matched with the exported spans.
    """

    def __init__(self, name: str, **attributes: Any):
        self.name = name
        self.attributes = attributes
        self.span = None
        self._span_ctx = None
        self._log_ctx = None

    def __enter__(self):
        if not _tracing_enabled or _tracer is None:
            return None
        self._span_ctx = _tracer.start_as_current_span(self.name)
        self.span = self._span_ctx.__enter__()
        for key, value in self.attributes.items():
            if value is not None:
                self.span.set_attribute(key, str(value))
        ctx = self.span.get_span_context()
        if ctx.is_valid:
            self._log_ctx = log_context(
                trace_id=format(ctx.trace_id, "032x"),
                span_id=format(ctx.span_id, "016x"),
            )
            self._log_ctx.__enter__()
        return self.span

    def __exit__(self, exc_type, exc_value, traceback):
        if self._log_ctx is not None:
            self._log_ctx.__exit__(None, None, None)
        if self._span_ctx is not None:
            self._span_ctx.__exit__(exc_type, exc_value, traceback)
        return False


def traced(name: str | None = None) -> Callable[[F], F]:
    """Decorator to run a function (sync or async) inside a span.

    Example::

        @traced("decode_barcode")
        def decode(self, image): ...
    """

    def decorator(func: F) -> F:
        span_name = name or func.__name__

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name):
                return func(*args, **kwargs)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name):
                return await func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator


def set_span_attribute(key: str, value: Any) -> None:
    """Set an attribute on the current span (no-op when tracing is off)."""
    if not _tracing_enabled:
        return

    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span.set_attribute(key, str(value))


def record_exception(exception: BaseException) -> None:
    """Record an exception on the current span (no-op when tracing is off)."""
    if not _tracing_enabled:
        return

    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span.record_exception(exception)
        span.set_status(trace.Status(trace.StatusCode.ERROR))
