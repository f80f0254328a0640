"""Structured logging and tracing for the provider cache.

Loggers and tracers are derived from a TelemetryConfig, so every cache
applies its own level and tracing switch on top of whatever structlog
pipeline the application set up. configure_telemetry installs a JSON
pipeline for applications that have none.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Generator

    from structlog.typing import FilteringBoundLogger

    from .config import TelemetryConfig

LOGGER_NAME = "oidc-provider-cache"

# Process-wide tracer, replaced by configure_telemetry
_tracer: trace.Tracer | None = None


def log_level(name: str) -> int:
    """Numeric level for a level name; unknown names map to INFO."""
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def get_tracer(config: TelemetryConfig | None = None) -> trace.Tracer:
    """Tracer for config, or the process-wide cache tracer without one."""
    global _tracer
    if config is not None:
        if not config.enabled:
            return trace.NoOpTracer()
        return trace.get_tracer(config.service_name)

    if _tracer is None:
        _tracer = trace.get_tracer(LOGGER_NAME)
    return _tracer


def get_logger(config: TelemetryConfig | None = None, **context: Any) -> FilteringBoundLogger:
    """Logger with context bound to every event.

    With a config, events below config.log_level are dropped before they
    reach the structlog processors. Without one the level is left to the
    application's structlog configuration.
    """
    if config is None:
        return structlog.get_logger(LOGGER_NAME, **context)

    return structlog.wrap_logger(
        None,
        wrapper_class=structlog.make_filtering_bound_logger(log_level(config.log_level)),
        logger_factory_args=(config.service_name,),
        **context,
    )


def configure_telemetry(config: TelemetryConfig) -> None:
    """Install a JSON structlog pipeline and the process-wide tracer.

    Args:
        config: Telemetry configuration.
    """
    global _tracer

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level(config.log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
    _tracer = trace.get_tracer(config.service_name)


@contextmanager
def trace_operation(
    name: str,
    *,
    tracer: trace.Tracer | None = None,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run a block inside a span, recording any exception on it.

    Args:
        name: Name of the operation.
        tracer: Tracer to use; the process-wide tracer by default.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    tracer = tracer or get_tracer()
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
