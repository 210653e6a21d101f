"""Public observability primitives: structured logging, tracing, and event streaming."""

from site_orchestrator.observability.events import (
    DispatchError,
    EventBus,
    Subscriber,
    build_event,
)
from site_orchestrator.observability.logging import (
    LoggingConfig,
    LogRedactor,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    default_log_redactor,
    get_active_logging_handle,
    get_correlation_context,
    setup_structured_logging,
    shutdown_logging,
)
from site_orchestrator.observability.tracing import (
    ROOT_SPAN_NAME,
    get_tracer,
    traced_span,
)

__all__ = [
    "ROOT_SPAN_NAME",
    "DispatchError",
    "EventBus",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "Subscriber",
    "build_event",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "get_tracer",
    "setup_structured_logging",
    "shutdown_logging",
    "traced_span",
]
