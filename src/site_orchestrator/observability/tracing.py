"""OpenTelemetry span helpers for the bootstrap sequence.

Only the OpenTelemetry API is used here. Without a configured SDK tracer
provider every span is a no-op, so builds pay nothing for tracing unless a
reporter installs one.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Final

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode, Tracer

TRACER_NAME: Final[str] = "site_orchestrator.bootstrap"
ROOT_SPAN_NAME: Final[str] = "bootstrap"

AttributeValue = str | bool | int | float


def get_tracer(provider: trace.TracerProvider | None = None) -> Tracer:
    """Return the bootstrap tracer from ``provider`` or the global provider."""

    return trace.get_tracer(TRACER_NAME, tracer_provider=provider)


@contextmanager
def traced_span(
    tracer: Tracer,
    name: str,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> Iterator[Span]:
    """Open ``name`` as the current span and end it exactly once on every exit path.

    Exceptions are recorded on the span, marked as an error status and re-raised.
    """

    with tracer.start_as_current_span(
        name,
        attributes=dict(attributes or {}),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except BaseException as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc) or exc.__class__.__name__))
            raise


__all__ = ["ROOT_SPAN_NAME", "TRACER_NAME", "get_tracer", "traced_span"]
