"""Tracing decorator for workflow operations.

Uses the OpenTelemetry API only: when no tracer provider is installed the
spans are no-ops, so decorated code runs unchanged in tests.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

T = TypeVar("T")

_SAFE_ATTR_TYPES = (str, int, float, bool)


def _set_safe_span_attrs(span: trace.Span, kwargs: dict[str, Any]) -> None:
    """Copy scalar keyword arguments (ids, codes, flags) onto the span."""
    for key, value in kwargs.items():
        if isinstance(value, _SAFE_ATTR_TYPES):
            span.set_attribute(f"plm.{key}", value)


def traced(
    operation_name: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Wrap an async function in a span named operation_name (defaults to module.qualname).

    Exceptions are recorded on the span and re-raised.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        tracer = trace.get_tracer(func.__module__)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            with tracer.start_as_current_span(span_name) as span:
                _set_safe_span_attrs(span, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Set attributes on the current span (no-op without an active span)."""
    span = trace.get_current_span()
    for key, value in attributes.items():
        span.set_attribute(f"plm.{key}", value)
