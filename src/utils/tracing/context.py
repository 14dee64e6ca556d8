"""
Span helpers for sync steps.

Each step of a run (connecting, reconciling the schema, copying a table,
installing triggers) is wrapped in trace_operation. Code running inside a
step tags the active span through add_span_attributes and add_span_event,
so the migrator and reconciler never need a span reference.

Attribute values are exported as strings; table names, row counts and
SyncState values all go through str().
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


def _as_strings(attributes: dict) -> dict[str, str]:
    return {key: str(value) for key, value in attributes.items()}


def _mark_failed(span: trace.Span, error: Exception) -> None:
    span.set_attribute("error", True)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run one sync step inside its own span.

    An exception escaping the block marks the span failed (error, error.type,
    error.message plus the recorded exception) and is re-raised unchanged.

    Args:
        operation_name: Step name, e.g. reconcile_schema or copy_table
        kind: CLIENT for statements sent to a server, INTERNAL otherwise
        **attributes: Initial span attributes, typically table and database

    Yields:
        The active span

    Example:
        >>> with trace_operation("copy_table", table="customers") as span:
        ...     rows = migrator.copy_data("customers")
        ...     span.set_attribute("rows_copied", rows)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(operation_name, kind=kind) as span:
        span.set_attributes(_as_strings(attributes))
        try:
            yield span
        except Exception as e:
            _mark_failed(span, e)
            raise


def add_span_attributes(**attributes):
    """Tag the active step span, e.g. with rows_copied once a copy finishes."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.set_attributes(_as_strings(attributes))


def add_span_event(name: str, **attributes):
    """
    Record a point-in-time event on the active step span.

    The reconciler emits table_dropped and table_created here, so one
    reconcile_schema span shows the order tables were changed in.
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(name, attributes=_as_strings(attributes))
