"""Trace context management for tracking sync operations through the system."""

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

# Context variable for storing the current trace ID
_trace_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)


def create_trace() -> str:
    """
    Generate a new unique trace ID and set it in the current context.

    Returns:
        A unique trace ID string (UUID4 format)
    """
    trace_id = str(uuid.uuid4())
    set_trace(trace_id)
    return trace_id


def get_current_trace() -> Optional[str]:
    """Get the current trace ID, or None when no operation is being traced."""
    return _trace_id_context.get()


def set_trace(trace_id: str) -> None:
    """Set the trace ID in the current context."""
    _trace_id_context.set(trace_id)


def clear_trace() -> None:
    """Clear the trace ID from the current context."""
    _trace_id_context.set(None)


@contextmanager
def traced() -> Iterator[str]:
    """
    Run a block under a trace ID.

    Reuses the enclosing trace when one is active so that nested operations
    (a refresh inside a bulk refresh) share one ID; otherwise creates a new one
    and restores the previous state on exit.
    """
    existing = get_current_trace()
    if existing:
        yield existing
        return

    token = _trace_id_context.set(str(uuid.uuid4()))
    try:
        yield _trace_id_context.get()
    finally:
        _trace_id_context.reset(token)
