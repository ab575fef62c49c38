"""Failure reporting for the driver loop."""

from __future__ import annotations

import logging

from .types import ErrorSink, EventHandler, RunnerEvent, TaskFailure

logger = logging.getLogger(__name__)


def make_logging_sink(log_tracebacks: bool = True) -> ErrorSink:
    """Build the default error sink, which writes failures to the ``seqrun`` logger."""

    def _log_failure(failure: TaskFailure) -> None:
        exc_info = None
        if log_tracebacks:
            error = failure.error
            exc_info = (type(error), error, error.__traceback__)
        logger.error(
            "Task %s failed in runner %s: %s",
            failure.phase.value,
            failure.runner,
            failure.error,
            exc_info=exc_info,
        )

    return _log_failure


def report_failure(sink: ErrorSink, failure: TaskFailure) -> None:
    """Hand one failure to the sink. A sink that raises is logged and ignored."""
    try:
        sink(failure)
    except Exception:
        logger.exception("Error sink raised while reporting %s", failure.describe())


def emit_event(handler: EventHandler | None, event: RunnerEvent) -> None:
    if handler is None:
        return
    try:
        handler(event)
    except Exception:
        logger.exception("Event handler raised on %s event", event.type)
