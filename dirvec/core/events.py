"""
Structured event sink used by the pipeline components.

Components report what happened through an injected sink instead of writing
to the console, so callers can route events to logs and tests can assert on
them directly.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from ..utils.logger import get_logger


@runtime_checkable
class EventSink(Protocol):
    """Receiver for structured pipeline events."""

    def emit(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        """Record an event with structured fields."""
        ...


class LoggingEventSink:
    """
    Event sink that writes every event through the logging stack.

    Fields are attached as ``extra_fields`` so the JSON formatter keeps them
    as structured data; the console line gets a compact ``key=value`` form.
    """

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None):
        self.logger = logger or get_logger("dirvec.events")

    def emit(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        details = " ".join(f"{key}={value!r}" for key, value in fields.items())
        message = f"{event} {details}" if details else event
        self.logger.log(level, message, extra={"extra_fields": {"event": event, **fields}})
