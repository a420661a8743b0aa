"""Structured JSON logging for tokenops operations."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from queue import Full, Queue
from typing import IO, Iterable
from uuid import uuid4

from typing_extensions import override

__all__ = [
    "BoundedQueueHandler",
    "JsonFormatter",
    "REDACTED",
    "configure_structured_logging",
    "shutdown_listeners",
]

LOGGER = logging.getLogger(__name__)

REDACTED = "[redacted]"

_STRUCTURED_RESERVED_KEYS: tuple[str, ...] = (
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
)


def _is_secret_key(key: str) -> bool:
    return key.lower().startswith("secret")


class JsonFormatter(logging.Formatter):
    """Render log records as JSON; context keys named ``secret*`` are redacted."""

    def __init__(self, *, default_trace_id: str | None = None) -> None:
        super().__init__()
        self._default_trace_id = default_trace_id

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        message = record.getMessage()
        trace_id = getattr(record, "trace_id", None) or self._default_trace_id

        exception_text: str | None = None
        if record.exc_info:
            exception_text = self.formatException(record.exc_info)
        elif record.exc_text:
            exception_text = record.exc_text

        context: dict[str, object] = {}
        for key, value in record.__dict__.items():
            if key in _STRUCTURED_RESERVED_KEYS or key == "trace_id":
                continue
            context[key] = REDACTED if _is_secret_key(key) else value

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "trace_id": trace_id,
            "context": context,
        }

        if exception_text:
            payload["exception"] = exception_text

        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records when the queue is full."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            self.handleError(record)

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        """Drop the record silently when the queue is full."""

        return


def configure_structured_logging(
    logger: logging.Logger,
    *,
    trace_id: str | None = None,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    max_queue: int = 1024,
) -> logging.handlers.QueueListener:
    """Attach a bounded queue handler that drains to a JSON stream handler.

    Args:
        logger: Target logger, usually the ``tokenops`` package logger.
        trace_id: Static trace identifier stamped on every record that does
            not carry its own. A random one is generated when omitted.
        level: Logging verbosity level.
        stream: Destination stream; ``sys.stderr`` when omitted.
        max_queue: Records buffered before new ones are dropped.

    Returns:
        The started queue listener; pass it to :func:`shutdown_listeners`.
    """
    logger.setLevel(level)

    effective_trace_id = trace_id or str(uuid4())

    record_queue: Queue[logging.LogRecord] = Queue(maxsize=max_queue)
    logger.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(JsonFormatter(default_trace_id=effective_trace_id))

    queue_listener = logging.handlers.QueueListener(record_queue, stream_handler)
    queue_listener.start()
    return queue_listener


def shutdown_listeners(listeners: Iterable[logging.handlers.QueueListener]) -> None:
    """Stop all queue listeners, logging (not raising) shutdown failures."""
    for listener in listeners:
        try:
            listener.stop()
        except Exception as exc:  # pragma: no cover - listener cleanup
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
