# src/utils/logging.py
"""Structured logging with JSON format and per-message correlation.

Provides:
- JSON-formatted log output for structured logging
- Chat and message correlation IDs via ContextVar for async-safe tracking
- Centralized logger configuration
"""

import json
import logging
from contextvars import ContextVar
from typing import Any

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Correlation IDs for the inbound message currently being handled
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
chat_id_var: ContextVar[str] = ContextVar("chat_id", default="")


def set_request_id(request_id: str) -> None:
    """Set the request correlation ID for the current context.

    Args:
        request_id: Unique identifier for the request (the message id).
    """
    request_id_var.set(request_id)


def get_request_id() -> str:
    """Get the request correlation ID for the current context.

    Returns:
        Current request ID, or empty string if not set.
    """
    return request_id_var.get()


def bind_event_context(chat_id: str | None, message_id: str | None) -> None:
    """Bind the chat and message of an inbound event to the current context."""
    chat_id_var.set(chat_id or "")
    request_id_var.set(message_id or "")


def clear_event_context() -> None:
    chat_id_var.set("")
    request_id_var.set("")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON with timestamp, level, logger name,
    message, and the chat_id / request_id of the event being handled.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON-formatted log string.
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        chat_id = chat_id_var.get()
        if chat_id:
            log_data["chat_id"] = chat_id

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def configure_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Configure root logging for the application.

    Replaces any handlers already on the root logger so calling this twice
    does not duplicate output.

    Args:
        level: Logging level name or number.
        json_output: Emit JSON lines via StructuredFormatter instead of the
            plain text format.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    for existing in list(logging.root.handlers):
        logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(level)

    # apscheduler logs every autosave run at INFO
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))
