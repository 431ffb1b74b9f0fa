"""Structured JSON logging with call_id support."""
from __future__ import annotations

import contextvars
import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from src.shared.constants import ENGINE_SERVICE_NAME

# Context variable for call_id
call_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "call_id", default=""
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active call id.

    Engine errors contribute their ``detail`` and class name.
    """

    def __init__(self, service_name: str = ENGINE_SERVICE_NAME) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "logger": record.name,
            "call_id": call_id_var.get(""),
            "message": record.getMessage(),
        }
        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            log_entry["exception"] = getattr(exc, "detail", None) or str(exc)
            log_entry["exception_type"] = type(exc).__name__
        return json.dumps(log_entry)


def setup_logging(
    service_name: str = ENGINE_SERVICE_NAME,
    level: str = "INFO",
    logger_name: str | None = None,
) -> logging.Logger:
    """Configure structured JSON logging for a service.

    Args:
        service_name: Name of the service for log entries.
        level: Log level string (e.g. "INFO", "DEBUG").
        logger_name: Logger to configure; defaults to *service_name*. Pass
            ``"src"`` to capture every engine module.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(logger_name or service_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter(service_name=service_name))
    logger.addHandler(handler)

    return logger


@contextmanager
def call_scope(call_id: str | None = None) -> Iterator[str]:
    """Bind a call_id to every record logged inside the block.

    An already bound call_id is kept, so nested invocations (a paginated
    search issuing several calls) share one identifier.
    """
    current = call_id_var.get("")
    if current and call_id is None:
        yield current
        return
    token = call_id_var.set(call_id or str(uuid.uuid4()))
    try:
        yield call_id_var.get()
    finally:
        call_id_var.reset(token)
