"""Logging setup for the lead engine.

Records about one conversation or one lead carry ``sender`` and ``lead_id``
as record attributes. Both formatters surface them: JSON output puts them
at the top level next to the message, text output appends them in brackets.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Identifiers surfaced at the top level, read from the record or its extra_data.
CONTEXT_FIELDS = ("sender", "lead_id")

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "uvicorn.access")


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    extra_data = getattr(record, "extra_data", None)
    context: Dict[str, Any] = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is None and isinstance(extra_data, dict):
            value = extra_data.get(key)
        if value is not None:
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        log_data.update(_record_context(record))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data["extra"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Plain text lines, suffixed with ``[sender=... lead_id=...]`` when known."""

    def __init__(self) -> None:
        super().__init__(TEXT_LOG_FORMAT, DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        if not context:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in context.items())
        head, newline, rest = line.partition("\n")
        return f"{head} [{suffix}]{newline}{rest}"


class ContextLogger(logging.LoggerAdapter):
    """
    Logger bound to one sender or lead.

    Usage:
        log = get_context_logger(__name__, sender="233200000000")
        log.info("Inbound message")  # record.sender == "233200000000"

    A per-call ``extra`` wins over the bound context.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Route all logging to stdout.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Emit JSON lines instead of text.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else TextFormatter())

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as ``get_logger(__name__)``."""
    return logging.getLogger(name)


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), context)


def log_external_call(
    logger: logging.Logger,
    service: str,
    operation: str,
    success: bool,
    duration_ms: float,
    sender: Optional[str] = None,
    lead_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """
    Log one call to the CRM, WhatsApp or an LLM provider.

    Successful calls log at INFO and failures at WARNING. ``sender`` and
    ``lead_id`` become record attributes; everything else in ``extra`` lands
    in ``extra_data`` alongside service, operation and timing.
    """
    log_data = {
        "service": service,
        "operation": operation,
        "success": success,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }
    record_extra: Dict[str, Any] = {"extra_data": log_data}
    if sender is not None:
        record_extra["sender"] = sender
    if lead_id is not None:
        record_extra["lead_id"] = lead_id

    subject = f" for lead {lead_id}" if lead_id else (f" to {sender}" if sender else "")
    if success:
        logger.info(
            f"{service}.{operation}{subject} completed in {duration_ms:.0f}ms",
            extra=record_extra,
        )
    else:
        logger.warning(
            f"{service}.{operation}{subject} failed after {duration_ms:.0f}ms",
            extra=record_extra,
        )


__all__ = [
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_external_call",
    "JSONFormatter",
    "TextFormatter",
    "ContextLogger",
    "CONTEXT_FIELDS",
]
