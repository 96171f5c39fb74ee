"""Core utility functions."""
from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Optional

from core.logging_config import get_logger

LOGGER = get_logger(__name__)


def utcnow() -> datetime:
    """Get current UTC datetime with timezone info. Always use this instead of datetime.now()."""
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return to_iso(utcnow())


def to_iso(dt: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with a trailing Z, e.g. 2025-01-31T09:15:00.123Z."""
    aware = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware (UTC).

    Naive datetimes are assumed to already be in UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (or date) into an aware datetime.

    Returns None for empty, unparsable or non-string input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str):
        LOGGER.debug(f"Ignoring non-string timestamp: {value!r}")
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        LOGGER.debug(f"Unparsable timestamp: {value!r}")
        return None


def monotonic_millis() -> int:
    """
    Wall-clock milliseconds that never go backwards within this process.

    Two calls in the same millisecond return strictly increasing values.
    """
    global _last_millis
    now = time.time_ns() // 1_000_000
    if now <= _last_millis:
        now = _last_millis + 1
    _last_millis = now
    return now


_last_millis = 0


def short_random(length: int = 4) -> str:
    """Short uppercase alphanumeric suffix for human-readable ids."""
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    return "".join(secrets.choice(alphabet) for _ in range(length))


__all__ = [
    "utcnow",
    "utcnow_iso",
    "to_iso",
    "ensure_aware",
    "parse_timestamp",
    "monotonic_millis",
    "short_random",
]
