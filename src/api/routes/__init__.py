"""API route modules."""
from __future__ import annotations

from . import health, leads, properties, webhook

__all__ = [
    "health",
    "leads",
    "properties",
    "webhook",
]
