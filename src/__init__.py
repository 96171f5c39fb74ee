"""Top-level package for the WhatsApp property lead engine."""
from __future__ import annotations

__version__ = "1.0.0"

__all__ = [
    "api",
    "core",
    "domain",
    "llm",
    "outreach",
    "services",
]
