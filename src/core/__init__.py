"""Core module exports."""
from __future__ import annotations

from core.config import Settings, get_settings, reload_settings
from core.exceptions import (
    # Base
    LeadEngineError,
    # Configuration
    ConfigurationError,
    MissingCredentialsError,
    # Storage
    StorageError,
    LeadNotFoundError,
    InvalidStatusTransitionError,
    # LLM
    LLMError,
    LLMAPIError,
    LLMRateLimitError,
    LLMTimeoutError,
    LeadExtractionError,
    # External Services
    ExternalServiceError,
    CRMSyncError,
    MessagingError,
    RateLimitError,
    ServiceUnavailableError,
    # Input
    ValidationError,
)
from core.logging_config import (
    setup_logging,
    get_logger,
    get_context_logger,
    log_external_call,
    JSONFormatter,
    TextFormatter,
    ContextLogger,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "reload_settings",
    # Exceptions
    "LeadEngineError",
    "ConfigurationError",
    "MissingCredentialsError",
    "StorageError",
    "LeadNotFoundError",
    "InvalidStatusTransitionError",
    "LLMError",
    "LLMAPIError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "LeadExtractionError",
    "ExternalServiceError",
    "CRMSyncError",
    "MessagingError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ValidationError",
    # Logging
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_external_call",
    "JSONFormatter",
    "TextFormatter",
    "ContextLogger",
]
