"""Custom exceptions for the lead engine application."""
from __future__ import annotations

from typing import Optional


class LeadEngineError(Exception):
    """Base exception for all application errors."""

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LeadEngineError):
    """Raised when required configuration is missing or invalid."""

    pass


class MissingCredentialsError(ConfigurationError):
    """Raised when required API credentials are not configured."""

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(LeadEngineError):
    """Raised when a persisted collection cannot be read or written."""

    pass


class LeadNotFoundError(StorageError):
    """Raised when a lead or property id does not exist."""

    pass


class InvalidStatusTransitionError(StorageError):
    """Raised when a lead status change would leave a terminal status."""

    pass


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(LeadEngineError):
    """Base exception for LLM-related errors."""

    pass


class LLMAPIError(LLMError):
    """Raised when the LLM API returns an error."""

    pass


class LLMRateLimitError(LLMAPIError):
    """Raised when the LLM API rate limit is exceeded."""

    pass


class LLMTimeoutError(LLMAPIError):
    """Raised when the LLM API request times out."""

    pass


class LeadExtractionError(LLMError):
    """Raised when the structured lead extraction is missing keys or unparsable."""

    pass


# =============================================================================
# External Service Errors
# =============================================================================


class ExternalServiceError(LeadEngineError):
    """Base exception for all external service errors."""

    pass


class CRMSyncError(ExternalServiceError):
    """Raised when CRM delivery fails after all attempts."""

    def __init__(self, message: str, attempts: int = 0, last_error: Optional[str] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error or message


class MessagingError(ExternalServiceError):
    """Raised when an outbound WhatsApp message cannot be delivered."""

    pass


class RateLimitError(ExternalServiceError):
    """Raised when an external API rate limit is hit."""

    pass


class ServiceUnavailableError(ExternalServiceError):
    """Raised when an external service is temporarily unavailable."""

    pass


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(LeadEngineError):
    """Raised when admin input fails validation."""

    pass


__all__ = [
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
]
