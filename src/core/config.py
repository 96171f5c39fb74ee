"""Configuration management for the WhatsApp property lead engine.

All configuration is loaded from environment variables and/or .env file.
Outbound messaging defaults to dry-run mode when not set.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root detection
PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"


class Settings(BaseSettings):
    """
    Runtime configuration powered by environment variables and .env overrides.

    All settings can be configured via:
    1. Environment variables (highest priority)
    2. .env file in project root (loaded automatically)
    3. Default values (lowest priority)

    External integrations stay inert until their credentials are present.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, alias="DATA_DIR")
    leads_file: str = Field(default="leads.json", alias="LEADS_FILE")
    properties_file: str = Field(default="properties.json", alias="PROPERTIES_FILE")

    # -------------------------------------------------------------------------
    # WhatsApp Cloud API
    # -------------------------------------------------------------------------
    whatsapp_access_token: Optional[str] = Field(default=None, alias="WHATSAPP_ACCESS_TOKEN")
    whatsapp_phone_number_id: Optional[str] = Field(default=None, alias="WHATSAPP_PHONE_NUMBER_ID")
    whatsapp_verify_token: Optional[str] = Field(default=None, alias="WHATSAPP_VERIFY_TOKEN")
    whatsapp_app_secret: Optional[str] = Field(
        default=None,
        alias="WHATSAPP_APP_SECRET",
        description="When set, inbound webhook bodies must carry a valid X-Hub-Signature-256",
    )
    whatsapp_api_version: str = Field(default="v22.0", alias="WHATSAPP_API_VERSION")
    whatsapp_timeout_seconds: float = Field(default=10.0, alias="WHATSAPP_TIMEOUT_SECONDS", gt=0)

    # -------------------------------------------------------------------------
    # CRM
    # -------------------------------------------------------------------------
    crm_sync_url: Optional[str] = Field(default=None, alias="CRM_SYNC_URL")
    crm_api_key: Optional[str] = Field(default=None, alias="CRM_API_KEY")
    crm_timeout_seconds: float = Field(default=5.0, alias="CRM_TIMEOUT_SECONDS", gt=0)
    crm_max_attempts: int = Field(default=3, alias="CRM_MAX_ATTEMPTS", ge=1)
    crm_backoff_seconds: float = Field(default=1.0, alias="CRM_BACKOFF_SECONDS", ge=0)

    # -------------------------------------------------------------------------
    # OpenAI (primary)
    # -------------------------------------------------------------------------
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_temperature: float = Field(default=0.4, alias="OPENAI_TEMPERATURE", ge=0.0, le=1.0)
    openai_timeout_seconds: int = Field(default=30, alias="OPENAI_TIMEOUT_SECONDS", ge=1)

    # -------------------------------------------------------------------------
    # Anthropic (fallback)
    # -------------------------------------------------------------------------
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", alias="ANTHROPIC_MODEL")
    anthropic_temperature: float = Field(default=0.4, alias="ANTHROPIC_TEMPERATURE", ge=0.0, le=1.0)
    anthropic_timeout_seconds: int = Field(default=30, alias="ANTHROPIC_TIMEOUT_SECONDS", ge=1)

    # -------------------------------------------------------------------------
    # Conversation sessions
    # -------------------------------------------------------------------------
    session_ttl_hours: float = Field(default=24, alias="SESSION_TTL_HOURS", gt=0)
    session_max_entries: int = Field(default=1000, alias="SESSION_MAX_ENTRIES", ge=1)
    session_max_turns: int = Field(
        default=40,
        alias="SESSION_MAX_TURNS",
        ge=2,
        description="Most recent turns sent to the model; stored history is untouched",
    )

    # -------------------------------------------------------------------------
    # Leads
    # -------------------------------------------------------------------------
    lead_dedupe_by_sender: bool = Field(default=True, alias="LEAD_DEDUPE_BY_SENDER")
    currency_code: str = Field(default="GHS", alias="CURRENCY_CODE")

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------
    admin_token: Optional[str] = Field(default=None, alias="ADMIN_TOKEN")

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    dry_run: bool = Field(default=True, alias="DRY_RUN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")  # "text" or "json"
    environment: str = Field(default="local", alias="ENVIRONMENT")
    business_name: str = Field(default="Knowledge Innovations Real Estate", alias="BUSINESS_NAME")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        lower = v.lower()
        if lower not in {"text", "json"}:
            raise ValueError("log_format must be 'text' or 'json'")
        return lower

    @field_validator("currency_code")
    @classmethod
    def validate_currency_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_whatsapp_config(self) -> "Settings":
        """Validate WhatsApp configuration when sending for real in production."""
        if not self.dry_run and self.environment == "production":
            if not all([self.whatsapp_access_token, self.whatsapp_phone_number_id]):
                raise ValueError("WhatsApp credentials required in production mode")
        return self

    # -------------------------------------------------------------------------
    # Derived paths
    # -------------------------------------------------------------------------

    @property
    def leads_path(self) -> Path:
        return Path(self.data_dir) / self.leads_file

    @property
    def properties_path(self) -> Path:
        return Path(self.data_dir) / self.properties_file

    # -------------------------------------------------------------------------
    # Helper Methods for Feature Detection
    # -------------------------------------------------------------------------

    def is_whatsapp_enabled(self) -> bool:
        """Check if outbound WhatsApp delivery is configured."""
        return bool(self.whatsapp_access_token and self.whatsapp_phone_number_id)

    def is_crm_enabled(self) -> bool:
        """
        Check if CRM sync is configured.

        Returns True only if CRM_SYNC_URL is set. The API key is optional.
        """
        return bool(self.crm_sync_url)

    def is_openai_enabled(self) -> bool:
        """Check if OpenAI is configured."""
        return bool(self.openai_api_key)

    def is_anthropic_enabled(self) -> bool:
        """Check if Anthropic/Claude is configured."""
        return bool(self.anthropic_api_key)

    def is_llm_enabled(self) -> bool:
        """Check if any LLM is configured (OpenAI or Anthropic)."""
        return self.is_openai_enabled() or self.is_anthropic_enabled()

    def is_admin_enabled(self) -> bool:
        """Check if the admin token is configured."""
        return bool(self.admin_token)

    def get_enabled_services(self) -> list[str]:
        """Get list of enabled external services."""
        services = []
        if self.is_whatsapp_enabled():
            services.append("whatsapp")
        if self.is_crm_enabled():
            services.append("crm")
        if self.is_openai_enabled():
            services.append("openai")
        if self.is_anthropic_enabled():
            services.append("anthropic")
        return services


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. To reload settings,
    call `get_settings.cache_clear()` first.

    Returns:
        Settings object with all configuration.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Clear settings cache and reload from environment.

    Useful for testing or after modifying .env file.
    """
    get_settings.cache_clear()
    return get_settings()
