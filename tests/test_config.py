"""Test configuration loading."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings, reload_settings


def test_settings_load():
    """Test that settings load correctly."""
    settings = get_settings()

    assert settings.log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    assert settings.crm_max_attempts == 3
    assert settings.crm_backoff_seconds == 1.0
    assert settings.currency_code == "GHS"


def test_settings_dry_run_default():
    """Test that dry_run defaults to True for safety."""
    settings = reload_settings()
    assert settings.dry_run is True


def test_settings_paths_follow_data_dir(tmp_path):
    settings = Settings(DATA_DIR=str(tmp_path), LEADS_FILE="l.json", PROPERTIES_FILE="p.json")

    assert settings.leads_path == tmp_path / "l.json"
    assert settings.properties_path == tmp_path / "p.json"


def test_log_level_is_normalized_and_validated():
    assert Settings(LOG_LEVEL="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(LOG_LEVEL="chatty")


def test_currency_code_uppercased():
    assert Settings(CURRENCY_CODE="ghs").currency_code == "GHS"


def test_production_live_mode_requires_whatsapp_credentials():
    with pytest.raises(ValidationError):
        Settings(ENVIRONMENT="production", DRY_RUN=False)

    settings = Settings(
        ENVIRONMENT="production",
        DRY_RUN=False,
        WHATSAPP_ACCESS_TOKEN="token",
        WHATSAPP_PHONE_NUMBER_ID="123",
    )
    assert settings.is_whatsapp_enabled()


def test_enabled_services_reflect_credentials():
    settings = Settings(CRM_SYNC_URL="https://crm.example.com/leads", OPENAI_API_KEY="sk-test")

    assert settings.is_crm_enabled()
    assert settings.is_llm_enabled()
    assert settings.get_enabled_services() == ["crm", "openai"]
    assert not settings.is_admin_enabled()
