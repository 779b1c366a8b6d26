"""Tests for the configuration loading.
"""

import pytest
import os
from unittest.mock import patch

from voice_calendar.core.config import Settings, get_settings


def test_settings_loading_directly():
    """Test that Settings can be initialized directly with values.

    Bypasses environment variables and .env files.
    """
    test_values = {
        "environment": "testing",
        "debug": True,
        "database_url": "sqlite:///./data/test_db.sqlite",
        "public_origin": "https://calendar.example.com/",
        "voice_agent_endpoint_url": "https://n8n.example.com/webhook/voice",
        "voice_agent_timeout": 15,
    }
    settings = Settings(**test_values, _env_file=None)

    assert isinstance(settings, Settings)
    assert settings.environment == "testing"
    assert settings.debug is True
    assert settings.database_path == "./data/test_db.sqlite"
    assert settings.google_redirect_uri == "https://calendar.example.com/auth"
    assert settings.voice_agent_endpoint_url == "https://n8n.example.com/webhook/voice"
    assert settings.voice_agent_timeout == 15


def test_settings_defaults():
    """Test that Settings use default values when environment variables are not set."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.debug is False
    assert settings.database_url == "sqlite:///./data/voice_calendar.db"
    assert settings.google_redirect_uri == "http://localhost:8000/auth"
    assert settings.GOOGLE_CALENDAR_API_SCOPES == ["https://www.googleapis.com/auth/calendar"]
    assert settings.GOOGLE_TOKEN_URI == "https://oauth2.googleapis.com/token"
    assert settings.voice_agent_endpoint_url is None
    assert settings.voice_agent_timeout is None  # no timeout unless configured
    assert settings.speech_locale == "pt-BR"
    assert settings.speech_quiescence_seconds == 0.5
    assert settings.notification_horizon_minutes == 30
    assert settings.notification_check_interval_seconds == 60.0


def test_settings_from_environment():
    env = {
        "voice_agent_endpoint_url": "http://agent.local/hook",
        "voice_agent_auth_token": "secret",
        "notification_horizon_minutes": "45",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = get_settings()

    assert settings.voice_agent_endpoint_url == "http://agent.local/hook"
    assert settings.voice_agent_auth_token == "secret"
    assert settings.notification_horizon_minutes == 45


def test_database_path_rejects_non_sqlite_urls():
    settings = Settings(database_url="postgresql://localhost/db", _env_file=None)
    with pytest.raises(ValueError):
        _ = settings.database_path
