"""Configuration module for Voice Calendar.

This module handles all application configuration using pydantic-settings.
Values come from environment variables or a local .env file; user-editable
preferences (view mode, theme, credentials) live in the local store instead.
"""

import logging
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from pydantic import Field

# Explicitly load .env file BEFORE BaseSettings reads environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings class.

    This class defines all configuration settings for the application.
    Settings are loaded from environment variables with appropriate defaults.
    """

    # Application settings
    environment: str = "development"
    debug: bool = False

    # Local store settings
    database_url: str = Field(default="sqlite:///./data/voice_calendar.db", description="SQLite file backing the local key-value store.")

    # Public origin of the app. The OAuth redirect URI is always <origin>/auth
    public_origin: str = Field(default="http://localhost:8000", description="Origin the browser uses to reach the app.")

    # --- Google OAuth / Calendar Settings ---
    GOOGLE_CALENDAR_API_SCOPES: List[str] = Field(
        default=["https://www.googleapis.com/auth/calendar"],
        description="Scopes requested during the Google OAuth consent."
    )
    GOOGLE_AUTH_URI: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        description="Google OAuth authorization endpoint."
    )
    GOOGLE_TOKEN_URI: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="Google OAuth token endpoint used for the code exchange."
    )

    # --- Voice Agent Settings ---
    # Fallbacks used when no voice_agent_credentials are stored yet
    voice_agent_endpoint_url: Optional[str] = Field(default=None, description="Webhook URL of the voice agent (e.g. an n8n workflow).")
    voice_agent_auth_token: Optional[str] = Field(default=None, description="Bearer token sent to the voice agent webhook.")
    voice_agent_timeout: Optional[float] = Field(default=None, description="Timeout in seconds for the webhook call. None waits forever.")

    # --- Voice Capture Settings ---
    speech_locale: str = Field(default="pt-BR", description="Locale used by the speech recognizer.")
    speech_quiescence_seconds: float = Field(default=0.5, description="Delay after capture ends before the transcript is processed automatically.")

    # --- Notifications ---
    notification_horizon_minutes: int = Field(default=30, description="Tasks due within this many minutes raise an alert.")
    notification_check_interval_seconds: float = Field(default=60.0, description="Interval of the background notification check.")

    # API Server Configuration (for uvicorn)
    api_host: str = Field(default="0.0.0.0", description="Host for the FastAPI server.")
    api_port: int = Field(default=8000, description="Port for the FastAPI server.")
    api_reload: bool = Field(default=False, description="Enable auto-reload for the FastAPI server (development).")
    api_log_level: str = Field(default="info", description="Log level for the FastAPI server.")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'
    )

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.public_origin.rstrip('/')}/auth"

    @property
    def database_path(self) -> str:
        """Filesystem path extracted from ``database_url``.

        Raises:
            ValueError: If the URL is not a ``sqlite:///`` URL.
        """
        if not self.database_url.startswith("sqlite:///"):
            raise ValueError(f"Invalid database_url format: {self.database_url}. Expected 'sqlite:///path/to/db.sqlite'")
        return self.database_url[len("sqlite:///"):]


def get_settings() -> Settings:
    """Get the application settings instance.

    Returns:
        Settings: Settings loaded from .env / environment variables.
    """
    return Settings()
