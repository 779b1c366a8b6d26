"""Dependencies module for Voice Calendar.

This module defines FastAPI dependencies used throughout the application.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from fastapi import Depends
from fastapi.templating import Jinja2Templates

from voice_calendar.core.config import Settings, get_settings
from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import VoiceAgentCredentials
from voice_calendar.features.google_calendar import GoogleCalendarClient
from voice_calendar.features.notification_scheduler import NotificationScheduler
from voice_calendar.features.response_handler import ResponseChannel, ResponseHandler
from voice_calendar.features.voice_assistant import VoiceAssistant
from voice_calendar.features.voice_capture import VoiceCapture
from voice_calendar.interfaces.voice_agent import VoiceAgentClient, VoiceAgentInterface

logger = logging.getLogger(__name__)

# --- Singleton instances for services (cached per application lifecycle) ---
_local_store: LocalStore | None = None
_response_channel: ResponseChannel | None = None
_response_handler: ResponseHandler | None = None
_calendar_client: GoogleCalendarClient | None = None
_voice_agent: VoiceAgentInterface | None = None
_voice_assistant: VoiceAssistant | None = None
_notification_scheduler: NotificationScheduler | None = None
# ---------------------------------------------------------------------------


def get_templates() -> Jinja2Templates:
    # Determine the base directory of the project
    base_dir = Path(__file__).resolve().parent.parent.parent
    template_dir = base_dir / "templates"
    if not template_dir.is_dir():
        template_dir = Path("templates")
    return Jinja2Templates(directory=str(template_dir))


# --- Local Store Dependency ---

def get_local_store(settings: Settings = Depends(get_settings)) -> LocalStore:
    """Provides the singleton LocalStore, opening the SQLite file on first use."""
    global _local_store
    if _local_store is None:
        db_path = Path(settings.database_path).resolve()
        logger.info(f"Opening local store at {db_path}")
        _local_store = LocalStore.open(
            db_path,
            notification_horizon=timedelta(minutes=settings.notification_horizon_minutes),
        )
    return _local_store


# --- Service Dependencies (Manual Singleton Pattern with Injected Settings) ---

def get_response_channel() -> ResponseChannel:
    global _response_channel
    if _response_channel is None:
        _response_channel = ResponseChannel()
    return _response_channel


def get_response_handler(
    store: LocalStore = Depends(get_local_store),
    channel: ResponseChannel = Depends(get_response_channel),
) -> ResponseHandler:
    """Provides the singleton ResponseHandler instance."""
    global _response_handler
    if _response_handler is None:
        logger.info("Creating ResponseHandler singleton instance.")
        _response_handler = ResponseHandler(store=store, channel=channel)
    return _response_handler


def get_calendar_client(
    store: LocalStore = Depends(get_local_store),
    settings: Settings = Depends(get_settings),
) -> GoogleCalendarClient:
    """Provides the singleton GoogleCalendarClient instance."""
    global _calendar_client
    if _calendar_client is None:
        logger.info("Creating GoogleCalendarClient singleton instance.")
        _calendar_client = GoogleCalendarClient(store=store, settings=settings)
    return _calendar_client


def voice_agent_credentials(store: LocalStore, settings: Settings) -> Optional[VoiceAgentCredentials]:
    """Stored credentials win; the environment is the fallback."""
    stored = store.get_voice_agent_credentials()
    if stored is not None and stored.endpoint_url:
        return stored
    if settings.voice_agent_endpoint_url:
        return VoiceAgentCredentials(
            endpoint_url=settings.voice_agent_endpoint_url,
            auth_token=settings.voice_agent_auth_token,
        )
    return stored


def get_voice_agent(
    store: LocalStore = Depends(get_local_store),
    settings: Settings = Depends(get_settings),
) -> VoiceAgentInterface:
    """Provides the singleton voice agent client."""
    global _voice_agent
    if _voice_agent is None:
        logger.info("Creating VoiceAgentClient singleton instance.")
        _voice_agent = VoiceAgentClient(
            credentials_provider=lambda: voice_agent_credentials(store, settings),
            timeout=settings.voice_agent_timeout,
        )
    return _voice_agent


# --- Higher-Level Service Dependencies (Using other dependencies) ---

def get_voice_assistant(
    agent: VoiceAgentInterface = Depends(get_voice_agent),
    handler: ResponseHandler = Depends(get_response_handler),
    store: LocalStore = Depends(get_local_store),
    settings: Settings = Depends(get_settings),
) -> VoiceAssistant:
    """Provides the singleton VoiceAssistant.

    Its capture has no speech engine attached: recognition results are relayed
    by the browser through the capture endpoints.
    """
    global _voice_assistant
    if _voice_assistant is None:
        logger.info("Creating VoiceAssistant singleton instance.")
        _voice_assistant = VoiceAssistant(
            agent=agent,
            handler=handler,
            capture=VoiceCapture(locale=settings.speech_locale, supported=True),
            quiescence_seconds=settings.speech_quiescence_seconds,
            credentials_provider=lambda: voice_agent_credentials(store, settings),
        )
    return _voice_assistant


def get_notification_scheduler(
    store: LocalStore = Depends(get_local_store),
    settings: Settings = Depends(get_settings),
) -> NotificationScheduler:
    global _notification_scheduler
    if _notification_scheduler is None:
        _notification_scheduler = NotificationScheduler(
            store=store,
            interval_seconds=settings.notification_check_interval_seconds,
        )
    return _notification_scheduler


def reset_singletons():
    """Resets service singletons that depend on configurable settings."""
    global _local_store, _response_channel, _response_handler, _calendar_client
    global _voice_agent, _voice_assistant, _notification_scheduler

    if _local_store is not None:
        logger.info("Closing local store singleton.")
        _local_store.close()
    _local_store = None
    _response_channel = None
    _response_handler = None
    _calendar_client = None
    _voice_agent = None
    _voice_assistant = None
    _notification_scheduler = None


async def close_services():
    """Stops background work and closes network clients. Called on shutdown."""
    if _notification_scheduler is not None:
        await _notification_scheduler.stop()
    if _voice_assistant is not None:
        _voice_assistant.shutdown()
        await _voice_assistant.wait_idle()
    if isinstance(_voice_agent, VoiceAgentClient):
        try:
            await _voice_agent.close()
        except Exception as e:
            logger.error(f"Error closing voice agent client: {e}", exc_info=True)
    reset_singletons()
