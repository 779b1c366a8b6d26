"""API Router for user preferences and the credentials entered on the config page."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from voice_calendar.api.models import ConnectionStatusResponse
from voice_calendar.core.config import Settings, get_settings
from voice_calendar.core.dependencies import get_calendar_client, get_local_store
from voice_calendar.core.exceptions import ConfigError
from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import GoogleCredentials, VoiceAgentCredentials
from voice_calendar.features.google_calendar import GoogleCalendarClient

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=Dict[str, Any])
def read_app_settings(store: LocalStore = Depends(get_local_store)):
    return store.get_settings()


@router.put("", response_model=Dict[str, Any])
def update_app_settings(updates: Dict[str, Any] = Body(...), store: LocalStore = Depends(get_local_store)):
    """Merges the given keys into the stored preferences."""
    logger.info(f"Received settings update: {sorted(updates)}")
    settings = store.get_settings()
    for key, value in updates.items():
        settings = store.save_setting(key, value)
    return settings


# --- Voice agent ---

@router.get("/voice-agent", response_model=Optional[VoiceAgentCredentials])
def read_voice_agent_credentials(store: LocalStore = Depends(get_local_store)):
    return store.get_voice_agent_credentials()


@router.put("/voice-agent", response_model=VoiceAgentCredentials)
def save_voice_agent_credentials(credentials: VoiceAgentCredentials, store: LocalStore = Depends(get_local_store)):
    store.set_voice_agent_credentials(credentials)
    logger.info(f"Voice agent endpoint set to {credentials.endpoint_url}")
    return credentials


# --- Google Calendar ---

@router.get("/google", response_model=Optional[GoogleCredentials])
def read_google_credentials(store: LocalStore = Depends(get_local_store)):
    return store.get_google_credentials()


@router.put("/google", response_model=GoogleCredentials)
def save_google_credentials(
    credentials: GoogleCredentials,
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    settings: Settings = Depends(get_settings),
):
    if not credentials.redirect_uri:
        credentials.redirect_uri = settings.google_redirect_uri
    if not credentials.calendar_id:
        credentials.calendar_id = "primary"
    calendar.set_credentials(credentials)
    return credentials


@router.delete("/google", status_code=status.HTTP_204_NO_CONTENT)
def clear_google_credentials(store: LocalStore = Depends(get_local_store)):
    store.clear_google_credentials()
    logger.info("Google credentials and tokens removed.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/google/test", response_model=ConnectionStatusResponse)
def test_google_connection(calendar: GoogleCalendarClient = Depends(get_calendar_client)):
    """Checks the saved credentials.

    Without a token yet, the consent URL is returned so the user can authorize.
    """
    if not calendar.has_valid_credentials():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Salve as credenciais primeiro")
    if calendar.is_authenticated():
        return ConnectionStatusResponse(configured=True, connected=calendar.test_connection())
    try:
        auth_url = calendar.get_auth_url()
    except ConfigError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ConnectionStatusResponse(configured=True, connected=False, auth_url=auth_url)
