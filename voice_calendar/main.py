"""Main FastAPI application module for Voice Calendar.

This module initializes the FastAPI application, wires the routers and runs
the background notification check for the lifetime of the app.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_calendar.core import dependencies as core_deps
from voice_calendar.core.config import Settings, get_settings
from voice_calendar.core.logging_config import LOGGING_CONFIG, configure_logging
from voice_calendar.api.routers import auth_google, events, kanban, notifications, tasks, voice
from voice_calendar.api.routers import settings as settings_router
from voice_calendar.features.response_handler import NotificationIntent

logger = logging.getLogger(__name__)


def _log_notification(intent: NotificationIntent) -> None:
    logger.info(f"[{intent.severity}] {intent.message}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        current_settings = get_settings()
        logger.info("Settings loaded.")
    except Exception as e:
        logger.error(f"Failed to load settings on startup: {e}", exc_info=True)
        raise
    configure_logging(debug=current_settings.debug)
    logger.info("Starting Voice Calendar API...")

    try:
        store = core_deps.get_local_store(current_settings)
    except Exception as e:
        logger.error(f"Failed to open local store on startup: {e}", exc_info=True)
        raise

    core_deps.get_response_channel().subscribe("notification", _log_notification)
    scheduler = core_deps.get_notification_scheduler(store, current_settings)
    scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down Voice Calendar API...")
    try:
        await core_deps.close_services()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)
    logger.info("Shutdown complete.")


# Create FastAPI app
app = FastAPI(
    title="Voice Calendar API",
    description="Tasks, Google Calendar events and voice commands handled by an external agent.",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["Tasks"])
app.include_router(kanban.router, prefix="/api/v1/kanban", tags=["Kanban"])
app.include_router(events.router, prefix="/api/v1/events", tags=["Events"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["Notifications"])
app.include_router(settings_router.router, prefix="/api/v1/settings", tags=["Settings"])
app.include_router(voice.router, prefix="/api/v1/voice", tags=["Voice"])
app.include_router(voice.proxy_router, prefix="/api/voice", tags=["Voice"])
app.include_router(auth_google.router, tags=["Google Authentication"])


@app.get("/health", response_model=Dict[str, Any])
async def health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Health check endpoint to verify the API is running."""
    return {
        "status": "healthy",
        "version": app.version,
        "environment": settings.environment,
    }


@app.get("/")
async def root() -> Dict[str, str]:
    return {
        "message": "Welcome to Voice Calendar API",
        "version": app.version,
    }


if __name__ == "__main__":
    settings = get_settings()
    logger.info(f"Starting Uvicorn server on {settings.api_host}:{settings.api_port} with reload={settings.api_reload}")
    uvicorn.run(
        "voice_calendar.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=LOGGING_CONFIG,
        log_level=settings.api_log_level.lower(),
    )
