"""API Router for calendar events (Google Calendar with a local fallback)."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from voice_calendar.api.models import EventsResponse
from voice_calendar.core.dependencies import get_calendar_client, get_local_store, get_response_channel
from voice_calendar.core.exceptions import VoiceCalendarError
from voice_calendar.core.utils import ensure_aware, generate_id
from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import CalendarEvent, CalendarEventCreate
from voice_calendar.features.google_calendar import GoogleCalendarClient
from voice_calendar.features.response_handler import ResponseChannel
from voice_calendar.features.task_utils import RangeKey, date_range, filter_events_in_range

logger = logging.getLogger(__name__)
router = APIRouter()


def _cached_in_range(store: LocalStore, start: datetime, end: datetime, range_: Optional[RangeKey]):
    if range_ is not None:
        return filter_events_in_range(store.get_cached_events(), range_)
    return [e for e in store.get_cached_events() if start <= e.start <= end]


@router.get("", response_model=EventsResponse)
def list_events(
    start: Optional[datetime] = Query(None, description="Defaults to the start of the current month."),
    end: Optional[datetime] = Query(None, description="Defaults to the end of the current month."),
    range_: Optional[RangeKey] = Query(None, alias="range", description="Current day, week or month. Ignored when start or end is given."),
    store: LocalStore = Depends(get_local_store),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
):
    """Events between ``start`` and ``end`` (or inside ``range``).

    Google is asked first when credentials are configured. On any failure the
    cached events are returned instead, together with the error message.
    """
    if start is not None or end is not None:
        range_ = None
    default_start, default_end = date_range(range_ or "month")
    start = ensure_aware(start) or default_start
    end = ensure_aware(end) or default_end

    if not calendar.has_valid_credentials():
        return EventsResponse(events=_cached_in_range(store, start, end, range_), source="cache")

    try:
        events = calendar.get_events(start, end)
    except VoiceCalendarError as e:
        logger.warning(f"Falling back to cached events: {e}")
        return EventsResponse(events=_cached_in_range(store, start, end, range_), source="cache", error=str(e))
    except Exception as e:
        logger.error(f"Unexpected error fetching Google events, using cache: {e}", exc_info=True)
        return EventsResponse(events=_cached_in_range(store, start, end, range_), source="cache", error=str(e))

    store.refresh_cached_events(events, start, end)
    return EventsResponse(events=events, source="google")


@router.post("", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
def create_event(
    event: CalendarEventCreate,
    store: LocalStore = Depends(get_local_store),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    channel: ResponseChannel = Depends(get_response_channel),
):
    """Creates the event on Google Calendar, or locally when Google is unavailable."""
    created: Optional[CalendarEvent] = None
    if calendar.has_valid_credentials():
        try:
            created = calendar.create_event(event)
        except Exception as e:
            logger.error(f"Error creating event on Google Calendar, saving it locally: {e}", exc_info=True)

    if created is None:
        created = CalendarEvent(**event.model_dump(), id=generate_id("local"))
        logger.info(f"Created local event '{created.title}' with id {created.id}")

    store.cache_event(created)
    channel.publish("event_created", created)
    return created
