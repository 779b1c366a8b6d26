"""Google Calendar client: OAuth handshake, event listing and event creation."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from voice_calendar.core.config import Settings
from voice_calendar.core.exceptions import CalendarAPIError, ConfigError, NotAuthenticatedError
from voice_calendar.core.utils import utc_now
from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import CalendarEvent, CalendarEventCreate, GoogleCredentials

logger = logging.getLogger(__name__)

# Retry configuration for listing events
RETRY_MAX_ATTEMPTS = 3
RETRY_WAIT_MULTIPLIER = 0.5
RETRY_WAIT_MIN = 0.5
RETRY_WAIT_MAX = 4

UNTITLED_EVENT = "Untitled Event"


def _is_server_error(error: BaseException) -> bool:
    return isinstance(error, CalendarAPIError) and (error.status_code or 0) >= 500


def _parse_google_time(value: Dict[str, Any]) -> datetime:
    """Reads a Google ``start``/``end`` object (``dateTime`` or all-day ``date``)."""
    if value.get("dateTime"):
        return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
    # Date-only values are taken as UTC midnight
    day = date.fromisoformat(value["date"])
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _format_google_time(value: datetime, all_day: bool) -> Dict[str, str]:
    if all_day:
        return {"date": value.astimezone(timezone.utc).date().isoformat()}
    return {"dateTime": value.isoformat()}


def event_from_google(item: Dict[str, Any]) -> CalendarEvent:
    """Maps a Google Calendar event resource to a ``CalendarEvent``."""
    return CalendarEvent(
        id=item["id"],
        title=item.get("summary") or UNTITLED_EVENT,
        description=item.get("description"),
        start=_parse_google_time(item["start"]),
        end=_parse_google_time(item["end"]),
        all_day=not item["start"].get("dateTime"),
        status=item.get("status") or "confirmed",
        location=item.get("location"),
        attendees=[a["email"] for a in item.get("attendees", []) if a.get("email")],
    )


class GoogleCalendarClient:
    """Talks to Google Calendar with the OAuth tokens kept in the local store."""

    def __init__(self, store: LocalStore, settings: Settings):
        self.store = store
        self.settings = settings
        self._oauth_credentials: Optional[Credentials] = None

    # --- Credentials / OAuth ---

    @property
    def credentials(self) -> Optional[GoogleCredentials]:
        return self.store.get_google_credentials()

    def set_credentials(self, credentials: GoogleCredentials) -> None:
        self.store.set_google_credentials(credentials)
        logger.info("Google OAuth client credentials updated.")

    def has_valid_credentials(self) -> bool:
        creds = self.credentials
        return bool(creds and creds.client_id and creds.client_secret)

    def is_authenticated(self) -> bool:
        return bool(self.store.get_access_token())

    def _redirect_uri(self, credentials: GoogleCredentials) -> str:
        return credentials.redirect_uri or self.settings.google_redirect_uri

    def _flow(self) -> Flow:
        credentials = self.credentials
        if not credentials:
            raise ConfigError("No Google credentials configured")
        redirect_uri = self._redirect_uri(credentials)
        client_config = {
            "web": {
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "auth_uri": self.settings.GOOGLE_AUTH_URI,
                "token_uri": self.settings.GOOGLE_TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }
        # No PKCE: the callback runs on a fresh Flow that never saw a verifier
        return Flow.from_client_config(
            client_config,
            scopes=self.settings.GOOGLE_CALENDAR_API_SCOPES,
            redirect_uri=redirect_uri,
            autogenerate_code_verifier=False,
        )

    def get_auth_url(self) -> str:
        """Consent URL requesting offline access to the calendar scope."""
        authorization_url, _state = self._flow().authorization_url(
            access_type="offline",  # Request refresh token for offline access
            prompt="consent",       # Force consent screen so a refresh token is granted
        )
        return authorization_url

    def exchange_code_for_token(self, code: str) -> None:
        """Trades an authorization code for tokens and stores them."""
        flow = self._flow()
        flow.fetch_token(code=code)
        oauth_credentials = flow.credentials
        if not oauth_credentials.token:
            raise CalendarAPIError("Google returned no access token")
        self.store.set_access_token(oauth_credentials.token)
        if oauth_credentials.refresh_token:
            self.store.set_refresh_token(oauth_credentials.refresh_token)
        logger.info("Successfully fetched and saved Google OAuth tokens.")

    # --- Calendar API ---

    def _service(self) -> Resource:
        access_token = self.store.get_access_token()
        if not access_token:
            raise NotAuthenticatedError("Not authenticated")
        client = self.credentials
        oauth_credentials = Credentials(
            token=access_token,
            refresh_token=self.store.get_refresh_token(),
            token_uri=self.settings.GOOGLE_TOKEN_URI,
            client_id=client.client_id if client else None,
            client_secret=client.client_secret if client else None,
            scopes=self.settings.GOOGLE_CALENDAR_API_SCOPES,
        )
        self._oauth_credentials = oauth_credentials
        return build("calendar", "v3", credentials=oauth_credentials, cache_discovery=False)

    def _persist_refreshed_token(self) -> None:
        oauth_credentials = self._oauth_credentials
        if oauth_credentials is not None and oauth_credentials.token and oauth_credentials.token != self.store.get_access_token():
            logger.info("Google access token was refreshed, saving the new one.")
            self.store.set_access_token(oauth_credentials.token)

    @property
    def calendar_id(self) -> str:
        creds = self.credentials
        return (creds.calendar_id if creds else None) or "primary"

    @retry(
        stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=RETRY_WAIT_MULTIPLIER, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
        retry=retry_if_exception(_is_server_error),
        reraise=True,
    )
    def _list_events(self, service: Resource, time_min: str, time_max: str) -> Dict[str, Any]:
        try:
            return service.events().list(
                calendarId=self.calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
            ).execute()
        except HttpError as error:
            status_code = getattr(error.resp, "status", None)
            if status_code is not None and int(status_code) >= 500:
                logger.warning(f"Received {status_code} from Google Calendar. Retrying...")
            raise CalendarAPIError(f"Failed to fetch events: {error}", status_code=int(status_code) if status_code else None) from error

    def get_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Lists single (expanded) events between ``start`` and ``end``, ordered by start time.

        Raises:
            NotAuthenticatedError: If no access token is stored.
            CalendarAPIError: If Google answers with an error status.
        """
        service = self._service()
        data = self._list_events(
            service,
            start.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            end.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        )
        self._persist_refreshed_token()
        events = [event_from_google(item) for item in data.get("items", [])]
        logger.info(f"Fetched {len(events)} events from Google Calendar ({self.calendar_id}).")
        return events

    def create_event(self, event: CalendarEventCreate) -> CalendarEvent:
        """Creates an event. All-day events are sent with ``date``, others with ``dateTime``."""
        service = self._service()
        all_day = bool(event.all_day)
        event_body = {
            "summary": event.title,
            "description": event.description,
            "start": _format_google_time(event.start, all_day),
            "end": _format_google_time(event.end, all_day),
            "location": event.location,
        }
        # Filter out None values to avoid API errors for optional fields
        event_body_cleaned = {k: v for k, v in event_body.items() if v is not None}
        logger.debug(f"Attempting to create Google Calendar event: {event_body_cleaned}")

        try:
            created = service.events().insert(calendarId=self.calendar_id, body=event_body_cleaned).execute()
        except HttpError as error:
            logger.error(f"An HTTP error occurred while creating Google Calendar event: {error}", exc_info=True)
            status_code = getattr(error.resp, "status", None)
            raise CalendarAPIError(f"Failed to create event: {error}", status_code=int(status_code) if status_code else None) from error

        self._persist_refreshed_token()
        logger.info(f"Successfully created Google Calendar event. ID: {created['id']}")
        return event_from_google(created)

    def test_connection(self) -> bool:
        """Lists the next 24 hours of events; True if that works."""
        now = utc_now()
        try:
            self.get_events(now, now + timedelta(days=1))
            return True
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False
