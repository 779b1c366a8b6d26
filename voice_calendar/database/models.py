"""Pydantic models representing the objects kept in the local store.

Attributes are snake_case in Python; the persisted JSON and the HTTP API use
the camelCase aliases (``dueDate``, ``createdAt``...).
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from voice_calendar.core.utils import ensure_aware

TaskPriority = Literal["low", "medium", "high"]
TaskStatus = Literal["pending", "in-progress", "completed", "overdue"]
EventStatus = Literal["confirmed", "tentative", "cancelled"]
AlertType = Literal["task", "event"]


class StoreModel(BaseModel):
    """Base for stored models: accepts both field names and aliases, aware datetimes only."""
    model_config = ConfigDict(populate_by_name=True)

    def to_store(self) -> Dict[str, Any]:
        """JSON-ready dict using the persisted (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# === Tasks ===

class TaskBase(StoreModel):
    """Fields shared by new and stored tasks.

    ``completed=True`` always forces ``status='completed'``.
    """
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    completed: bool = False
    priority: TaskPriority = "medium"
    tags: Optional[List[str]] = None
    color: Optional[str] = None
    status: TaskStatus = "pending"

    @field_validator("due_date")
    @classmethod
    def _aware_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)

    @model_validator(mode="after")
    def _completed_implies_status(self):
        if self.completed:
            self.status = "completed"
        return self


class TaskCreate(TaskBase):
    """Model for creating a new task. The store assigns id and timestamps."""
    pass


class Task(TaskBase):
    """Model representing a task retrieved from the local store."""
    id: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware_timestamps(cls, v: datetime) -> datetime:
        return ensure_aware(v)


# === Calendar events ===

class CalendarEventBase(StoreModel):
    title: str
    description: Optional[str] = None
    start: datetime
    end: datetime
    all_day: Optional[bool] = Field(default=None, alias="allDay")
    color: Optional[str] = None
    status: EventStatus = "confirmed"
    attendees: Optional[List[str]] = None
    location: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _aware_bounds(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class CalendarEventCreate(CalendarEventBase):
    """Event data before Google (or the local fallback) assigns an id."""
    pass


class CalendarEvent(CalendarEventBase):
    """An event owned by Google Calendar, or a local one whose id starts with ``local_``."""
    id: str

    @property
    def is_local(self) -> bool:
        return self.id.startswith("local_")


# === Notifications ===

class NotificationAlertCreate(StoreModel):
    type: AlertType
    title: str
    time_remaining: str = Field(alias="timeRemaining")
    due_date: datetime = Field(alias="dueDate")
    dismissed: bool = False

    @field_validator("due_date")
    @classmethod
    def _aware_due_date(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class NotificationAlert(NotificationAlertCreate):
    id: str


# === Credentials ===

class GoogleCredentials(StoreModel):
    """OAuth client registered in the Google Cloud console."""
    client_id: str = Field(alias="clientId")
    client_secret: str = Field(alias="clientSecret")
    redirect_uri: Optional[str] = Field(default=None, alias="redirectUri")
    calendar_id: Optional[str] = Field(default=None, alias="calendarId")


class VoiceAgentCredentials(StoreModel):
    """Where the voice agent webhook lives and how to authenticate to it."""
    endpoint_url: Optional[str] = Field(default=None, alias="endpointUrl")
    auth_token: Optional[str] = Field(default=None, alias="authToken")


# === App settings ===

DEFAULT_APP_SETTINGS: Dict[str, Any] = {
    "theme": "system",
    "viewMode": "simple",
    "simpleTab": "today",
    "agendaTab": "month",
    "notificationsEnabled": True,
}
