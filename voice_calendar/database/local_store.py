"""Local store: the persisted collections of tasks, cached events,
notifications, settings and credentials.

Every collection is a flat ordered list (or a single document) under its own
key. Read-modify-write operations hold a lock, so writers sharing one store in
a process never lose each other's changes. Nothing guards against two
processes sharing one database file.
"""

import sqlite3
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from voice_calendar.core.utils import generate_id, utc_now
from voice_calendar.database import crud
from voice_calendar.database.schema import (
    TASKS_KEY,
    CACHED_EVENTS_KEY,
    NOTIFICATIONS_KEY,
    SETTINGS_KEY,
    GOOGLE_CREDENTIALS_KEY,
    GOOGLE_ACCESS_TOKEN_KEY,
    GOOGLE_REFRESH_TOKEN_KEY,
    VOICE_AGENT_CREDENTIALS_KEY,
)
from voice_calendar.database.models import (
    DEFAULT_APP_SETTINGS,
    CalendarEvent,
    GoogleCredentials,
    NotificationAlert,
    NotificationAlertCreate,
    Task,
    TaskCreate,
    TaskStatus,
    VoiceAgentCredentials,
)

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_HORIZON = timedelta(minutes=30)


def _field_names(model: type, updates: Dict[str, Any]) -> Dict[str, Any]:
    """Maps camelCase aliases in ``updates`` back to model field names."""
    by_alias = {field.alias: name for name, field in model.model_fields.items() if field.alias}
    return {by_alias.get(key, key): value for key, value in updates.items()}


def calculate_task_status(task: Task, now: Optional[datetime] = None) -> TaskStatus:
    """Derives a task's status from completion and due date.

    Completed tasks are 'completed'; tasks without a due date are 'pending';
    past due dates are 'overdue'; due within 24 hours is 'in-progress';
    anything later is 'pending'.
    """
    if task.completed:
        return "completed"
    if task.due_date is None:
        return "pending"

    now = now or utc_now()
    if task.due_date < now:
        return "overdue"
    if task.due_date - now <= timedelta(days=1):
        return "in-progress"
    return "pending"


class LocalStore:
    """Typed access to the local key-value store.

    Built once at application start and handed to consumers through
    dependency injection.
    """

    def __init__(self, conn: sqlite3.Connection, notification_horizon: timedelta = DEFAULT_NOTIFICATION_HORIZON):
        self.conn = conn
        self.notification_horizon = notification_horizon
        # Guards the shared connection and every read-modify-write sequence
        self._lock = threading.RLock()

    @classmethod
    def open(cls, db_path: str | Path, **kwargs: Any) -> "LocalStore":
        return cls(crud.connect(db_path), **kwargs)

    def close(self) -> None:
        self.conn.close()

    # --- internal helpers ---

    def _load_list(self, key: str, model: type) -> list:
        with self._lock:
            raw = crud.get_value(self.conn, key) or []
        items = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed entry under '{key}': {e}")
        return items

    def _save_list(self, key: str, items: list) -> None:
        with self._lock:
            crud.set_value(self.conn, key, [item.to_store() for item in items])

    # --- Tasks ---

    def get_tasks(self) -> List[Task]:
        return self._load_list(TASKS_KEY, Task)

    def save_tasks(self, tasks: List[Task]) -> None:
        self._save_list(TASKS_KEY, tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.get_tasks() if t.id == task_id), None)

    def add_task(self, task: TaskCreate) -> Task:
        """Persists a new task with a generated ``task_<ms>_<suffix>`` id.

        Returns:
            The stored task, with id and timestamps filled in.
        """
        now = utc_now()
        new_task = Task.model_validate({
            **task.model_dump(),
            "id": generate_id("task"),
            "created_at": now,
            "updated_at": now,
        })
        with self._lock:
            tasks = self.get_tasks()
            tasks.append(new_task)
            self.save_tasks(tasks)
        logger.info(f"Created task '{new_task.title}' with id {new_task.id}")
        return new_task

    def update_task(self, task_id: str, updates: Dict[str, Any]) -> Optional[Task]:
        """Merges ``updates`` into the task and bumps ``updatedAt``.

        Returns:
            The updated task, or None if no task has that id.
        """
        with self._lock:
            tasks = self.get_tasks()
            index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
            if index is None:
                logger.debug(f"update_task: task {task_id} not found.")
                return None

            merged = tasks[index].model_dump()
            merged.update(_field_names(Task, updates))
            merged["id"] = task_id
            merged["updated_at"] = utc_now()
            tasks[index] = Task.model_validate(merged)
            self.save_tasks(tasks)
            return tasks[index]

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            tasks = self.get_tasks()
            remaining = [t for t in tasks if t.id != task_id]
            if len(remaining) == len(tasks):
                return False
            self.save_tasks(remaining)
        logger.info(f"Deleted task {task_id}")
        return True

    @staticmethod
    def calculate_task_status(task: Task, now: Optional[datetime] = None) -> TaskStatus:
        return calculate_task_status(task, now)

    def get_tasks_needing_notification(self, now: Optional[datetime] = None) -> List[Task]:
        """Open tasks whose due date falls within ``[now, now + horizon]``."""
        now = now or utc_now()
        limit = now + self.notification_horizon
        return [
            task for task in self.get_tasks()
            if not task.completed and task.due_date is not None and now <= task.due_date <= limit
        ]

    # --- Events cache ---

    def get_cached_events(self) -> List[CalendarEvent]:
        return self._load_list(CACHED_EVENTS_KEY, CalendarEvent)

    def save_cached_events(self, events: List[CalendarEvent]) -> None:
        self._save_list(CACHED_EVENTS_KEY, events)

    def cache_event(self, event: CalendarEvent) -> None:
        """Appends (or replaces, by id) one event in the cache."""
        with self._lock:
            events = [e for e in self.get_cached_events() if e.id != event.id]
            events.append(event)
            self.save_cached_events(events)

    def refresh_cached_events(self, fetched: List[CalendarEvent], start: datetime, end: datetime) -> None:
        """Replaces the cached remote events starting in ``[start, end]`` with ``fetched``.

        Local (``local_``) events and events outside the window are kept.
        """
        with self._lock:
            kept = [e for e in self.get_cached_events() if e.is_local or not (start <= e.start <= end)]
            self.save_cached_events(kept + fetched)

    # --- Notifications ---

    def get_notifications(self) -> List[NotificationAlert]:
        return self._load_list(NOTIFICATIONS_KEY, NotificationAlert)

    def save_notifications(self, notifications: List[NotificationAlert]) -> None:
        self._save_list(NOTIFICATIONS_KEY, notifications)

    def add_notification(self, notification: NotificationAlertCreate) -> NotificationAlert:
        new_notification = NotificationAlert.model_validate({
            **notification.model_dump(),
            "id": generate_id("notif"),
        })
        with self._lock:
            notifications = self.get_notifications()
            notifications.append(new_notification)
            self.save_notifications(notifications)
        return new_notification

    def dismiss_notification(self, notification_id: str) -> bool:
        """Marks the alert dismissed. Returns False (and writes nothing) if no alert has that id."""
        with self._lock:
            notifications = self.get_notifications()
            found = False
            for notification in notifications:
                if notification.id == notification_id:
                    notification.dismissed = True
                    found = True
            if found:
                self.save_notifications(notifications)
        return found

    # --- Settings ---

    def get_settings(self) -> Dict[str, Any]:
        with self._lock:
            stored = crud.get_value(self.conn, SETTINGS_KEY)
        if not isinstance(stored, dict):
            return dict(DEFAULT_APP_SETTINGS)
        return stored

    def save_setting(self, key: str, value: Any) -> Dict[str, Any]:
        with self._lock:
            settings = self.get_settings()
            settings[key] = value
            crud.set_value(self.conn, SETTINGS_KEY, settings)
        return settings

    # --- Credentials ---

    def _get(self, key: str) -> Any:
        with self._lock:
            return crud.get_value(self.conn, key)

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            crud.set_value(self.conn, key, value)

    def _delete(self, key: str) -> None:
        with self._lock:
            crud.delete_value(self.conn, key)

    def get_google_credentials(self) -> Optional[GoogleCredentials]:
        raw = self._get(GOOGLE_CREDENTIALS_KEY)
        if not raw:
            return None
        try:
            return GoogleCredentials.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"Stored Google credentials are malformed, ignoring them: {e}")
            return None

    def set_google_credentials(self, credentials: GoogleCredentials) -> None:
        self._set(GOOGLE_CREDENTIALS_KEY, credentials.to_store())

    def get_access_token(self) -> Optional[str]:
        return self._get(GOOGLE_ACCESS_TOKEN_KEY)

    def set_access_token(self, token: str) -> None:
        self._set(GOOGLE_ACCESS_TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self._get(GOOGLE_REFRESH_TOKEN_KEY)

    def set_refresh_token(self, token: str) -> None:
        self._set(GOOGLE_REFRESH_TOKEN_KEY, token)

    def clear_google_tokens(self) -> None:
        self._delete(GOOGLE_ACCESS_TOKEN_KEY)
        self._delete(GOOGLE_REFRESH_TOKEN_KEY)

    def clear_google_credentials(self) -> None:
        """Forgets the OAuth client and every token obtained with it."""
        self._delete(GOOGLE_CREDENTIALS_KEY)
        self.clear_google_tokens()

    def get_voice_agent_credentials(self) -> Optional[VoiceAgentCredentials]:
        raw = self._get(VOICE_AGENT_CREDENTIALS_KEY)
        if not raw:
            return None
        try:
            return VoiceAgentCredentials.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"Stored voice agent credentials are malformed, ignoring them: {e}")
            return None

    def set_voice_agent_credentials(self, credentials: VoiceAgentCredentials) -> None:
        self._set(VOICE_AGENT_CREDENTIALS_KEY, credentials.to_store())
