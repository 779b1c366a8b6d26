"""Applies voice agent responses to the local store.

The handler reads the ``status`` / ``type`` / ``action`` combination of a
``VoiceAgentResponse``, creates tasks where the agent asks for it, and
publishes notification intents and domain events on a ``ResponseChannel``.
UI layers subscribe to the channel instead of passing callbacks in.

Dispatch:

    success    + event + created         -> notify, request data refresh
    success    + task  + create/created  -> store task, notify with agent message
    success    + anything else           -> notify only
    pending    + task  + data            -> store task, notify "Tarefa criada: <title>"
    pending    + anything else           -> informational notice
    needs_info                           -> sticky warning with a "Completar" action
    error                                -> error with a "Tentar Novamente" action

No request id is tracked: handling the same response twice stores two tasks.
"""

import logging
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.json_schema import SkipJsonSchema

from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import Task, TaskCreate
from voice_calendar.features.voice_models import TaskData, VoiceAgentResponse

logger = logging.getLogger(__name__)

NotificationSeverity = Literal["success", "info", "warning", "error"]

# Display durations, in seconds. None keeps the notice until dismissed.
CREATED_DURATION = 10.0
SUCCESS_DURATION = 8.0
PENDING_DURATION = 8.0
INFO_DURATION = 6.0
ERROR_DURATION = 8.0
TRANSPORT_ERROR_DURATION = 6.0
CONFIG_ERROR_DURATION = 4.0
NEEDS_INFO_PROMPT_DURATION = 8.0


class NotificationAction(BaseModel):
    """Button attached to a notification.

    ``kind`` and ``payload`` describe the action to API clients; ``callback``
    is the in-process hook run by ``invoke()``.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str
    kind: Literal["dismiss", "complete_info", "retry"]
    payload: Dict[str, Any] = Field(default_factory=dict)
    callback: SkipJsonSchema[Optional[Callable[[], Any]]] = Field(default=None, exclude=True, repr=False)

    def invoke(self) -> Any:
        if self.callback is None:
            return None
        return self.callback()


class NotificationIntent(BaseModel):
    severity: NotificationSeverity
    message: str
    description: Optional[str] = None
    duration: Optional[float] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    action: Optional[NotificationAction] = None

    @property
    def auto_dismiss(self) -> bool:
        return self.duration is not None


class NeedsInfoRequest(BaseModel):
    """What the agent still needs before it can act on a command."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    missing: List[str] = Field(default_factory=list)
    original_input: str = Field(default="", alias="originalInput")


class HandlingResult(BaseModel):
    created_tasks: List[Task] = Field(default_factory=list)
    notifications: List[NotificationIntent] = Field(default_factory=list)


def _dismiss_action() -> NotificationAction:
    return NotificationAction(label="Fechar", kind="dismiss")


class ResponseChannel:
    """Observer registry the response handler publishes to."""

    EVENTS = (
        "notification",       # NotificationIntent
        "task_created",       # Task
        "event_created",      # CalendarEvent
        "refresh_requested",  # no payload
        "needs_info",         # NeedsInfoRequest
        "retry_requested",    # original command text
    )

    def __init__(self):
        self._listeners: Dict[str, List[Callable[..., Any]]] = {event: [] for event in self.EVENTS}

    def subscribe(self, event: str, callback: Callable[..., Any]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unsupported event: {event}")
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable[..., Any]) -> None:
        if event in self._listeners and callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def publish(self, event: str, *args: Any) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unsupported event: {event}")
        for listener in list(self._listeners[event]):
            try:
                listener(*args)
            except Exception as e:
                logger.error(f"Listener for '{event}' failed: {e}", exc_info=True)


def task_from_data(data: TaskData) -> TaskCreate:
    """Maps the agent's task payload to a new, open, medium-priority-by-default task."""
    return TaskCreate(
        title=data.resolved_title,
        description=data.description or "",
        due_date=data.due_date,
        priority=data.priority or "medium",
        completed=False,
        status="pending",
        tags=[],
    )


class ResponseHandler:
    """Interprets agent responses and mutates the local store."""

    def __init__(self, store: LocalStore, channel: Optional[ResponseChannel] = None):
        self.store = store
        self.channel = channel or ResponseChannel()

    def notify(self, intent: NotificationIntent, result: Optional[HandlingResult] = None) -> NotificationIntent:
        """Publishes a notification intent and records it on ``result``."""
        if result is not None:
            result.notifications.append(intent)
        self.channel.publish("notification", intent)
        return intent

    def handle(self, response: VoiceAgentResponse, original_text: str = "") -> HandlingResult:
        """Dispatches one agent response.

        Args:
            response: The validated agent response.
            original_text: The command text that produced it, replayed by the
                retry action of error notifications.

        Returns:
            The tasks created and the notifications emitted.
        """
        logger.info(f"Handling agent response: status={response.status} type={response.type} action={response.action}")
        result = HandlingResult()

        if response.status == "success":
            self._handle_success(response, result)
        elif response.status == "pending":
            self._handle_pending(response, result)
        elif response.status == "needs_info":
            self._handle_needs_info(response, original_text, result)
        elif response.status == "error":
            self._handle_error(response, original_text, result)

        return result

    def _store_task(self, data: TaskData, result: HandlingResult) -> Task:
        task = self.store.add_task(task_from_data(data))
        result.created_tasks.append(task)
        self.channel.publish("task_created", task)
        return task

    def _handle_success(self, response: VoiceAgentResponse, result: HandlingResult) -> None:
        if response.type == "event" and response.action == "created":
            # The agent already wrote the event to Google Calendar
            self.notify(NotificationIntent(
                severity="success", message=response.message,
                duration=CREATED_DURATION, action=_dismiss_action(),
            ), result)
            self.channel.publish("refresh_requested")
        elif response.creates_task:
            self._store_task(response.data, result)
            self.notify(NotificationIntent(
                severity="success", message=response.message,
                duration=CREATED_DURATION, action=_dismiss_action(),
            ), result)
        else:
            self.notify(NotificationIntent(
                severity="success", message=response.message,
                duration=SUCCESS_DURATION, action=_dismiss_action(),
            ), result)

    def _handle_pending(self, response: VoiceAgentResponse, result: HandlingResult) -> None:
        if response.creates_task:
            task = self._store_task(response.data, result)
            self.notify(NotificationIntent(
                severity="success", message=f"Tarefa criada: {task.title}",
                duration=PENDING_DURATION, action=_dismiss_action(),
            ), result)
        else:
            self.notify(NotificationIntent(
                severity="info", message=response.message,
                duration=INFO_DURATION, action=_dismiss_action(),
            ), result)

    def _handle_needs_info(self, response: VoiceAgentResponse, original_text: str, result: HandlingResult) -> None:
        meta = response.meta
        missing = list(meta.missing) if meta else []
        request = NeedsInfoRequest(
            type=response.type,
            missing=missing,
            original_input=(meta.original_input if meta and meta.original_input else original_text),
        )

        def complete() -> None:
            self.channel.publish("needs_info", request)

        self.notify(NotificationIntent(
            severity="warning",
            message=response.message,
            description=f"Informações em falta: {', '.join(missing)}" if missing else None,
            duration=None,
            meta={"missing": missing},
            action=NotificationAction(
                label="Completar", kind="complete_info",
                payload=request.model_dump(by_alias=True), callback=complete,
            ),
        ), result)

    def _handle_error(self, response: VoiceAgentResponse, original_text: str, result: HandlingResult) -> None:
        self.notify(self.retry_notification(response.message, original_text, ERROR_DURATION), result)

    def retry_notification(self, message: str, original_text: str, duration: float) -> NotificationIntent:
        """Error notice whose action asks for ``original_text`` to be sent again."""

        def retry() -> None:
            self.channel.publish("retry_requested", original_text)

        return NotificationIntent(
            severity="error",
            message=message,
            duration=duration,
            action=NotificationAction(
                label="Tentar Novamente", kind="retry",
                payload={"text": original_text}, callback=retry,
            ),
        )
