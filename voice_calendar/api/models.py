"""Pydantic models for API request and response bodies.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from voice_calendar.database.models import CalendarEvent, NotificationAlert, Task, TaskPriority, TaskStatus
from voice_calendar.features.response_handler import NotificationIntent
from voice_calendar.features.task_utils import KanbanColumn, KanbanColumnId
from voice_calendar.features.voice_capture import TranscriptSegment


class TaskUpdateRequest(BaseModel):
    """Partial task update. Only the fields sent are applied.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    completed: Optional[bool] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    color: Optional[str] = None
    status: Optional[TaskStatus] = None


class KanbanBoardResponse(BaseModel):
    columns: List[KanbanColumn]


class KanbanMoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId", description="Task being dragged.")
    column: KanbanColumnId = Field(..., description="Destination column.")


class EventsResponse(BaseModel):
    """Events plus where they came from: Google, or the local cache as fallback.
    """
    events: List[CalendarEvent]
    source: Literal["google", "cache"]
    error: Optional[str] = None


class NotificationsResponse(BaseModel):
    notifications: List[NotificationAlert]


class VoiceCommandRequest(BaseModel):
    text: str = Field(..., description="Transcribed voice command.")


class VoiceCommandResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    created_tasks: List[Task] = Field(default_factory=list, alias="createdTasks")
    notifications: List[NotificationIntent] = Field(default_factory=list)


class CaptureResultsRequest(BaseModel):
    segments: List[TranscriptSegment]


class CaptureErrorRequest(BaseModel):
    code: str = Field(..., description="Recognizer error code, e.g. 'no-speech'.")


class CaptureStateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: str
    transcript: str
    interim_transcript: str = Field(alias="interimTranscript")
    error: Optional[str] = None
    is_processing: bool = Field(alias="isProcessing")
    last_result: Optional[VoiceCommandResponse] = Field(None, alias="lastResult")


class ConnectionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    configured: bool
    connected: bool = False
    auth_url: Optional[str] = Field(None, alias="authUrl")
