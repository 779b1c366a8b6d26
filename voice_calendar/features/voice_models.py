"""Pydantic models for the voice agent webhook contract."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from voice_calendar.database.models import TaskPriority

AgentStatus = Literal["success", "pending", "error", "needs_info"]
AgentType = Literal["event", "task", "unknown"]


class VoiceAgentRequest(BaseModel):
    """Body POSTed to the webhook: ``{"text": ..., "timestamp": ...}``."""
    text: str
    timestamp: str # ISO 8601


# --- Schemas for the per-type ``data`` payload ---

class TaskData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    priority: Optional[TaskPriority] = None

    @property
    def resolved_title(self) -> str:
        return self.title or self.summary or ""


class EventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None


DATA_VARIANTS = {
    "task": TaskData,
    "event": EventData,
}


class AgentMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    missing: List[str] = Field(default_factory=list)
    original_input: Optional[str] = Field(default=None, alias="originalInput")
    timestamp: Optional[str] = None


class VoiceAgentResponse(BaseModel):
    """Structured directive returned by the agent.

    ``data`` is parsed into the variant matching ``type`` (``TaskData`` or
    ``EventData``); for ``unknown`` it stays a plain dict.
    """
    model_config = ConfigDict(populate_by_name=True)

    status: AgentStatus
    type: AgentType
    action: Optional[str] = None # 'created' | 'create' | 'none'
    message: str
    data: Optional[Union[TaskData, EventData, Dict[str, Any]]] = None
    meta: Optional[AgentMeta] = None

    @model_validator(mode="before")
    @classmethod
    def _parse_data_variant(cls, values: Any) -> Any:
        if isinstance(values, dict) and isinstance(values.get("data"), dict):
            variant = DATA_VARIANTS.get(values.get("type"))
            if variant is not None:
                values = {**values, "data": variant.model_validate(values["data"])}
        return values

    @model_validator(mode="after")
    def _task_creation_needs_title(self):
        if self.creates_task and not self.data.resolved_title:
            raise ValueError("task data must carry a title or summary")
        return self

    @property
    def creates_task(self) -> bool:
        """True when handling this response stores a new local task."""
        if self.type != "task" or not isinstance(self.data, TaskData):
            return False
        if self.status == "success":
            return self.action in ("create", "created")
        return self.status == "pending"
