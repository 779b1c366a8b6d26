# Utility functions for tasks: time-remaining labels, kanban columns, date ranges.

import calendar
import logging
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from voice_calendar.core.utils import utc_now
from voice_calendar.database.models import CalendarEvent, Task

logger = logging.getLogger(__name__)

KanbanColumnId = Literal["overdue", "today", "this-week", "later", "completed"]
RangeKey = Literal["today", "week", "month"]

# Board order, left to right
KANBAN_COLUMNS: Dict[str, str] = {
    "overdue": "Atrasadas",
    "today": "Hoje",
    "this-week": "Esta Semana",
    "later": "Mais Tarde",
    "completed": "Concluídas",
}


class KanbanColumn(BaseModel):
    id: KanbanColumnId
    title: str
    tasks: List[Task] = Field(default_factory=list)


def _local_now(now: Optional[datetime]) -> datetime:
    return (now or utc_now()).astimezone()


def format_time_remaining(due_date: datetime, now: Optional[datetime] = None) -> str:
    """Human label for the time left until ``due_date``, e.g. ``"1h 5min restantes"``."""
    now = now or utc_now()
    minutes = int((due_date - now).total_seconds() // 60)
    if minutes <= 0:
        return "Atrasado"
    if minutes < 60:
        return f"{minutes}min restantes"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h {remaining}min restantes"


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)


def start_of_week(value: datetime) -> datetime:
    """Weeks start on Sunday."""
    days_since_sunday = (value.weekday() + 1) % 7
    return start_of_day(value - timedelta(days=days_since_sunday))


def end_of_week(value: datetime) -> datetime:
    return end_of_day(start_of_week(value) + timedelta(days=6))


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value.replace(day=1))


def end_of_month(value: datetime) -> datetime:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return end_of_day(value.replace(day=last_day))


def add_months(value: datetime, months: int) -> datetime:
    """Same day next month(s), clamped to the month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def date_range(key: RangeKey, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Bounds of the current day, week or month in local time."""
    now = _local_now(now)
    if key == "today":
        return start_of_day(now), end_of_day(now)
    if key == "week":
        return start_of_week(now), end_of_week(now)
    if key == "month":
        return start_of_month(now), end_of_month(now)
    raise ValueError(f"Unknown range: {key}")


def filter_tasks_in_range(tasks: List[Task], key: RangeKey, now: Optional[datetime] = None) -> List[Task]:
    """Tasks due inside the range. Undated tasks only show in the month range."""
    start, end = date_range(key, now)
    return [
        task for task in tasks
        if (task.due_date is None and key == "month")
        or (task.due_date is not None and start <= task.due_date <= end)
    ]


def filter_events_in_range(events: List[CalendarEvent], key: RangeKey, now: Optional[datetime] = None) -> List[CalendarEvent]:
    start, end = date_range(key, now)
    return [event for event in events if start <= event.start <= end]


def classify_kanban_column(task: Task, now: Optional[datetime] = None) -> KanbanColumnId:
    if task.completed:
        return "completed"
    if task.due_date is None:
        return "later"

    now = _local_now(now)
    due = task.due_date.astimezone(now.tzinfo)
    is_today = due.date() == now.date()
    if due < now and not is_today:
        return "overdue"
    if is_today:
        return "today"
    if start_of_week(now) <= due <= end_of_week(now):
        return "this-week"
    return "later"


def build_kanban_board(tasks: List[Task], now: Optional[datetime] = None) -> List[KanbanColumn]:
    """Sorts tasks into the five board columns, keeping store order inside each."""
    columns = {column_id: KanbanColumn(id=column_id, title=title) for column_id, title in KANBAN_COLUMNS.items()}
    for task in tasks:
        columns[classify_kanban_column(task, now)].tasks.append(task)
    return list(columns.values())


def kanban_move_updates(column: KanbanColumnId, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Task updates applied when a card is dropped on ``column``."""
    now = now or utc_now()
    if column == "completed":
        return {"completed": True, "status": "completed"}
    if column == "today":
        return {"completed": False, "due_date": now, "status": "in-progress"}
    if column == "this-week":
        return {"completed": False, "due_date": now + timedelta(days=7), "status": "pending"}
    if column == "later":
        return {"completed": False, "due_date": add_months(now, 1), "status": "pending"}
    if column == "overdue":
        return {"completed": False, "status": "overdue"}
    raise ValueError(f"Unknown kanban column: {column}")
