"""API Router for tasks kept in the local store."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from voice_calendar.api.models import TaskUpdateRequest
from voice_calendar.core.dependencies import get_local_store, get_response_channel
from voice_calendar.database.local_store import LocalStore, calculate_task_status
from voice_calendar.database.models import Task, TaskCreate
from voice_calendar.features.response_handler import ResponseChannel
from voice_calendar.features.task_utils import RangeKey, filter_tasks_in_range

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_or_404(store: LocalStore, task_id: str) -> Task:
    task = store.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")
    return task


@router.get("", response_model=List[Task])
def list_tasks(
    range_: Optional[RangeKey] = Query(None, alias="range", description="Restrict to today, this week or this month."),
    store: LocalStore = Depends(get_local_store),
):
    tasks = store.get_tasks()
    if range_ is not None:
        tasks = filter_tasks_in_range(tasks, range_)
    return tasks


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    store: LocalStore = Depends(get_local_store),
    channel: ResponseChannel = Depends(get_response_channel),
):
    created = store.add_task(task)
    channel.publish("task_created", created)
    return created


@router.get("/{task_id}", response_model=Task)
def get_task(task_id: str, store: LocalStore = Depends(get_local_store)):
    return _get_or_404(store, task_id)


@router.patch("/{task_id}", response_model=Task)
def update_task(task_id: str, request: TaskUpdateRequest, store: LocalStore = Depends(get_local_store)):
    updated = store.update_task(task_id, request.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")
    return updated


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, store: LocalStore = Depends(get_local_store)):
    if not store.delete_task(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/toggle", response_model=Task)
def toggle_task(task_id: str, store: LocalStore = Depends(get_local_store)):
    """Flips completion. Reopened tasks get their status recomputed from the due date."""
    task = _get_or_404(store, task_id)
    completed = not task.completed
    if completed:
        new_status = "completed"
    else:
        new_status = calculate_task_status(task.model_copy(update={"completed": False}))
    logger.info(f"Toggling task {task_id}: completed={completed}")
    return store.update_task(task_id, {"completed": completed, "status": new_status})
