"""API Router for the kanban board."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from voice_calendar.api.models import KanbanBoardResponse, KanbanMoveRequest
from voice_calendar.core.dependencies import get_local_store
from voice_calendar.database.local_store import LocalStore
from voice_calendar.features.task_utils import build_kanban_board, kanban_move_updates

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=KanbanBoardResponse)
def get_board(store: LocalStore = Depends(get_local_store)):
    return KanbanBoardResponse(columns=build_kanban_board(store.get_tasks()))


@router.post("/move", response_model=KanbanBoardResponse)
def move_task(request: KanbanMoveRequest, store: LocalStore = Depends(get_local_store)):
    """Applies the drop rules of the destination column and returns the new board."""
    updated = store.update_task(request.task_id, kanban_move_updates(request.column))
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {request.task_id} not found")
    logger.info(f"Moved task {request.task_id} to column '{request.column}'")
    return KanbanBoardResponse(columns=build_kanban_board(store.get_tasks()))
