"""Due-soon alerts for open tasks, refreshed periodically in the background."""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from voice_calendar.core.utils import utc_now
from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import NotificationAlert, NotificationAlertCreate
from voice_calendar.features.task_utils import format_time_remaining

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 60.0


def check_for_notifications(store: LocalStore, now: Optional[datetime] = None) -> List[NotificationAlert]:
    """Adds an alert for each task due soon that has no active alert yet.

    An alert is considered the same when it has the same type and title and
    is not dismissed. Nothing is added while the ``notificationsEnabled``
    setting is off.

    Returns:
        All active (not dismissed) alerts.
    """
    now = now or utc_now()
    if store.get_settings().get("notificationsEnabled", True) is not False:
        existing = store.get_notifications()
        for task in store.get_tasks_needing_notification(now):
            already_alerted = any(
                n.type == "task" and n.title == task.title and not n.dismissed
                for n in existing
            )
            if already_alerted:
                continue
            alert = store.add_notification(NotificationAlertCreate(
                type="task",
                title=task.title,
                time_remaining=format_time_remaining(task.due_date, now),
                due_date=task.due_date,
                dismissed=False,
            ))
            existing.append(alert)
            logger.info(f"Task '{task.title}' is due soon ({alert.time_remaining}).")

    return [n for n in store.get_notifications() if not n.dismissed]


class NotificationScheduler:
    """Runs ``check_for_notifications`` every ``interval_seconds`` on the event loop."""

    def __init__(self, store: LocalStore, interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS):
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="notification-check")
        logger.info(f"Notification check started (interval={self.interval_seconds}s).")

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Notification check stopped.")

    async def _run(self) -> None:
        while True:
            try:
                check_for_notifications(self.store)
            except Exception as e:
                logger.error(f"Notification check failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)
