"""Unit tests for due-soon alerts and the background check."""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from voice_calendar.database.local_store import LocalStore
from voice_calendar.database.models import Task
from voice_calendar.features.notification_scheduler import NotificationScheduler, check_for_notifications

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    s = LocalStore.open(tmp_path / "store.db")
    yield s
    s.close()


def _task(task_id, **overrides) -> Task:
    values = {"id": task_id, "title": task_id, "created_at": NOW, "updated_at": NOW}
    values.update(overrides)
    return Task(**values)


def test_alert_created_for_task_due_soon(store):
    store.save_tasks([
        _task("Reunião", due_date=NOW + timedelta(minutes=20)),
        _task("Amanhã", due_date=NOW + timedelta(days=1)),
    ])

    active = check_for_notifications(store, NOW)

    assert len(active) == 1
    alert = active[0]
    assert alert.type == "task"
    assert alert.title == "Reunião"
    assert alert.time_remaining == "20min restantes"
    assert alert.due_date == NOW + timedelta(minutes=20)
    assert alert.dismissed is False


def test_repeated_checks_do_not_duplicate(store):
    store.save_tasks([_task("Reunião", due_date=NOW + timedelta(minutes=20))])

    check_for_notifications(store, NOW)
    active = check_for_notifications(store, NOW + timedelta(minutes=1))

    assert len(active) == 1
    assert len(store.get_notifications()) == 1


def test_dismissed_alert_is_raised_again(store):
    store.save_tasks([_task("Reunião", due_date=NOW + timedelta(minutes=20))])
    first = check_for_notifications(store, NOW)[0]
    store.dismiss_notification(first.id)

    active = check_for_notifications(store, NOW + timedelta(minutes=1))

    assert len(active) == 1
    assert active[0].id != first.id
    assert active[0].time_remaining == "19min restantes"


def test_disabled_notifications_add_nothing(store):
    store.save_setting("notificationsEnabled", False)
    store.save_tasks([_task("Reunião", due_date=NOW + timedelta(minutes=20))])

    assert check_for_notifications(store, NOW) == []
    assert store.get_notifications() == []


def test_scheduler_runs_check_until_stopped(store):
    scheduler = NotificationScheduler(store, interval_seconds=0.01)

    async def scenario():
        with patch("voice_calendar.features.notification_scheduler.check_for_notifications") as mock_check:
            scheduler.start()
            assert scheduler.is_running
            await asyncio.sleep(0.05)
            await scheduler.stop()
            return mock_check.call_count

    calls = asyncio.run(scenario())

    assert calls >= 2
    assert scheduler.is_running is False


def test_scheduler_survives_failing_check(store):
    scheduler = NotificationScheduler(store, interval_seconds=0.01)

    async def scenario():
        with patch(
            "voice_calendar.features.notification_scheduler.check_for_notifications",
            side_effect=RuntimeError("db locked"),
        ) as mock_check:
            scheduler.start()
            await asyncio.sleep(0.05)
            still_running = scheduler.is_running
            await scheduler.stop()
            return still_running, mock_check.call_count

    still_running, calls = asyncio.run(scenario())

    assert still_running
    assert calls >= 2


def test_stop_without_start_is_harmless(store):
    asyncio.run(NotificationScheduler(store).stop())
