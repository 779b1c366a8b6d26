"""Unit tests for the voice agent response handler."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from voice_calendar.database.local_store import LocalStore
from voice_calendar.features.response_handler import (
    CREATED_DURATION,
    ERROR_DURATION,
    INFO_DURATION,
    PENDING_DURATION,
    SUCCESS_DURATION,
    NeedsInfoRequest,
    ResponseChannel,
    ResponseHandler,
)
from voice_calendar.features.voice_models import VoiceAgentResponse


@pytest.fixture
def store(tmp_path):
    s = LocalStore.open(tmp_path / "store.db")
    yield s
    s.close()


@pytest.fixture
def channel():
    return ResponseChannel()


@pytest.fixture
def handler(store, channel):
    return ResponseHandler(store=store, channel=channel)


def _response(**body) -> VoiceAgentResponse:
    return VoiceAgentResponse.model_validate(body)


def test_success_task_created_stores_task(handler, store, channel):
    on_task = MagicMock()
    channel.subscribe("task_created", on_task)

    result = handler.handle(_response(
        status="success", type="task", action="created", message="Tarefa adicionada",
        data={"title": "Ligar para Ana", "dueDate": "2024-06-11T15:00:00Z", "priority": "high"},
    ))

    tasks = store.get_tasks()
    assert len(tasks) == 1
    task = tasks[0]
    assert task.title == "Ligar para Ana"
    assert task.description == ""
    assert task.due_date == datetime(2024, 6, 11, 15, 0, tzinfo=timezone.utc)
    assert task.priority == "high"
    assert task.completed is False
    assert task.status == "pending"
    assert task.tags == []
    assert task.created_at == task.updated_at
    assert result.created_tasks == [task]
    on_task.assert_called_once_with(task)

    notification = result.notifications[0]
    assert notification.severity == "success"
    assert notification.message == "Tarefa adicionada"
    assert notification.duration == CREATED_DURATION


def test_success_task_action_create_defaults(handler, store):
    handler.handle(_response(
        status="success", type="task", action="create", message="ok",
        data={"summary": "Resumo como título"},
    ))

    task = store.get_tasks()[0]
    assert task.title == "Resumo como título"
    assert task.priority == "medium"
    assert task.due_date is None


def test_success_event_created_requests_refresh_without_mutation(handler, store, channel):
    on_refresh = MagicMock()
    channel.subscribe("refresh_requested", on_refresh)

    result = handler.handle(_response(status="success", type="event", action="created", message="Evento criado"))

    assert store.get_tasks() == []
    assert store.get_cached_events() == []
    on_refresh.assert_called_once_with()
    assert result.notifications[0].severity == "success"
    assert result.notifications[0].duration == CREATED_DURATION


def test_success_other_only_notifies(handler, store):
    result = handler.handle(_response(status="success", type="unknown", message="Feito"))

    assert store.get_tasks() == []
    assert result.notifications[0].message == "Feito"
    assert result.notifications[0].duration == SUCCESS_DURATION


def test_success_task_without_create_action_does_not_store(handler, store):
    handler.handle(_response(status="success", type="task", action="none", message="Nada", data={"title": "x"}))

    assert store.get_tasks() == []


def test_pending_task_stores_and_announces_title(handler, store):
    result = handler.handle(_response(
        status="pending", type="task", message="Processando",
        data={"title": "Enviar relatório"},
    ))

    assert [t.title for t in store.get_tasks()] == ["Enviar relatório"]
    notification = result.notifications[0]
    assert notification.severity == "success"
    assert notification.message == "Tarefa criada: Enviar relatório"
    assert notification.duration == PENDING_DURATION


def test_pending_task_with_offset_due_date_gets_defaults(handler, store):
    handler.handle(_response(
        status="pending", type="task", message="Processando",
        data={"title": "Reunião com cliente", "dueDate": "2025-06-18T18:00:00-03:00"},
    ))

    task = store.get_tasks()[0]
    assert task.priority == "medium"
    assert task.completed is False
    assert task.due_date == datetime(2025, 6, 18, 18, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert task.due_date.utcoffset() == timedelta(hours=-3)


def test_pending_other_is_informational(handler, store):
    result = handler.handle(_response(status="pending", type="event", message="Aguardando confirmação"))

    assert store.get_tasks() == []
    assert result.notifications[0].severity == "info"
    assert result.notifications[0].duration == INFO_DURATION


def test_needs_info_is_sticky_and_carries_missing_fields(handler, store, channel):
    on_needs_info = MagicMock()
    channel.subscribe("needs_info", on_needs_info)

    result = handler.handle(_response(
        status="needs_info", type="event", message="Preciso de mais detalhes",
        meta={"missing": ["data", "hora"], "originalInput": "marcar reunião"},
    ), original_text="marcar reunião amanhã")

    assert store.get_tasks() == []
    notification = result.notifications[0]
    assert notification.severity == "warning"
    assert notification.duration is None
    assert notification.auto_dismiss is False
    assert notification.description == "Informações em falta: data, hora"
    assert notification.meta == {"missing": ["data", "hora"]}
    assert notification.action.label == "Completar"

    notification.action.invoke()
    on_needs_info.assert_called_once_with(
        NeedsInfoRequest(type="event", missing=["data", "hora"], original_input="marcar reunião")
    )


def test_needs_info_without_meta_falls_back_to_original_text(handler, channel):
    on_needs_info = MagicMock()
    channel.subscribe("needs_info", on_needs_info)

    result = handler.handle(_response(status="needs_info", type="task", message="Qual tarefa?"), original_text="criar tarefa")
    result.notifications[0].action.invoke()

    request = on_needs_info.call_args.args[0]
    assert request.missing == []
    assert request.original_input == "criar tarefa"


def test_error_offers_retry_with_original_text(handler, store, channel):
    on_retry = MagicMock()
    channel.subscribe("retry_requested", on_retry)

    result = handler.handle(_response(status="error", type="unknown", message="Falhou"), original_text="comprar leite")

    assert store.get_tasks() == []
    notification = result.notifications[0]
    assert notification.severity == "error"
    assert notification.duration == ERROR_DURATION
    assert notification.action.label == "Tentar Novamente"
    assert notification.action.payload == {"text": "comprar leite"}

    notification.action.invoke()
    on_retry.assert_called_once_with("comprar leite")


def test_identical_responses_create_two_tasks(handler, store):
    response = _response(status="pending", type="task", message="ok", data={"title": "Duplicada"})

    handler.handle(response)
    handler.handle(response)

    tasks = store.get_tasks()
    assert [t.title for t in tasks] == ["Duplicada", "Duplicada"]
    assert tasks[0].id != tasks[1].id


def test_every_notification_is_published(handler, channel):
    on_notification = MagicMock()
    channel.subscribe("notification", on_notification)

    result = handler.handle(_response(status="success", type="unknown", message="Oi"))

    on_notification.assert_called_once_with(result.notifications[0])


def test_failing_listener_does_not_break_handling(handler, store, channel):
    channel.subscribe("task_created", MagicMock(side_effect=RuntimeError("boom")))

    result = handler.handle(_response(status="pending", type="task", message="ok", data={"title": "Segura"}))

    assert len(result.created_tasks) == 1
    assert len(store.get_tasks()) == 1


def test_channel_rejects_unknown_events(channel):
    with pytest.raises(ValueError):
        channel.subscribe("unknown_event", MagicMock())


def test_unsubscribe_stops_delivery(channel):
    listener = MagicMock()
    channel.subscribe("refresh_requested", listener)
    channel.unsubscribe("refresh_requested", listener)

    channel.publish("refresh_requested")

    listener.assert_not_called()
