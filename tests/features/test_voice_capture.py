"""Unit tests for the speech capture state machine."""

import pytest
from unittest.mock import MagicMock

from voice_calendar.features.voice_capture import (
    START_FAILED_MESSAGE,
    UNSUPPORTED_MESSAGE,
    CaptureState,
    TranscriptSegment,
    VoiceCapture,
)


@pytest.fixture
def recognizer():
    return MagicMock()


@pytest.fixture
def capture(recognizer):
    return VoiceCapture(recognizer=recognizer)


def test_recognizer_gets_the_locale(recognizer):
    VoiceCapture(recognizer=recognizer, locale="pt-BR")
    assert recognizer.locale == "pt-BR"


def test_start_moves_to_listening(capture, recognizer):
    assert capture.start() is True

    assert capture.state == CaptureState.LISTENING
    assert capture.is_listening
    recognizer.start.assert_called_once()


def test_final_segments_accumulate_and_interim_is_replaced(capture):
    capture.start()
    capture.on_result([TranscriptSegment(text="marcar ", is_final=True), TranscriptSegment(text="reun")])
    capture.on_result([TranscriptSegment(text="reunião", is_final=True), TranscriptSegment(text=" amanh")])

    assert capture.transcript == "marcar reunião"
    assert capture.interim_transcript == " amanh"


def test_results_are_ignored_when_not_listening(capture):
    capture.on_result([TranscriptSegment(text="ruído", is_final=True)])
    assert capture.transcript == ""


def test_manual_stop_hands_transcript_to_listeners(capture, recognizer):
    listener = MagicMock()
    capture.add_end_listener(listener)
    capture.start()
    capture.on_result([TranscriptSegment(text="comprar pão", is_final=True)])

    capture.stop()

    recognizer.stop.assert_called_once()
    listener.assert_called_once_with("comprar pão", True)
    assert capture.state == CaptureState.IDLE
    assert capture.interim_transcript == ""


def test_engine_end_is_not_manual(capture):
    listener = MagicMock()
    capture.add_end_listener(listener)
    capture.start()
    capture.on_result([TranscriptSegment(text="oi", is_final=True)])

    capture.on_end()

    listener.assert_called_once_with("oi", False)


def test_stop_when_idle_does_nothing(capture, recognizer):
    listener = MagicMock()
    capture.add_end_listener(listener)

    capture.stop()

    recognizer.stop.assert_not_called()
    listener.assert_not_called()


def test_new_start_resets_transcript(capture):
    capture.start()
    capture.on_result([TranscriptSegment(text="primeiro", is_final=True)])
    capture.stop()

    capture.start()

    assert capture.transcript == ""


@pytest.mark.parametrize("code, message", [
    ("no-speech", "Nenhuma fala detectada. Tente novamente."),
    ("audio-capture", "Microfone não acessível. Verifique as permissões."),
    ("not-allowed", "Permissão para usar o microfone negada."),
    ("network", "Erro de rede. Verifique sua conexão."),
    ("aborted", "Erro no reconhecimento de voz: aborted"),
])
def test_errors_leave_listening_with_a_message(capture, code, message):
    capture.start()

    capture.on_error(code)

    assert capture.state == CaptureState.ERROR
    assert not capture.is_listening
    assert capture.error == message


def test_unsupported_capture_refuses_to_start():
    capture = VoiceCapture()

    assert capture.is_supported is False
    assert capture.start() is False
    assert capture.state == CaptureState.ERROR
    assert capture.error == UNSUPPORTED_MESSAGE


def test_capture_without_engine_can_be_fed_directly():
    capture = VoiceCapture(supported=True)

    assert capture.start() is True
    capture.on_result([TranscriptSegment(text="relay", is_final=True)])
    assert capture.transcript == "relay"


def test_recognizer_start_failure_sets_error(recognizer):
    recognizer.start.side_effect = RuntimeError("already started")
    capture = VoiceCapture(recognizer=recognizer)

    assert capture.start() is False
    assert capture.error == START_FAILED_MESSAGE


def test_reset_transcript_clears_error_state(capture):
    capture.start()
    capture.on_error("network")

    capture.reset_transcript()

    assert capture.state == CaptureState.IDLE
    assert capture.error is None
