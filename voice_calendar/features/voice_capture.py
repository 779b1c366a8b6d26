"""Speech capture state machine.

``VoiceCapture`` tracks ``idle -> listening -> idle`` (or ``error``) and
accumulates the transcript a speech engine reports. It never interprets what
was said. Engines plug in through ``SpeechRecognizer``; without one, results
can still be fed in directly (e.g. from a browser relaying its own
recognition events).
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    "no-speech": "Nenhuma fala detectada. Tente novamente.",
    "audio-capture": "Microfone não acessível. Verifique as permissões.",
    "not-allowed": "Permissão para usar o microfone negada.",
    "network": "Erro de rede. Verifique sua conexão.",
}
UNSUPPORTED_MESSAGE = "Reconhecimento de voz não suportado neste navegador"
START_FAILED_MESSAGE = "Erro ao iniciar reconhecimento de voz"


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    ERROR = "error"


class TranscriptSegment(BaseModel):
    text: str
    is_final: bool = False


class SpeechRecognizer(Protocol):
    """A speech-to-text engine driven by ``VoiceCapture``."""
    locale: str

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def abort(self) -> None:
        ...


# Called with (transcript, stopped_manually) when a capture session ends
EndListener = Callable[[str, bool], None]


def error_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, f"Erro no reconhecimento de voz: {code}")


class VoiceCapture:
    def __init__(self, recognizer: Optional[SpeechRecognizer] = None, locale: str = "pt-BR", supported: Optional[bool] = None):
        self.recognizer = recognizer
        self.locale = locale
        if recognizer is not None:
            recognizer.locale = locale
        self.is_supported = supported if supported is not None else recognizer is not None
        self.state = CaptureState.IDLE
        self.transcript = ""
        self.interim_transcript = ""
        self.error: Optional[str] = None
        self._end_listeners: List[EndListener] = []

    @property
    def is_listening(self) -> bool:
        return self.state == CaptureState.LISTENING

    def add_end_listener(self, listener: EndListener) -> None:
        self._end_listeners.append(listener)

    def start(self) -> bool:
        """Starts a fresh session. Returns False if capture could not start."""
        if not self.is_supported:
            self._fail(UNSUPPORTED_MESSAGE)
            return False
        if self.is_listening:
            return True

        self.error = None
        self.transcript = ""
        self.interim_transcript = ""
        self.state = CaptureState.LISTENING
        if self.recognizer is not None:
            try:
                self.recognizer.start()
            except Exception as e:
                logger.error(f"Speech recognizer failed to start: {e}", exc_info=True)
                self._fail(START_FAILED_MESSAGE)
                return False
        logger.debug(f"Voice capture listening ({self.locale}).")
        return True

    def stop(self) -> None:
        """Manual stop. The transcript gathered so far is handed to end listeners."""
        if not self.is_listening:
            return
        if self.recognizer is not None:
            self.recognizer.stop()
        self._finish(stopped_manually=True)

    def on_result(self, segments: Iterable[TranscriptSegment]) -> None:
        """Feeds recognition results. Final text is appended, interim text replaced."""
        if not self.is_listening:
            return
        final_text = ""
        interim_text = ""
        for segment in segments:
            if segment.is_final:
                final_text += segment.text
            else:
                interim_text += segment.text
        self.transcript += final_text
        self.interim_transcript = interim_text

    def on_end(self) -> None:
        """The engine detected the end of speech."""
        if not self.is_listening:
            return
        self._finish(stopped_manually=False)

    def on_error(self, code: str) -> None:
        message = error_message(code)
        logger.warning(f"Voice capture error '{code}': {message}")
        self._fail(message)

    def reset_transcript(self) -> None:
        self.transcript = ""
        self.interim_transcript = ""
        self.error = None
        if self.state == CaptureState.ERROR:
            self.state = CaptureState.IDLE

    def abort(self) -> None:
        """Tears the session down without notifying end listeners."""
        if self.recognizer is not None:
            self.recognizer.abort()
        self.state = CaptureState.IDLE
        self.interim_transcript = ""

    def _fail(self, message: str) -> None:
        self.error = message
        self.interim_transcript = ""
        self.state = CaptureState.ERROR

    def _finish(self, stopped_manually: bool) -> None:
        self.state = CaptureState.IDLE
        self.interim_transcript = ""
        for listener in list(self._end_listeners):
            listener(self.transcript, stopped_manually)
