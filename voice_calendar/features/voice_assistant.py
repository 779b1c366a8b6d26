"""Voice assistant: ties capture, the agent webhook and the response handler together.

When capture ends on its own (the speaker paused), the transcript is
processed after a short quiescence delay. When the user stops capture by
hand, the transcript is processed once, right away, and the delayed
auto-processing for that session is suppressed. An agent call already in
flight cannot be aborted.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Set

from voice_calendar.core.exceptions import ConfigError, ProtocolError, TransportError, ValidationError
from voice_calendar.database.models import VoiceAgentCredentials
from voice_calendar.features.response_handler import (
    CONFIG_ERROR_DURATION,
    ERROR_DURATION,
    NEEDS_INFO_PROMPT_DURATION,
    TRANSPORT_ERROR_DURATION,
    HandlingResult,
    NeedsInfoRequest,
    NotificationAction,
    NotificationIntent,
    ResponseHandler,
)
from voice_calendar.features.voice_capture import VoiceCapture
from voice_calendar.interfaces.voice_agent import VoiceAgentInterface

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Assistente de voz não configurado. Vá para Configurações para configurar."
START_NOT_CONFIGURED_MESSAGE = "Configure o assistente de voz nas Configurações primeiro"
TRANSPORT_ERROR_MESSAGE = "Erro ao processar comando de voz. Tente novamente."
PROTOCOL_ERROR_MESSAGE = "Resposta inválida do assistente de voz."


class VoiceAssistant:
    def __init__(
        self,
        agent: VoiceAgentInterface,
        handler: ResponseHandler,
        capture: Optional[VoiceCapture] = None,
        quiescence_seconds: float = 0.5,
        credentials_provider: Optional[Callable[[], Optional[VoiceAgentCredentials]]] = None,
    ):
        self.agent = agent
        self.credentials_provider = credentials_provider
        self.handler = handler
        self.capture = capture
        self.quiescence_seconds = quiescence_seconds

        self.is_processing = False
        self.last_command = ""
        self.last_result: Optional[HandlingResult] = None
        self._user_stopped_manually = False
        self._has_processed_command = False
        self._pending_timer: Optional[asyncio.TimerHandle] = None
        self._background: Set[asyncio.Task] = set()

        handler.channel.subscribe("retry_requested", self._on_retry_requested)
        handler.channel.subscribe("needs_info", self._on_needs_info)
        if capture is not None:
            capture.add_end_listener(self._on_capture_end)

    # --- capture control ---

    def is_configured(self) -> bool:
        """False only when a credentials provider is set and yields no endpoint."""
        if self.credentials_provider is None:
            return True
        credentials = self.credentials_provider()
        return bool(credentials and credentials.endpoint_url)

    def start_listening(self) -> bool:
        """Starts a capture session. Returns False if capture did not start."""
        if self.capture is None:
            raise RuntimeError("No voice capture attached to this assistant.")
        if not self.is_configured():
            logger.warning("Refusing to listen: voice agent endpoint not configured.")
            self.handler.notify(NotificationIntent(
                severity="error", message=START_NOT_CONFIGURED_MESSAGE, duration=CONFIG_ERROR_DURATION,
            ))
            return False
        self._cancel_timer()
        self._user_stopped_manually = False
        self._has_processed_command = False
        return self.capture.start()

    def stop_listening(self) -> None:
        if self.capture is None:
            return
        logger.info("User manually stopped listening.")
        self._user_stopped_manually = True
        self._cancel_timer()
        self.capture.stop()

    def _on_capture_end(self, transcript: str, stopped_manually: bool) -> None:
        if not transcript.strip() or self._has_processed_command:
            return
        if stopped_manually:
            self._spawn(self.process_command(transcript))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to wait on; process right away
            self._auto_process(transcript)
            return
        self._cancel_timer()
        self._pending_timer = loop.call_later(self.quiescence_seconds, self._auto_process, transcript)

    def _auto_process(self, transcript: str) -> None:
        self._pending_timer = None
        if self._user_stopped_manually or self._has_processed_command:
            return
        self._spawn(self.process_command(transcript))

    def _cancel_timer(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

    def shutdown(self) -> None:
        """Drops any pending auto-processing and tears down an open capture session."""
        self._cancel_timer()
        if self.capture is not None and self.capture.is_listening:
            self.capture.abort()

    def _on_needs_info(self, request: NeedsInfoRequest) -> None:
        self.handler.notify(NotificationIntent(
            severity="info",
            message=f"Preciso de mais informações: {', '.join(request.missing)}",
            duration=NEEDS_INFO_PROMPT_DURATION,
            action=NotificationAction(label="OK", kind="dismiss"),
        ))

    def _on_retry_requested(self, text: str) -> None:
        logger.info(f"Retrying voice command: '{text[:50]}'")
        self._spawn(self.process_command(text))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_idle(self) -> None:
        """Waits for commands spawned in the background to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # --- command processing ---

    async def process_command(self, text: str) -> HandlingResult:
        """Sends ``text`` to the agent and applies its response.

        Errors never escape: they become error notifications.
        """
        result = HandlingResult()
        if not text or not text.strip():
            return result

        self.is_processing = True
        self.last_command = text
        try:
            response = await self.agent.send_command(text)
        except ConfigError as e:
            logger.warning(f"Voice command rejected, agent not configured: {e}")
            self.handler.notify(NotificationIntent(
                severity="error", message=NOT_CONFIGURED_MESSAGE, duration=CONFIG_ERROR_DURATION,
            ), result)
        except ValidationError as e:
            logger.info(f"Ignoring invalid voice command: {e}")
        except TransportError as e:
            logger.error(f"Voice command processing error: {e}", exc_info=True)
            self.handler.notify(
                self.handler.retry_notification(TRANSPORT_ERROR_MESSAGE, text, TRANSPORT_ERROR_DURATION),
                result,
            )
        except ProtocolError as e:
            logger.error(f"Voice agent answered outside the contract: {e}")
            self.handler.notify(NotificationIntent(
                severity="error", message=PROTOCOL_ERROR_MESSAGE, duration=ERROR_DURATION,
                action=NotificationAction(label="Fechar", kind="dismiss"),
            ), result)
        else:
            result = self.handler.handle(response, original_text=text)
        finally:
            self.is_processing = False
            self._has_processed_command = True
            if self.capture is not None:
                self.capture.reset_transcript()
        self.last_result = result
        return result
