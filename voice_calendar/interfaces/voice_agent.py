"""Interface and implementation for talking to the voice agent webhook."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from voice_calendar.core.exceptions import ConfigError, ProtocolError, TransportError, ValidationError
from voice_calendar.core.utils import utc_now
from voice_calendar.database.models import VoiceAgentCredentials
from voice_calendar.features.voice_models import VoiceAgentRequest, VoiceAgentResponse

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("status", "type", "message")

# --- Interface Protocol ---

class VoiceAgentInterface(Protocol):
    """Interface for sending a transcribed command to the voice agent."""
    async def send_command(
        self,
        text: str,
        timestamp: Optional[Union[datetime, str]] = None,
        credentials: Optional[VoiceAgentCredentials] = None,
    ) -> VoiceAgentResponse:
        """Sends ``text`` to the agent and returns its parsed directive.

        Raises:
            ValidationError: If ``text`` is blank.
            ConfigError: If no endpoint URL is configured.
            TransportError: On network failure or a non-2xx answer.
            ProtocolError: If the answer does not follow the response contract.
        """
        ...

# --- Implementation ---

def unwrap_response(body: Any) -> Any:
    """Some deployments wrap the payload as ``{"response": {...}}``; peel one level."""
    if isinstance(body, dict) and "response" in body:
        return body["response"]
    return body


def parse_agent_response(body: Any) -> VoiceAgentResponse:
    """Validates an (already unwrapped) webhook body against the response contract."""
    if not isinstance(body, dict) or not all(body.get(field) for field in REQUIRED_FIELDS):
        raise ProtocolError("Invalid response structure from voice agent")
    try:
        return VoiceAgentResponse.model_validate(body)
    except PydanticValidationError as e:
        raise ProtocolError(f"Voice agent response failed validation: {e}") from e


class VoiceAgentClient(VoiceAgentInterface):
    """POSTs commands to the configured webhook with ``httpx``.

    Credentials are resolved on every call so edits made on the config page
    apply without restarting.
    """

    def __init__(
        self,
        credentials_provider: Callable[[], Optional[VoiceAgentCredentials]],
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials_provider = credentials_provider
        self.timeout = timeout
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the underlying HTTP client."""
        if self._owns_client:
            await self.http_client.aclose()
            logger.info("Voice agent HTTP client closed.")

    def _headers(self, credentials: VoiceAgentCredentials) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if credentials.auth_token:
            headers["Authorization"] = f"Bearer {credentials.auth_token}"
        return headers

    async def send_command(
        self,
        text: str,
        timestamp: Optional[Union[datetime, str]] = None,
        credentials: Optional[VoiceAgentCredentials] = None,
    ) -> VoiceAgentResponse:
        clean_text = (text or "").strip()
        if not clean_text:
            raise ValidationError("Texto não fornecido")

        credentials = credentials or self.credentials_provider()
        if credentials is None or not credentials.endpoint_url:
            raise ConfigError("Endpoint do Voice Agent não configurado. Vá para Configurações para configurar o assistente de voz.")

        if not isinstance(timestamp, str):
            # Strings are sent as given
            timestamp = (timestamp or utc_now()).isoformat()
        request = VoiceAgentRequest(text=clean_text, timestamp=timestamp)
        logger.info(f"Sending voice command to agent at {credentials.endpoint_url}: '{clean_text[:50]}'")

        try:
            response = await self.http_client.post(
                credentials.endpoint_url,
                json=request.model_dump(),
                headers=self._headers(credentials),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Error calling voice agent: {e}", exc_info=True)
            raise TransportError(f"Erro de conexão com o assistente de voz: {e}") from e

        if not response.is_success:
            logger.error(f"Voice agent responded with status {response.status_code}: {response.text[:200]}")
            raise TransportError(f"Voice agent responded with status: {response.status_code}", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ProtocolError("Voice agent response is not valid JSON") from e

        logger.debug(f"Full response from voice agent: {body}")
        return parse_agent_response(unwrap_response(body))
