"""API Routers for voice commands.

``router`` runs the whole voice flow server side (capture relay, agent call,
response handling). ``proxy_router`` only forwards a command to the agent and
returns its answer, reading the webhook credentials from request headers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from voice_calendar.api.models import (
    CaptureErrorRequest,
    CaptureResultsRequest,
    CaptureStateResponse,
    VoiceCommandRequest,
    VoiceCommandResponse,
)
from voice_calendar.core.dependencies import get_voice_agent, get_voice_assistant
from voice_calendar.core.exceptions import ConfigError, ValidationError
from voice_calendar.database.models import VoiceAgentCredentials
from voice_calendar.features.response_handler import HandlingResult
from voice_calendar.features.voice_assistant import START_NOT_CONFIGURED_MESSAGE, VoiceAssistant
from voice_calendar.interfaces.voice_agent import VoiceAgentInterface

logger = logging.getLogger(__name__)
router = APIRouter()
proxy_router = APIRouter()


def _command_response(result: HandlingResult) -> VoiceCommandResponse:
    return VoiceCommandResponse(created_tasks=result.created_tasks, notifications=result.notifications)


def _capture_state(assistant: VoiceAssistant) -> CaptureStateResponse:
    capture = assistant.capture
    return CaptureStateResponse(
        state=capture.state.value,
        transcript=capture.transcript,
        interim_transcript=capture.interim_transcript,
        error=capture.error,
        is_processing=assistant.is_processing,
        last_result=_command_response(assistant.last_result) if assistant.last_result else None,
    )


@router.post("/command", response_model=VoiceCommandResponse)
async def run_voice_command(request: VoiceCommandRequest, assistant: VoiceAssistant = Depends(get_voice_assistant)):
    """Sends a transcribed command to the agent and applies the answer.

    Failures come back as error notifications in the body, not as HTTP errors.
    """
    if not request.text.strip():
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Texto não fornecido")
    result = await assistant.process_command(request.text)
    return _command_response(result)


# --- Capture relay: the browser forwards its speech recognition events ---

@router.get("/capture", response_model=CaptureStateResponse)
async def read_capture_state(assistant: VoiceAssistant = Depends(get_voice_assistant)):
    return _capture_state(assistant)


@router.post("/capture/start", response_model=CaptureStateResponse)
async def start_capture(assistant: VoiceAssistant = Depends(get_voice_assistant)):
    if not assistant.start_listening() and not assistant.is_configured():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=START_NOT_CONFIGURED_MESSAGE)
    return _capture_state(assistant)


@router.post("/capture/results", response_model=CaptureStateResponse)
async def push_capture_results(request: CaptureResultsRequest, assistant: VoiceAssistant = Depends(get_voice_assistant)):
    assistant.capture.on_result(request.segments)
    return _capture_state(assistant)


@router.post("/capture/end", response_model=CaptureStateResponse)
async def end_capture(assistant: VoiceAssistant = Depends(get_voice_assistant)):
    """The recognizer detected silence; the transcript is processed after a short delay."""
    assistant.capture.on_end()
    return _capture_state(assistant)


@router.post("/capture/stop", response_model=CaptureStateResponse)
async def stop_capture(assistant: VoiceAssistant = Depends(get_voice_assistant)):
    """Manual stop: the transcript is processed right away and the result returned."""
    assistant.stop_listening()
    await assistant.wait_idle()
    return _capture_state(assistant)


@router.post("/capture/error", response_model=CaptureStateResponse)
async def report_capture_error(request: CaptureErrorRequest, assistant: VoiceAssistant = Depends(get_voice_assistant)):
    assistant.capture.on_error(request.code)
    return _capture_state(assistant)


# --- Proxy ---

class VoiceAgentProxyRequest(BaseModel):
    text: Optional[str] = None
    # Forwarded verbatim
    timestamp: Optional[str] = None


def _error_body(message: str) -> dict:
    return {"status": "error", "type": "unknown", "message": message}


@proxy_router.post("/agent")
async def proxy_voice_agent(
    request: VoiceAgentProxyRequest,
    x_voice_endpoint: Optional[str] = Header(None),
    x_voice_token: Optional[str] = Header(None),
    agent: VoiceAgentInterface = Depends(get_voice_agent),
):
    """Forwards ``{text, timestamp}`` to the webhook named in ``x-voice-endpoint``.

    Errors are answered in the agent's own response shape: 400 for missing
    text or endpoint, 500 for anything that went wrong talking to the agent.
    """
    credentials = VoiceAgentCredentials(endpoint_url=x_voice_endpoint, auth_token=x_voice_token)
    try:
        response = await agent.send_command(request.text or "", timestamp=request.timestamp, credentials=credentials)
    except (ValidationError, ConfigError) as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(str(e)))
    except Exception as e:
        logger.error(f"Voice agent error: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(f"Erro ao conectar com o assistente de voz: {e}"),
        )
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)
