"""API Router for Google OAuth 2.0 flow."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from voice_calendar.core.dependencies import get_calendar_client, get_templates
from voice_calendar.core.exceptions import ConfigError
from voice_calendar.features.google_calendar import GoogleCalendarClient

logger = logging.getLogger(__name__)
router = APIRouter()


def _message_page(templates: Jinja2Templates, request: Request, title: str, message: str, success: bool, status_code: int = 200):
    return templates.TemplateResponse(
        request=request,
        name="message_display.html",
        context={"title": title, "message": message, "success": success},
        status_code=status_code,
    )


@router.get("/auth/google/login", name="google_login")
async def google_oauth_login(calendar: GoogleCalendarClient = Depends(get_calendar_client)):
    """Initiates the Google OAuth 2.0 authorization flow."""
    try:
        authorization_url = calendar.get_auth_url()
    except ConfigError as e:
        logger.error(f"Cannot start Google OAuth: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Redirecting user to Google OAuth consent screen.")
    return RedirectResponse(authorization_url)


@router.get("/auth", name="google_callback", response_class=HTMLResponse)
def google_oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Handles the redirect from Google after the user authorizes (or refuses)."""
    if error:
        logger.warning(f"Google OAuth returned an error: {error}")
        return _message_page(templates, request, "Erro de autenticação", f"Falha na autorização: {error}", False, 400)
    if not code:
        return _message_page(templates, request, "Erro de autenticação", "Nenhum código de autorização recebido", False, 400)

    logger.info("Received callback from Google OAuth with authorization code.")
    try:
        calendar.exchange_code_for_token(code)
    except Exception as e:
        logger.error(f"Error fetching or saving Google OAuth token: {e}", exc_info=True)
        return _message_page(templates, request, "Erro de autenticação", "Falha ao completar a autenticação. Tente novamente.", False, 400)

    return _message_page(templates, request, "Autenticação concluída", "Conectado ao Google Calendar com sucesso!", True)
