"""
Custom exceptions
"""


class VoiceCalendarError(Exception):
    """Base class for every error raised by the application."""
    pass


class ConfigError(VoiceCalendarError):
    """Endpoint or credentials are missing. Surfaced immediately, never retried."""
    pass


class TransportError(VoiceCalendarError):
    """Network failure or non-2xx answer from the voice agent webhook."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(VoiceCalendarError):
    """The voice agent answered with a body that does not match the contract."""
    pass


class ValidationError(VoiceCalendarError):
    """Input rejected before any call is made (e.g. empty voice command)."""
    pass


class CalendarAPIError(VoiceCalendarError):
    """Google Calendar answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotAuthenticatedError(CalendarAPIError):
    """No Google credentials or access token are available."""
    pass
