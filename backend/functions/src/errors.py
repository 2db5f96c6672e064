"""
Error taxonomy for the TTS proxy and the handler that maps it to JSON.

Every failure of ``POST /api/tts`` ends up as exactly one ``ProxyError``
subclass, rendered by a single exception handler.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# User-facing messages (the bundled client is Uzbek)
MSG_TOO_MANY_REQUESTS = "Too many requests"
MSG_NOT_CONFIGURED = "Server TTS sozlanmagan (API_KEY/VOICE_ID yo‘q)."
MSG_TEXT_REQUIRED = "Matn (text) talab qilinadi."
MSG_INTERNAL = "Server ichki xatosi"
MSG_UPSTREAM = "ElevenLabs error"
MSG_TOO_LARGE = "So‘rov hajmi juda katta."


class ProxyError(Exception):
    """Base class for errors that map to a JSON error response."""
    status_code = 500
    message = MSG_INTERNAL

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def payload(self) -> dict[str, Any]:
        return {"error": self.message}

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return None


class RateLimitExceeded(ProxyError):
    status_code = 429
    message = MSG_TOO_MANY_REQUESTS

    def __init__(self, retry_after: Optional[int] = None):
        super().__init__()
        self.retry_after = retry_after

    @property
    def headers(self) -> Optional[dict[str, str]]:
        if self.retry_after is None:
            return None
        return {"Retry-After": str(self.retry_after)}


class ServerMisconfigured(ProxyError):
    status_code = 500
    message = MSG_NOT_CONFIGURED


class InvalidInput(ProxyError):
    status_code = 400
    message = MSG_TEXT_REQUIRED


class PayloadTooLarge(ProxyError):
    status_code = 413
    message = MSG_TOO_LARGE


class UpstreamError(ProxyError):
    """The provider answered with a non-success status."""
    status_code = 502
    message = MSG_UPSTREAM

    def __init__(self, detail: str = "", upstream_status: Optional[int] = None):
        super().__init__()
        self.detail = detail
        self.upstream_status = upstream_status

    @property
    def payload(self) -> dict[str, Any]:
        return {"error": self.message, "detail": self.detail}


class InternalError(ProxyError):
    status_code = 500
    message = MSG_INTERNAL


async def _handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.payload,
        headers=exc.headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register the ProxyError -> JSON handler on the app."""
    app.add_exception_handler(ProxyError, _handle_proxy_error)
