"""
ElevenLabs proxy endpoint for Text-to-Speech.

Provides API access to ElevenLabs without exposing the API key to the
client. Audio is streamed back as it is generated.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from .config import Settings
from .errors import (
    InternalError,
    InvalidInput,
    PayloadTooLarge,
    ProxyError,
    ServerMisconfigured,
)
from .middleware.rate_limiter import RateLimiter, client_key, get_rate_limiter
from .middleware.validator import validate_tts_request
from .provider import ElevenLabsClient, relay

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["tts"])


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_elevenlabs_client(request: Request) -> ElevenLabsClient:
    http_client = request.app.state.http_client
    if http_client is None:
        raise RuntimeError("HTTP client is not initialised (application lifespan not started)")
    return ElevenLabsClient(request.app.state.settings, http_client)


async def _read_json_body(request: Request, max_bytes: int) -> dict[str, Any]:
    """Parse the body as a JSON object; anything else counts as an empty body."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise PayloadTooLarge()

    body = await request.body()
    if len(body) > max_bytes:
        raise PayloadTooLarge()
    if not body:
        return {}

    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        logger.warning("Ignoring malformed JSON body")
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/tts")
async def text_to_speech(
    request: Request,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
):
    """
    Convert text to speech using ElevenLabs.

    Body: {"text": str, "model"?: str, "voice_settings"?: {stability,
    similarity_boost, style}}

    Returns:
        audio/mpeg stream relayed from ElevenLabs
    """
    try:
        rate_limiter.consume(client_key(request, settings.trust_proxy))

        if not settings.tts_configured:
            logger.error("ELEVEN_API_KEY / ELEVEN_VOICE_ID not configured")
            raise ServerMisconfigured()

        data = await _read_json_body(request, settings.max_body_bytes)
        validation = validate_tts_request(data)
        if not validation.valid:
            raise InvalidInput(validation.error_message)

        text = data["text"]
        model = data.get("model")
        logger.info(f"TTS request: {len(text)} chars, model={model or 'default'}")

        client = get_elevenlabs_client(request)
        upstream = await client.open_stream(text, model, data.get("voice_settings"))
    except ProxyError:
        raise
    except Exception:
        logger.exception("TTS proxy failed")
        raise InternalError()

    return StreamingResponse(
        relay(upstream),
        media_type="audio/mpeg",
        headers={"Cache-Control": "no-store"},
    )
