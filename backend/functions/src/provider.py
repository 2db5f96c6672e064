"""
ElevenLabs text-to-speech client.

Opens a streamed synthesis request against the ElevenLabs HTTP API and
relays the MP3 body chunk by chunk, without buffering the whole payload.
"""

import logging
from typing import Any, AsyncIterator, Optional

import anyio
import httpx
from pydantic import BaseModel

from .config import Settings
from .errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "eleven_multilingual_v2"
OUTPUT_FORMAT = "mp3_44100_128"
OPTIMIZE_STREAMING_LATENCY = 2

DEFAULT_VOICE_SETTINGS = {
    "stability": 0.55,
    "similarity_boost": 0.85,
    "style": 0.2,
}


# Pydantic models for the outbound request. Caller values are forwarded
# unchecked; ElevenLabs validates them.
class VoiceSettings(BaseModel):
    stability: Any = DEFAULT_VOICE_SETTINGS["stability"]
    similarity_boost: Any = DEFAULT_VOICE_SETTINGS["similarity_boost"]
    style: Any = DEFAULT_VOICE_SETTINGS["style"]
    use_speaker_boost: bool = True


class SynthesisPayload(BaseModel):
    text: str
    model_id: Any = DEFAULT_MODEL
    voice_settings: VoiceSettings = VoiceSettings()


def build_voice_settings(overrides: Any = None) -> dict[str, Any]:
    """
    Merge caller voice settings over the defaults.

    Only stability, similarity_boost and style can be overridden; null values
    keep the default and use_speaker_boost is always on. Anything other than
    an object counts as no overrides.
    """
    if not isinstance(overrides, dict):
        overrides = {}
    given = {
        name: overrides[name]
        for name in DEFAULT_VOICE_SETTINGS
        if overrides.get(name) is not None
    }
    return VoiceSettings(**given).model_dump()


def build_payload(
    text: str,
    model: Any = None,
    voice_settings: Any = None,
) -> dict[str, Any]:
    """JSON body for the ElevenLabs text-to-speech endpoint."""
    return SynthesisPayload(
        text=text,
        model_id=DEFAULT_MODEL if model is None else model,
        voice_settings=build_voice_settings(voice_settings),
    ).model_dump()


async def _read_error_detail(response: httpx.Response) -> str:
    try:
        body = await response.aread()
        return body.decode(response.encoding or "utf-8", errors="replace")
    except Exception as e:
        logger.debug(f"Could not read ElevenLabs error body: {e}")
        return ""


class ElevenLabsClient:
    """Thin async client over a shared httpx.AsyncClient."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    @property
    def synthesis_url(self) -> str:
        return f"{self._settings.api_base}/v1/text-to-speech/{self._settings.voice_id}"

    async def open_stream(
        self,
        text: str,
        model: Any = None,
        voice_settings: Any = None,
    ) -> httpx.Response:
        """
        Send the synthesis request and wait for the response headers.

        Args:
            text: Text to synthesize, already validated.
            model: ElevenLabs model id, defaults to DEFAULT_MODEL.
            voice_settings: Partial caller voice settings.

        Returns:
            The open streaming response; the caller must consume it through
            relay() or close it.

        Raises:
            UpstreamError: when ElevenLabs answers with a non-success status.
        """
        request = self._http.build_request(
            "POST",
            self.synthesis_url,
            params={
                "optimize_streaming_latency": OPTIMIZE_STREAMING_LATENCY,
                "output_format": OUTPUT_FORMAT,
            },
            headers={
                "xi-api-key": self._settings.api_key,
                "Content-Type": "application/json",
                "Accept": "audio/mpeg",
            },
            json=build_payload(text, model, voice_settings),
        )
        response = await self._http.send(request, stream=True)

        if response.is_success:
            return response

        try:
            detail = await _read_error_detail(response)
        finally:
            await response.aclose()
        logger.warning(f"ElevenLabs returned {response.status_code}: {detail[:200]}")
        raise UpstreamError(detail=detail, upstream_status=response.status_code)


async def relay(response: httpx.Response) -> AsyncIterator[bytes]:
    """
    Yield the upstream body as it arrives.

    An upstream failure mid-transfer ends the stream quietly. Cancellation
    (client disconnect) propagates, and the upstream response is always
    closed.
    """
    sent = 0
    try:
        async for chunk in response.aiter_bytes():
            sent += len(chunk)
            yield chunk
    except (httpx.HTTPError, httpx.StreamError) as e:
        logger.warning(f"ElevenLabs stream interrupted after {sent} bytes: {e}")
    finally:
        # Still release the connection when the relay is being cancelled
        with anyio.CancelScope(shield=True):
            await response.aclose()
