"""
Property-based tests for the ElevenLabs client payload and stream relay.

Feature: tts-proxy
Property 3: Caller voice settings merge over defaults
"""

import asyncio
import json

import httpx
import pytest
from hypothesis import given, strategies as st, settings

from src.config import Settings
from src.errors import UpstreamError
from src.provider import (
    DEFAULT_MODEL,
    DEFAULT_VOICE_SETTINGS,
    ElevenLabsClient,
    build_payload,
    build_voice_settings,
    relay,
)

setting_values = st.floats(min_value=0, max_value=1, allow_nan=False)


class BrokenStream(httpx.AsyncByteStream):
    """Yields some chunks, then fails like a dropped connection."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self):
        self.closed = True


def run(coro):
    return asyncio.run(coro)


class TestVoiceSettingsMerge:
    """
    Property 3: Voice Settings Merge

    Caller values win for stability, similarity_boost and style; missing or
    null values fall back to the defaults; use_speaker_boost is always true.
    """

    @given(st.fixed_dictionaries({}, optional={
        "stability": st.one_of(st.none(), setting_values),
        "similarity_boost": st.one_of(st.none(), setting_values),
        "style": st.one_of(st.none(), setting_values),
        "use_speaker_boost": st.booleans(),
    }))
    @settings(max_examples=100)
    def test_merge_over_defaults(self, overrides: dict):
        """
        Feature: tts-proxy, Property 3: Voice Settings Merge
        """
        merged = build_voice_settings(overrides)

        for name, default in DEFAULT_VOICE_SETTINGS.items():
            expected = overrides.get(name)
            assert merged[name] == (default if expected is None else expected)
        assert merged["use_speaker_boost"] is True
        assert set(merged) == {"stability", "similarity_boost", "style", "use_speaker_boost"}

    def test_only_stability_given(self):
        assert build_voice_settings({"stability": 0.9}) == {
            "stability": 0.9,
            "similarity_boost": 0.85,
            "style": 0.2,
            "use_speaker_boost": True,
        }

    def test_zero_is_not_replaced_by_default(self):
        assert build_voice_settings({"style": 0})["style"] == 0

    @pytest.mark.parametrize("overrides", ["fast", 3, [0.1, 0.2], True])
    def test_non_object_overrides_keep_defaults(self, overrides):
        assert build_voice_settings(overrides) == {**DEFAULT_VOICE_SETTINGS, "use_speaker_boost": True}

    def test_non_numeric_values_are_forwarded_as_given(self):
        merged = build_voice_settings({"stability": "0.7", "style": True})
        assert merged["stability"] == "0.7"
        assert merged["style"] is True
        assert merged["similarity_boost"] == 0.85

    def test_payload_forwards_any_model(self):
        assert build_payload("Salom", 5)["model_id"] == 5
        assert build_payload("Salom", "")["model_id"] == ""

    def test_payload_defaults_model(self):
        payload = build_payload("Salom")
        assert payload["text"] == "Salom"
        assert payload["model_id"] == DEFAULT_MODEL
        assert payload["voice_settings"]["use_speaker_boost"] is True

    def test_payload_keeps_caller_model(self):
        assert build_payload("Salom", "eleven_turbo_v2_5")["model_id"] == "eleven_turbo_v2_5"


class TestElevenLabsClient:
    """Outbound request shape and upstream failures."""

    def make_client(self, handler) -> ElevenLabsClient:
        settings = Settings(api_key="test-key", voice_id="voice123", api_base="https://tts.example")
        return ElevenLabsClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    def test_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"mp3")

        client = self.make_client(handler)

        async def scenario():
            response = await client.open_stream("Salom", None, {"style": 0.5})
            body = b"".join([chunk async for chunk in relay(response)])
            return body

        assert run(scenario()) == b"mp3"

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/text-to-speech/voice123"
        assert request.url.params["optimize_streaming_latency"] == "2"
        assert request.url.params["output_format"] == "mp3_44100_128"
        assert request.headers["xi-api-key"] == "test-key"
        assert request.headers["accept"] == "audio/mpeg"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {
            "text": "Salom",
            "model_id": DEFAULT_MODEL,
            "voice_settings": {
                "stability": 0.55,
                "similarity_boost": 0.85,
                "style": 0.5,
                "use_speaker_boost": True,
            },
        }

    def test_error_status_raises_with_detail(self):
        client = self.make_client(lambda request: httpx.Response(404, text="voice not found"))

        with pytest.raises(UpstreamError) as exc_info:
            run(client.open_stream("Salom"))

        assert exc_info.value.status_code == 502
        assert exc_info.value.upstream_status == 404
        assert exc_info.value.payload == {"error": "ElevenLabs error", "detail": "voice not found"}

    def test_unreadable_error_body_gives_empty_detail(self):
        stream = BrokenStream([b"partial"])
        client = self.make_client(lambda request: httpx.Response(500, stream=stream))

        with pytest.raises(UpstreamError) as exc_info:
            run(client.open_stream("Salom"))

        assert exc_info.value.detail == ""
        assert stream.closed


class TestRelay:
    """Streaming relay termination."""

    def test_relays_chunks_in_order(self):
        chunks = [b"ID3", b"\x00" * 1024, b"\xff\xfb"]

        async def body():
            for chunk in chunks:
                yield chunk

        response = httpx.Response(200, content=body())

        async def scenario():
            return [chunk async for chunk in relay(response)]

        assert b"".join(run(scenario())) == b"".join(chunks)
        assert response.is_closed

    def test_midstream_failure_ends_quietly(self):
        stream = BrokenStream([b"ID3", b"abc"])
        response = httpx.Response(200, stream=stream)

        async def scenario():
            return [chunk async for chunk in relay(response)]

        assert run(scenario()) == [b"ID3", b"abc"]
        assert stream.closed
