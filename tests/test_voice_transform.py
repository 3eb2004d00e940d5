"""ElevenLabs client behaviour against a mocked transport."""

from __future__ import annotations

import logging

import httpx
import pytest

from app.config.settings import VoiceCloneConfig
from app.services.errors import (
    ConfigurationError,
    UnexpectedResponseShape,
    UpstreamServiceError,
)
from app.services.voice_transform import VoiceTransformClient, extract_error_message

MP3_BYTES = b"ID3\x03\x00\x00\x00fake-mp3-frames"


def _config(**overrides) -> VoiceCloneConfig:
    values = {
        "api_key": "test-key",
        "base_url": "https://voice.test",
        "voice_id": "voice-x",
        "model_id": "sts-model",
        "output_format": "mp3_44100_128",
    }
    values.update(overrides)
    return VoiceCloneConfig(**values)


def _client(handler, **overrides) -> VoiceTransformClient:
    return VoiceTransformClient(_config(**overrides), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_transform_posts_multipart_and_returns_audio(wav_bytes):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["api_key"] = request.headers.get("xi-api-key")
        seen["body"] = request.read()
        return httpx.Response(200, content=MP3_BYTES, headers={"content-type": "audio/mpeg"})

    audio = await _client(handler).transform(wav_bytes, filename="take.wav", content_type="audio/wav")

    assert audio == MP3_BYTES
    assert seen["path"] == "/v1/speech-to-speech/voice-x"
    assert seen["params"] == {"output_format": "mp3_44100_128"}
    assert seen["api_key"] == "test-key"
    assert b'name="model_id"' in seen["body"]
    assert b"sts-model" in seen["body"]
    assert b'name="audio"; filename="take.wav"' in seen["body"]


@pytest.mark.asyncio
async def test_missing_api_key_is_a_configuration_error(wav_bytes):
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("request must not be sent")

    with pytest.raises(ConfigurationError, match="API key not found"):
        await _client(handler, api_key=None).transform(wav_bytes)


@pytest.mark.asyncio
async def test_error_status_surfaces_upstream_message(wav_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": {"status": "quota", "message": "Quota exceeded"}})

    with pytest.raises(UpstreamServiceError) as excinfo:
        await _client(handler).transform(wav_bytes)

    assert str(excinfo.value) == "ElevenLabs error: Quota exceeded"
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_network_failure_is_an_upstream_error(wav_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamServiceError, match="Unable to reach ElevenLabs"):
        await _client(handler).transform(wav_bytes)


@pytest.mark.asyncio
async def test_json_success_body_is_rejected_with_diagnostics(wav_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"audio_url": "https://elsewhere/audio.mp3"})

    with pytest.raises(UnexpectedResponseShape) as excinfo:
        await _client(handler).transform(wav_bytes)

    assert "application/json" in str(excinfo.value)
    assert "audio_url" in excinfo.value.body


@pytest.mark.asyncio
async def test_non_audio_body_is_logged(wav_bytes, caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance window</html>", headers={"content-type": "text/html"})

    with caplog.at_level(logging.ERROR, logger="app.services.voice_transform"):
        with pytest.raises(UnexpectedResponseShape):
            await _client(handler).transform(wav_bytes)

    assert any("maintenance window" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_empty_audio_body_is_rejected(wav_bytes):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"", headers={"content-type": "audio/mpeg"})

    with pytest.raises(UnexpectedResponseShape, match="empty"):
        await _client(handler).transform(wav_bytes)


def test_extract_error_message_variants():
    assert extract_error_message(httpx.Response(400, json={"detail": "bad voice"})) == "bad voice"
    assert extract_error_message(httpx.Response(400, json={"message": "nope"})) == "nope"
    assert extract_error_message(httpx.Response(500, text="upstream exploded")) == "upstream exploded"
    assert extract_error_message(httpx.Response(502)) == "Status 502: Bad Gateway"


@pytest.mark.asyncio
async def test_check_connection_lists_voices():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/voices"
        return httpx.Response(200, json={"voices": []})

    result = await _client(handler).check_connection()

    assert result.success is True


@pytest.mark.asyncio
async def test_check_connection_reports_missing_key():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("request must not be sent")

    result = await _client(handler, api_key=None).check_connection()

    assert result.success is False
    assert "not configured" in result.message


@pytest.mark.asyncio
async def test_check_connection_reports_rejected_key():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": {"message": "Invalid API key"}})

    result = await _client(handler).check_connection()

    assert result.success is False
    assert result.message == "Invalid API key"
