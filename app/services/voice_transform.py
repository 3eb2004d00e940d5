"""ElevenLabs speech-to-speech client used to convert brand recordings."""

from __future__ import annotations

import json
import logging

import httpx

from app.config.settings import VoiceCloneConfig, settings
from app.services.errors import (
    ConfigurationError,
    UnexpectedResponseShape,
    UpstreamServiceError,
)
from app.services.health import ServiceCheck

logger = logging.getLogger(__name__)

_DIAGNOSTIC_BODY_LIMIT = 500


def _decode_body(content: bytes) -> str:
    return content.decode("utf-8", errors="replace").strip()


def extract_error_message(response: httpx.Response) -> str:
    """Return the most specific error message found in an upstream error response."""

    text = _decode_body(response.content)
    if text:
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            detail = payload.get("detail")
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
            if isinstance(detail, str) and detail:
                return detail
            if payload.get("message"):
                return str(payload["message"])
        return text[:_DIAGNOSTIC_BODY_LIMIT]

    reason = response.reason_phrase or "Unknown error"
    return f"Status {response.status_code}: {reason}"


class VoiceTransformClient:
    """Send recordings through the ElevenLabs speech-to-speech endpoint."""

    def __init__(
        self,
        config: VoiceCloneConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings.voice_clone
        self._transport = transport

    def _api_key(self) -> str:
        secret = self._config.api_key
        value = secret.get_secret_value().strip() if secret else ""
        if not value:
            raise ConfigurationError("ElevenLabs API key not found")
        return value

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url.rstrip("/"),
            headers={"xi-api-key": api_key},
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        )

    async def transform(
        self,
        audio_bytes: bytes,
        *,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
    ) -> bytes:
        """Return the converted audio produced for ``audio_bytes``."""

        api_key = self._api_key()
        files = {"audio": (filename, audio_bytes, content_type)}
        data = {"model_id": self._config.model_id}
        params = {"output_format": self._config.output_format}

        async with self._client(api_key) as client:
            try:
                response = await client.post(
                    f"/v1/speech-to-speech/{self._config.voice_id}",
                    params=params,
                    data=data,
                    files=files,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                message = extract_error_message(exc.response)
                logger.error(
                    "ElevenLabs returned %s: %s", exc.response.status_code, message
                )
                raise UpstreamServiceError(
                    f"ElevenLabs error: {message}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("ElevenLabs request failed: %s", exc)
                raise UpstreamServiceError(
                    f"Unable to reach ElevenLabs: {exc}"
                ) from exc

        return self._validated_audio(response)

    @staticmethod
    def _validated_audio(response: httpx.Response) -> bytes:
        media_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        payload = response.content
        if not payload:
            raise UnexpectedResponseShape("ElevenLabs returned an empty response.")
        if not media_type.startswith("audio/"):
            body = _decode_body(payload)[:_DIAGNOSTIC_BODY_LIMIT]
            logger.error(
                "ElevenLabs returned %s instead of audio: %s", media_type or "unknown", body
            )
            raise UnexpectedResponseShape(
                f"ElevenLabs returned '{media_type or 'unknown'}' instead of audio.",
                body=body,
            )
        logger.info("ElevenLabs returned %d bytes of %s", len(payload), media_type)
        return payload

    async def check_connection(self) -> ServiceCheck:
        """Verify the API key by listing the account's voices."""

        try:
            api_key = self._api_key()
        except ConfigurationError:
            return ServiceCheck(False, "ElevenLabs API key not configured")

        async with self._client(api_key) as client:
            try:
                response = await client.get("/v1/voices")
            except httpx.RequestError as exc:
                return ServiceCheck(False, f"Unable to reach ElevenLabs: {exc}")

        if response.status_code == 200:
            return ServiceCheck(True, "ElevenLabs connection successful")
        if response.is_error:
            return ServiceCheck(False, extract_error_message(response))
        return ServiceCheck(False, f"Unexpected status code: {response.status_code}")


def get_voice_transform_client() -> VoiceTransformClient:
    """Return the default voice transformation client."""

    return _DEFAULT_CLIENT


_DEFAULT_CLIENT = VoiceTransformClient()


__all__ = [
    "VoiceTransformClient",
    "extract_error_message",
    "get_voice_transform_client",
]
