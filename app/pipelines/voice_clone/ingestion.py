"""Request ingestion helpers (first stage of the voice clone pipeline)."""

from __future__ import annotations

import mimetypes
from typing import Final

from fastapi import UploadFile

from app.services.errors import InvalidPipelineInput

_ALLOWED_CONTENT_TYPES: Final[set[str]] = {
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/webm",
    "audio/ogg",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/x-m4a",
}

DEFAULT_CONTENT_TYPE: Final[str] = "audio/wav"


def resolve_content_type(audio_file: UploadFile) -> str:
    """Accept browser and console recordings whether or not a content-type was sent."""

    content_type = (audio_file.content_type or "").split(";")[0].strip().lower()
    if (not content_type or content_type == "application/octet-stream") and audio_file.filename:
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or ""

    return content_type or DEFAULT_CONTENT_TYPE


def ensure_supported_content_type(content_type: str) -> str:
    """Raise ``InvalidPipelineInput`` for anything the voice API will not accept."""

    if content_type not in _ALLOWED_CONTENT_TYPES:
        raise InvalidPipelineInput(f"Unsupported audio content type: {content_type}")
    return content_type


async def read_audio_bytes(audio_file: UploadFile) -> bytes:
    """Load the upload fully into memory; emptiness is checked by the pipeline."""

    audio_bytes = await audio_file.read()
    await audio_file.close()
    return audio_bytes


def parse_brand_id(raw_brand_id: str | int | None) -> int:
    """Return the numeric brand id or raise ``InvalidPipelineInput``."""

    try:
        brand_id = int(str(raw_brand_id).strip())
    except (TypeError, ValueError):
        raise InvalidPipelineInput(f"Invalid brandId: {raw_brand_id!r}") from None
    if brand_id <= 0:
        raise InvalidPipelineInput(f"Invalid brandId: {raw_brand_id!r}")
    return brand_id


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "ensure_supported_content_type",
    "parse_brand_id",
    "read_audio_bytes",
    "resolve_content_type",
]
