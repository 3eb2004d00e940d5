"""Silence trimming applied to raw captures before transformation.

Trimming is best-effort: anything that cannot be decoded, or that would
leave less than half a second of signal, is returned untouched so the
pipeline never hands an empty artifact to the voice service.
"""

from __future__ import annotations

import io
import logging

import numpy as np
from scipy.io import wavfile

logger = logging.getLogger("app.pipelines.voice_clone")

SILENCE_THRESHOLD = 0.01
PADDING_SECONDS = 0.1
MIN_SPAN_SECONDS = 0.5


def is_wav(payload: bytes) -> bool:
    """Return True when ``payload`` starts with a RIFF/WAVE header."""

    return len(payload) >= 12 and payload[:4] == b"RIFF" and payload[8:12] == b"WAVE"


def to_float(samples: np.ndarray) -> np.ndarray:
    """Scale integer PCM samples into float32 in [-1.0, 1.0]."""

    if samples.dtype == np.uint8:
        return (samples.astype(np.float32) - 128.0) / 128.0
    if np.issubdtype(samples.dtype, np.integer):
        return samples.astype(np.float32) / float(np.iinfo(samples.dtype).max + 1)
    return samples.astype(np.float32)


def find_voiced_span(
    samples: np.ndarray,
    sample_rate: int,
    *,
    threshold: float = SILENCE_THRESHOLD,
    padding_seconds: float = PADDING_SECONDS,
    min_span_seconds: float = MIN_SPAN_SECONDS,
) -> tuple[int, int] | None:
    """Return the padded ``[start, end)`` frame range holding signal, or None.

    ``samples`` are float frames, shaped ``(n,)`` or ``(n, channels)``.
    None means the capture should be used as-is.
    """

    if samples.size == 0 or sample_rate <= 0:
        return None

    amplitude = np.abs(samples)
    if amplitude.ndim > 1:
        amplitude = amplitude.max(axis=1)

    loud = np.flatnonzero(amplitude > threshold)
    if loud.size == 0:
        return None

    pad = int(sample_rate * padding_seconds)
    start = max(0, int(loud[0]) - pad)
    end = min(amplitude.shape[0], int(loud[-1]) + pad + 1)
    if end - start < int(sample_rate * min_span_seconds):
        return None
    return start, end


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float frames as 16-bit PCM WAV bytes."""

    pcm16 = (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16)
    with io.BytesIO() as buffer:
        wavfile.write(buffer, sample_rate, pcm16)
        return buffer.getvalue()


def trim_silence(wav_bytes: bytes) -> bytes:
    """Drop leading/trailing silence from a WAV capture, keeping 100 ms of padding."""

    try:
        sample_rate, raw = wavfile.read(io.BytesIO(wav_bytes))
        samples = to_float(raw)
        span = find_voiced_span(samples, sample_rate)
        if span is None:
            logger.debug("No trimmable signal found; keeping original capture")
            return wav_bytes

        start, end = span
        if start == 0 and end == samples.shape[0]:
            return wav_bytes

        trimmed = encode_wav(samples[start:end], sample_rate)
    except Exception as exc:  # noqa: BLE001 - trimming must never fail the pipeline
        logger.warning("Silence trimming skipped: %s", exc)
        return wav_bytes

    logger.info(
        "Trimmed capture from %.2fs to %.2fs",
        samples.shape[0] / sample_rate,
        (end - start) / sample_rate,
    )
    return trimmed


__all__ = [
    "MIN_SPAN_SECONDS",
    "PADDING_SECONDS",
    "SILENCE_THRESHOLD",
    "encode_wav",
    "find_voiced_span",
    "is_wav",
    "to_float",
    "trim_silence",
]
