"""Client-side microphone capture for the recording console."""

from .session import (
    CHANNELS,
    SAMPLE_RATE,
    CaptureState,
    InvalidTransition,
    RecordingSession,
)

__all__ = [
    "CHANNELS",
    "CaptureState",
    "InvalidTransition",
    "RecordingSession",
    "SAMPLE_RATE",
]
