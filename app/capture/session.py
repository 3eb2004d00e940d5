"""Microphone capture state machine used by the recording console."""

from __future__ import annotations

import importlib
import logging
import time
from enum import Enum
from typing import Any, Callable

import numpy as np

from app.pipelines.voice_clone.trimming import encode_wav, to_float, trim_silence
from app.services.errors import CaptureUnavailable, PipelineError

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44_100
CHANNELS = 1
SAMPLE_DTYPE = "int16"


class InvalidTransition(PipelineError):
    """Raised when a capture session is asked to move between unrelated states."""


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    ERROR = "error"


_TRANSITIONS: dict[CaptureState, set[CaptureState]] = {
    CaptureState.IDLE: {CaptureState.RECORDING, CaptureState.ERROR},
    CaptureState.RECORDING: {CaptureState.PROCESSING, CaptureState.ERROR},
    CaptureState.PROCESSING: {CaptureState.TRANSFORMING, CaptureState.ERROR},
    CaptureState.TRANSFORMING: {CaptureState.UPLOADING, CaptureState.ERROR},
    CaptureState.UPLOADING: {CaptureState.PERSISTING, CaptureState.ERROR},
    CaptureState.PERSISTING: {CaptureState.COMPLETED, CaptureState.ERROR},
    CaptureState.COMPLETED: {CaptureState.IDLE},
    CaptureState.ERROR: {CaptureState.IDLE},
}

SERVER_STEP_STATES = {
    "transforming": CaptureState.TRANSFORMING,
    "uploading": CaptureState.UPLOADING,
    "updating_db": CaptureState.PERSISTING,
    "completed": CaptureState.COMPLETED,
    "error": CaptureState.ERROR,
}

StreamFactory = Callable[..., Any]


def _default_stream_factory(**kwargs: Any) -> Any:
    try:
        sounddevice = importlib.import_module("sounddevice")
    except (ImportError, OSError) as exc:
        raise CaptureUnavailable(
            "Audio capture requires the 'sounddevice' package and PortAudio. "
            "Install the console extra: pip install '.[console]'"
        ) from exc
    return sounddevice.InputStream(**kwargs)


class RecordingSession:
    """Own one brand's capture from microphone to trimmed WAV bytes.

    The session is also the client-side view of the server pipeline: step
    events received over the progress stream are fed to
    :meth:`apply_server_step` so the console can render the current stage.
    """

    def __init__(
        self,
        *,
        stream_factory: StreamFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        trim: bool = True,
    ) -> None:
        self._stream_factory = stream_factory or _default_stream_factory
        self._clock = clock
        self.sample_rate = sample_rate
        self.channels = channels
        self._trim = trim

        self.state = CaptureState.IDLE
        self.brand_id: int | None = None
        self.last_error: str | None = None
        self._stream: Any | None = None
        self._chunks: list[np.ndarray] = []
        self._started_at: float | None = None
        self._duration = 0.0

    @property
    def elapsed(self) -> float:
        """Seconds recorded so far, frozen once the capture stops."""

        if self.state is CaptureState.RECORDING and self._started_at is not None:
            return self._clock() - self._started_at
        return self._duration

    def _transition(self, target: CaptureState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Cannot move capture from {self.state.value} to {target.value}"
            )
        logger.debug("Capture %s -> %s", self.state.value, target.value)
        self.state = target

    def select_brand(self, brand_id: int | None) -> None:
        """Switch the target brand; any capture in progress is discarded."""

        if brand_id == self.brand_id:
            return
        self._discard()
        self.brand_id = brand_id

    def _discard(self) -> None:
        self._close_stream()
        self._chunks = []
        self._started_at = None
        self._duration = 0.0
        self.last_error = None
        self.state = CaptureState.IDLE

    def reset(self) -> None:
        """Return a finished session to ``idle`` for the next take."""

        if self.state is not CaptureState.IDLE:
            self._transition(CaptureState.IDLE)
        self._chunks = []
        self._started_at = None
        self._duration = 0.0
        self.last_error = None

    def fail(self, message: str) -> None:
        """Move to ``error`` from any non-terminal state."""

        self._close_stream()
        self.last_error = message
        if self.state is not CaptureState.ERROR:
            self._transition(CaptureState.ERROR)

    def _callback(self, indata: np.ndarray, _frames: int, _time: Any, status: Any) -> None:
        if status:
            logger.warning("Capture status: %s", status)
        self._chunks.append(to_float(np.asarray(indata).copy()))

    def start_capture(self) -> None:
        """Open the input stream and start accumulating chunks."""

        if self.state is not CaptureState.IDLE:
            raise InvalidTransition(
                f"Cannot start recording while {self.state.value}"
            )
        self._chunks = []
        try:
            stream = self._stream_factory(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype=SAMPLE_DTYPE,
                callback=self._callback,
            )
            stream.start()
        except CaptureUnavailable as exc:
            self.fail(str(exc))
            raise
        except Exception as exc:
            self.fail(f"Unable to open microphone: {exc}")
            raise CaptureUnavailable(f"Unable to open microphone: {exc}") from exc

        self._stream = stream
        self._started_at = self._clock()
        self._transition(CaptureState.RECORDING)
        logger.info(
            "Capture started (%d Hz, %d channel(s), %s)",
            self.sample_rate,
            self.channels,
            SAMPLE_DTYPE,
        )

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:  # noqa: BLE001 - the capture is already over
            logger.warning("Closing capture stream failed: %s", exc)

    def stop_capture(self) -> bytes:
        """Stop recording and return the (trimmed) WAV capture."""

        if self.state is not CaptureState.RECORDING:
            raise InvalidTransition(f"Cannot stop recording while {self.state.value}")

        self._duration = self.elapsed
        self._close_stream()
        if not self._chunks:
            self.fail("No audio captured")
            raise CaptureUnavailable("No audio captured")

        samples = np.concatenate(self._chunks, axis=0)
        self._chunks = []
        self._transition(CaptureState.PROCESSING)
        wav_bytes = encode_wav(samples, self.sample_rate)
        logger.info("Capture stopped after %.1fs", samples.shape[0] / self.sample_rate)
        return trim_silence(wav_bytes) if self._trim else wav_bytes

    def apply_server_step(self, step: str, error: str | None = None) -> bool:
        """Mirror a server progress step onto the capture state.

        Returns False for steps that do not move the session. An ``error``
        reported while persisting is kept as a warning because the server
        still completes the run with a usable URL.
        """

        target = SERVER_STEP_STATES.get(step)
        if target is None or target is self.state:
            return False
        if target is CaptureState.ERROR:
            if self.state is CaptureState.PERSISTING:
                self.last_error = error
                return False
            if self.state in (CaptureState.IDLE, CaptureState.COMPLETED):
                return False
            self.fail(error or "Processing failed")
            return True
        if target not in _TRANSITIONS[self.state]:
            logger.debug("Ignoring step %s while %s", step, self.state.value)
            return False
        self._transition(target)
        return True

    def finish_submission(self, success: bool, error: str | None = None) -> None:
        """Settle the session from the HTTP response of the upload.

        The progress stream may lag behind the response or be disconnected,
        so a successful response walks the remaining steps to ``completed``
        and a failed one moves to ``error``.
        """

        if not success:
            message = error or "Voice clone request failed"
            if self.state in (CaptureState.ERROR, CaptureState.COMPLETED):
                self.last_error = message
            else:
                self.fail(message)
            return
        for step in ("transforming", "uploading", "updating_db", "completed"):
            if self.state is CaptureState.COMPLETED:
                break
            self.apply_server_step(step)


__all__ = [
    "CHANNELS",
    "CaptureState",
    "InvalidTransition",
    "RecordingSession",
    "SAMPLE_RATE",
    "SERVER_STEP_STATES",
]
