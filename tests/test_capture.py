"""Recording session state machine with a fake input stream."""

from __future__ import annotations

import io

import numpy as np
import pytest
from scipy.io import wavfile

from app.capture import CaptureState, InvalidTransition, RecordingSession
from app.services.errors import CaptureUnavailable


class FakeStream:
    def __init__(self, **kwargs) -> None:
        self.options = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True

    def feed(self, seconds: float, amplitude: int) -> None:
        frames = int(self.options["samplerate"] * seconds)
        block = np.full((frames, self.options["channels"]), amplitude, dtype=np.int16)
        self.callback(block, frames, None, None)


class StreamFactory:
    def __init__(self) -> None:
        self.streams: list[FakeStream] = []

    def __call__(self, **kwargs) -> FakeStream:
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream


@pytest.fixture
def factory() -> StreamFactory:
    return StreamFactory()


@pytest.fixture
def clock():
    now = [100.0]
    return now


@pytest.fixture
def session(factory, clock) -> RecordingSession:
    recording = RecordingSession(stream_factory=factory, clock=lambda: clock[0], trim=False)
    recording.select_brand(7)
    return recording


def test_start_opens_mono_16_bit_stream_at_44_1_khz(session, factory):
    session.start_capture()

    assert session.state is CaptureState.RECORDING
    options = factory.streams[0].options
    assert options["samplerate"] == 44_100
    assert options["channels"] == 1
    assert options["dtype"] == "int16"
    assert factory.streams[0].started


def test_stop_returns_wav_and_moves_to_processing(session, factory, clock):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    clock[0] += 0.5

    audio = session.stop_capture()

    assert session.state is CaptureState.PROCESSING
    assert factory.streams[0].closed
    rate, samples = wavfile.read(io.BytesIO(audio))
    assert rate == 44_100
    assert samples.shape[0] == 22_050
    assert session.elapsed == pytest.approx(0.5)


def test_stop_trims_silence_when_enabled(factory):
    recording = RecordingSession(stream_factory=factory)
    recording.start_capture()
    stream = factory.streams[0]
    stream.feed(1.0, 0)
    stream.feed(1.0, 12000)
    stream.feed(1.0, 0)

    _, samples = wavfile.read(io.BytesIO(recording.stop_capture()))

    assert samples.shape[0] == 44_100 + 2 * int(44_100 * 0.1)


def test_elapsed_tracks_the_clock_while_recording(session, clock):
    session.start_capture()
    clock[0] += 2.5

    assert session.elapsed == pytest.approx(2.5)


def test_stop_without_audio_is_an_error(session):
    session.start_capture()

    with pytest.raises(CaptureUnavailable, match="No audio captured"):
        session.stop_capture()

    assert session.state is CaptureState.ERROR
    assert session.last_error == "No audio captured"


def test_unavailable_microphone_moves_to_error():
    def broken_factory(**kwargs):
        raise RuntimeError("no default input device")

    recording = RecordingSession(stream_factory=broken_factory)

    with pytest.raises(CaptureUnavailable, match="no default input device"):
        recording.start_capture()

    assert recording.state is CaptureState.ERROR


def test_illegal_transitions_raise(session):
    with pytest.raises(InvalidTransition):
        session.stop_capture()

    session.start_capture()
    with pytest.raises(InvalidTransition):
        session.start_capture()
    with pytest.raises(InvalidTransition):
        session.reset()


def test_server_steps_drive_the_session_to_completed(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()

    for step in ("processing", "transforming", "uploading", "updating_db", "completed"):
        session.apply_server_step(step)

    assert session.state is CaptureState.COMPLETED
    session.reset()
    assert session.state is CaptureState.IDLE


def test_database_error_while_persisting_is_kept_as_a_warning(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()
    for step in ("transforming", "uploading", "updating_db"):
        session.apply_server_step(step)

    assert session.apply_server_step("error", "Database update failed") is False
    assert session.apply_server_step("completed") is True
    assert session.state is CaptureState.COMPLETED
    assert session.last_error == "Database update failed"


def test_server_error_before_upload_fails_the_session(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()
    session.apply_server_step("transforming")

    assert session.apply_server_step("error", "ElevenLabs error: Quota exceeded") is True
    assert session.state is CaptureState.ERROR
    assert session.last_error == "ElevenLabs error: Quota exceeded"


def test_changing_brand_discards_the_capture(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)

    session.select_brand(8)

    assert session.state is CaptureState.IDLE
    assert session.brand_id == 8
    assert factory.streams[0].closed
    assert session.elapsed == 0.0


def test_failed_submission_moves_to_error_without_progress_events(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()

    session.finish_submission(False, "Failed to process voice cloning: ElevenLabs error: Quota exceeded")

    assert session.state is CaptureState.ERROR
    assert session.last_error == "Failed to process voice cloning: ElevenLabs error: Quota exceeded"


def test_failed_submission_without_message_uses_a_generic_error(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()
    session.apply_server_step("transforming")

    session.finish_submission(False)

    assert session.state is CaptureState.ERROR
    assert session.last_error == "Voice clone request failed"


def test_successful_submission_completes_a_lagging_session(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()
    session.apply_server_step("transforming")

    session.finish_submission(True)

    assert session.state is CaptureState.COMPLETED


def test_successful_submission_leaves_a_completed_session_alone(session, factory):
    session.start_capture()
    factory.streams[0].feed(0.5, 8000)
    session.stop_capture()
    for step in ("transforming", "uploading", "updating_db", "completed"):
        session.apply_server_step(step)

    session.finish_submission(True)

    assert session.state is CaptureState.COMPLETED
    assert session.last_error is None
