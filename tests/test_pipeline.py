"""Voice clone orchestration: stage order, fail-fast and partial success."""

from __future__ import annotations

import pytest

from app.pipelines.voice_clone import DB_FAILURE_MESSAGE
from app.services.brand_records import RecordUpdateOutcome
from app.services.errors import (
    BrandNotFound,
    InvalidPipelineInput,
    RecordUpdateUnverified,
    UploadFailed,
    UpstreamServiceError,
)
from conftest import drain_steps, make_wav
from fakes import HAPPY_STEPS, STORED_URL, FakeRecords, FakeStorage, FakeTransformer, build_pipeline


def _error_events(connection) -> list[dict]:
    events = []
    while not connection.queue.empty():
        item = connection.queue.get_nowait()
        if isinstance(item, dict) and item.get("step") == "error":
            events.append(item)
    return events


@pytest.mark.asyncio
async def test_happy_path_publishes_every_stage_in_order(channel, wav_bytes):
    connection = channel.subscribe()
    records = FakeRecords()
    storage = FakeStorage()

    result = await build_pipeline(channel, storage=storage, records=records).run(
        wav_bytes, brand_id="7", client_id=connection.id
    )

    assert drain_steps(connection) == HAPPY_STEPS
    assert result.url == STORED_URL
    assert result.db_update_success is True
    assert storage.uploads == [(b"converted-mp3", "Acme", "m-100")]
    assert records.updates == [("m-100", STORED_URL)]


@pytest.mark.asyncio
async def test_events_go_only_to_the_requesting_client(channel, wav_bytes):
    requester = channel.subscribe()
    bystander = channel.subscribe()

    await build_pipeline(channel).run(wav_bytes, brand_id=7, client_id=requester.id)

    assert drain_steps(requester) == HAPPY_STEPS
    assert drain_steps(bystander) == []


@pytest.mark.asyncio
async def test_events_are_broadcast_without_client_id(channel, wav_bytes):
    first = channel.subscribe()
    second = channel.subscribe()

    await build_pipeline(channel).run(wav_bytes, brand_id=7)

    assert drain_steps(first) == HAPPY_STEPS
    assert drain_steps(second) == HAPPY_STEPS


@pytest.mark.asyncio
async def test_wav_uploads_are_trimmed_before_transformation(channel, wav_bytes):
    transformer = FakeTransformer()

    await build_pipeline(channel, transformer=transformer).run(wav_bytes, brand_id=7)

    assert len(transformer.calls[0]) < len(wav_bytes)


@pytest.mark.asyncio
async def test_trimming_can_be_disabled(channel, wav_bytes):
    transformer = FakeTransformer()

    await build_pipeline(channel, transformer=transformer, trim_uploads=False).run(wav_bytes, brand_id=7)

    assert transformer.calls == [wav_bytes]


@pytest.mark.asyncio
async def test_non_wav_uploads_pass_through(channel):
    transformer = FakeTransformer()
    webm = b"\x1aE\xdf\xa3webm-capture"

    await build_pipeline(channel, transformer=transformer).run(
        webm, brand_id=7, filename="take.webm", content_type="audio/webm"
    )

    assert transformer.calls == [webm]


@pytest.mark.asyncio
async def test_unknown_brand_fails_before_transformation(channel, wav_bytes):
    connection = channel.subscribe()
    transformer = FakeTransformer()

    with pytest.raises(BrandNotFound, match="Brand with ID 99 not found"):
        await build_pipeline(channel, transformer=transformer).run(
            wav_bytes, brand_id=99, client_id=connection.id
        )

    assert transformer.calls == []
    assert drain_steps(connection) == ["error"]


@pytest.mark.asyncio
@pytest.mark.parametrize("brand_id", ["abc", "0", "-3", None])
async def test_invalid_brand_id_is_rejected(channel, wav_bytes, brand_id):
    with pytest.raises(InvalidPipelineInput):
        await build_pipeline(channel).run(wav_bytes, brand_id=brand_id)


@pytest.mark.asyncio
async def test_empty_audio_is_rejected(channel):
    with pytest.raises(InvalidPipelineInput):
        await build_pipeline(channel).run(b"", brand_id=7)


@pytest.mark.asyncio
async def test_unsupported_content_type_publishes_error(channel, wav_bytes):
    connection = channel.subscribe()
    transformer = FakeTransformer()

    with pytest.raises(InvalidPipelineInput, match="Unsupported audio content type: text/plain"):
        await build_pipeline(channel, transformer=transformer).run(
            wav_bytes, brand_id=7, client_id=connection.id, content_type="text/plain"
        )

    assert drain_steps(connection) == ["error"]
    assert transformer.calls == []


@pytest.mark.asyncio
async def test_transformation_failure_stops_the_pipeline(channel, wav_bytes):
    connection = channel.subscribe()
    storage = FakeStorage()
    records = FakeRecords()
    transformer = FakeTransformer(UpstreamServiceError("ElevenLabs error: Quota exceeded", status_code=401))

    with pytest.raises(UpstreamServiceError):
        await build_pipeline(channel, transformer=transformer, storage=storage, records=records).run(
            wav_bytes, brand_id=7, client_id=connection.id
        )

    connection.queue.get_nowait()
    steps = []
    errors = []
    while not connection.queue.empty():
        event = connection.queue.get_nowait()
        steps.append(event["step"])
        if event["step"] == "error":
            errors.append(event["error"])
    assert steps == ["processing", "transforming", "error"]
    assert errors == ["ElevenLabs error: Quota exceeded"]
    assert storage.uploads == []
    assert records.updates == []


@pytest.mark.asyncio
async def test_upload_failure_skips_the_database(channel, wav_bytes):
    connection = channel.subscribe()
    records = FakeRecords()

    with pytest.raises(UploadFailed):
        await build_pipeline(channel, storage=FakeStorage(UploadFailed("denied")), records=records).run(
            wav_bytes, brand_id=7, client_id=connection.id
        )

    assert drain_steps(connection) == ["processing", "transforming", "uploading", "error"]
    assert records.updates == []


@pytest.mark.asyncio
async def test_unverified_update_still_returns_the_url(channel, wav_bytes):
    connection = channel.subscribe()
    records = FakeRecords(
        outcome=RecordUpdateOutcome(success=False, error=RecordUpdateUnverified("mismatch"))
    )

    result = await build_pipeline(channel, records=records).run(
        wav_bytes, brand_id=7, client_id=connection.id
    )

    assert result.url == STORED_URL
    assert result.db_update_success is False
    assert drain_steps(connection) == [
        "processing",
        "transforming",
        "uploading",
        "updating_db",
        "error",
        "completed",
    ]


@pytest.mark.asyncio
async def test_database_exception_is_downgraded_to_an_error_event(channel):
    connection = channel.subscribe()
    records = FakeRecords(error=OSError("connection reset"))

    result = await build_pipeline(channel, records=records).run(
        make_wav(), brand_id=7, client_id=connection.id
    )

    assert result.db_update_success is False
    errors = _error_events(connection)
    assert [event["error"] for event in errors] == [DB_FAILURE_MESSAGE]
