"""Sequential voice clone pipeline with progress notifications."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from app.config.settings import settings
from app.models.brand import Brand
from app.pipelines.voice_clone.flow import VoiceCloneFlow
from app.pipelines.voice_clone.ingestion import ensure_supported_content_type, parse_brand_id
from app.pipelines.voice_clone.trimming import is_wav, trim_silence
from app.pipelines.voice_clone.types import PipelineResult
from app.services.brand_records import BrandRecordRepository
from app.services.errors import BrandNotFound, InvalidPipelineInput
from app.services.progress_channel import ProcessStep, ProgressChannel
from app.services.storage import S3StorageService
from app.services.voice_transform import VoiceTransformClient
from app.telemetry import observe_pipeline_stage, record_pipeline_outcome

logger = logging.getLogger("app.pipelines.voice_clone")

DB_FAILURE_MESSAGE = "Database update failed, but file was uploaded successfully"


class VoiceClonePipeline:
    """Turn a raw recording into a stored, publicly reachable brand voice URL.

    Everything up to and including the upload is fatal: the first failure
    publishes an ``error`` event and propagates. The database write runs
    after the upload and is downgraded to an ``error`` event so the caller
    still receives the URL. ``completed`` is published last on every run
    that reached storage.
    """

    def __init__(
        self,
        *,
        channel: ProgressChannel,
        transformer: VoiceTransformClient,
        storage: S3StorageService,
        records: BrandRecordRepository,
        trim_uploads: bool | None = None,
    ) -> None:
        self._channel = channel
        self._transformer = transformer
        self._storage = storage
        self._records = records
        self._trim_uploads = (
            settings.pipeline.trim_uploads if trim_uploads is None else trim_uploads
        )

    async def run(
        self,
        audio_bytes: bytes,
        *,
        brand_id: int | str,
        client_id: str | None = None,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
    ) -> PipelineResult:
        def notify(step: ProcessStep, error: str | None = None) -> None:
            delivered = self._channel.publish(client_id, step.value, error)
            logger.info(
                "brand=%s stage=%s delivered=%d",
                brand_id,
                VoiceCloneFlow.label_for(step.value),
                delivered,
            )

        try:
            with self._timed("validation"):
                brand = await self._validate(audio_bytes, brand_id, content_type)

            notify(ProcessStep.PROCESSING)
            with self._timed(ProcessStep.PROCESSING.value):
                payload = self._preprocess(audio_bytes)

            notify(ProcessStep.TRANSFORMING)
            with self._timed(ProcessStep.TRANSFORMING.value):
                converted = await self._transformer.transform(
                    payload,
                    filename=filename,
                    content_type=content_type,
                )

            notify(ProcessStep.UPLOADING)
            with self._timed(ProcessStep.UPLOADING.value):
                stored = await self._storage.upload_brand_recording(
                    converted,
                    merchant_name=brand.merchant_name,
                    merchant_id=brand.merchant_id,
                )
        except Exception as exc:
            logger.error("Voice clone failed for brand=%s: %s", brand_id, exc)
            notify(ProcessStep.ERROR, str(exc))
            record_pipeline_outcome("failed")
            raise

        notify(ProcessStep.UPDATING_DB)
        with self._timed(ProcessStep.UPDATING_DB.value):
            db_update_success = await self._persist(brand, stored.url, notify)

        notify(ProcessStep.COMPLETED)
        record_pipeline_outcome("completed" if db_update_success else "partial")
        logger.info(
            "Voice clone finished brand=%s url=%s db_update_success=%s",
            brand.id,
            stored.url,
            db_update_success,
        )
        return PipelineResult(
            brand_id=brand.id,
            url=stored.url,
            object_key=stored.key,
            db_update_success=db_update_success,
            replaced=stored.replaced,
        )

    async def _validate(
        self, audio_bytes: bytes, raw_brand_id: int | str, content_type: str
    ) -> Brand:
        if not audio_bytes:
            raise InvalidPipelineInput("Uploaded audio file is empty")
        ensure_supported_content_type(content_type)
        brand_id = parse_brand_id(raw_brand_id)
        brand = await self._records.get_brand(brand_id)
        if brand is None:
            raise BrandNotFound(f"Brand with ID {brand_id} not found")
        return brand

    def _preprocess(self, audio_bytes: bytes) -> bytes:
        if not self._trim_uploads or not is_wav(audio_bytes):
            return audio_bytes
        return trim_silence(audio_bytes)

    async def _persist(self, brand: Brand, url: str, notify) -> bool:
        try:
            outcome = await self._records.apply_record_url(brand.merchant_id, url)
        except Exception:
            logger.exception("Record URL update raised for merchant=%s", brand.merchant_id)
            notify(ProcessStep.ERROR, DB_FAILURE_MESSAGE)
            return False

        if not outcome.success:
            notify(ProcessStep.ERROR, f"{DB_FAILURE_MESSAGE} ({outcome.error})")
        return outcome.success

    @contextmanager
    def _timed(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            observe_pipeline_stage(stage, time.perf_counter() - start)


__all__ = ["DB_FAILURE_MESSAGE", "VoiceClonePipeline"]
