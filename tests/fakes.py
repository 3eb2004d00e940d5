"""In-memory collaborators for exercising the voice clone pipeline."""

from __future__ import annotations

from app.models import Brand
from app.pipelines.voice_clone import VoiceClonePipeline
from app.services.brand_records import STRATEGY_DIRECT, RecordUpdateOutcome
from app.services.storage import StoredObject

STORED_URL = "https://voice-bucket.s3.amazonaws.com/brand-recordings/Acme_m-100.mp3"
HAPPY_STEPS = ["processing", "transforming", "uploading", "updating_db", "completed"]


class FakeTransformer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[bytes] = []

    async def transform(self, audio_bytes, *, filename, content_type):
        self.calls.append(audio_bytes)
        if self.error is not None:
            raise self.error
        return b"converted-mp3"


class FakeStorage:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.uploads: list[tuple[bytes, str, str]] = []

    async def upload_brand_recording(self, audio_bytes, *, merchant_name, merchant_id, interactive=True):
        if self.error is not None:
            raise self.error
        self.uploads.append((audio_bytes, merchant_name, merchant_id))
        return StoredObject(key="brand-recordings/Acme_m-100.mp3", url=STORED_URL, replaced=False)


class FakeRecords:
    def __init__(
        self,
        *,
        outcome: RecordUpdateOutcome | None = None,
        error: Exception | None = None,
        lookup_error: Exception | None = None,
    ):
        self.brand = Brand(id=7, merchant_name="Acme", merchant_id="m-100")
        self.outcome = outcome or RecordUpdateOutcome(success=True, strategy=STRATEGY_DIRECT)
        self.error = error
        self.lookup_error = lookup_error
        self.updates: list[tuple[str, str]] = []

    async def get_brand(self, brand_id):
        return self.brand if brand_id == self.brand.id else None

    async def get_brand_by_merchant_id(self, merchant_id):
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.brand if merchant_id == self.brand.merchant_id else None

    async def apply_record_url(self, merchant_id, record_url):
        self.updates.append((merchant_id, record_url))
        if self.error is not None:
            raise self.error
        return self.outcome


def build_pipeline(channel, *, transformer=None, storage=None, records=None, trim_uploads=True):
    return VoiceClonePipeline(
        channel=channel,
        transformer=transformer or FakeTransformer(),
        storage=storage or FakeStorage(),
        records=records or FakeRecords(),
        trim_uploads=trim_uploads,
    )
