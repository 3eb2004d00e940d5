"""S3 storage helpers for brand voice recordings."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.aws import create_boto3_client
from app.services.errors import StorageUnavailable, UploadFailed
from app.services.health import ServiceCheck

logger = logging.getLogger(__name__)

PLACEHOLDER_URL_PREFIX = "placeholder://storage-unavailable/"
RECORDING_CONTENT_TYPE = "audio/mpeg"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class StoredObject:
    """Where a recording ended up and whether it replaced an older one."""

    key: str
    url: str
    replaced: bool
    placeholder: bool = False


def _slug(value: str, fallback: str) -> str:
    cleaned = _UNSAFE_KEY_CHARS.sub("-", value.strip()).strip("-.")
    return cleaned or fallback


def brand_object_key(merchant_name: str, merchant_id: str, *, prefix: str | None = None) -> str:
    """Return the deterministic object key for a brand's recording."""

    key_prefix = (settings.s3.key_prefix if prefix is None else prefix).strip("/")
    filename = f"{_slug(merchant_name, 'brand')}_{_slug(merchant_id, 'unknown')}.mp3"
    return f"{key_prefix}/{filename}" if key_prefix else filename


def _metadata_value(value: str) -> str:
    # S3 user metadata travels as HTTP headers and must stay ASCII.
    return quote(value, safe=" -_.:@/")


class S3StorageService:
    """Upload brand recordings to a single S3 bucket with overwrite semantics."""

    def __init__(
        self,
        *,
        client: Any | None = None,
        bucket: str | None = None,
        region: str | None = None,
        public_base_url: str | None = None,
        key_prefix: str | None = None,
    ) -> None:
        self._client = client
        self._bucket = settings.s3.bucket_name if bucket is None else bucket
        self._region = region or settings.s3.region
        self._public_base_url = (
            settings.s3.public_base_url if public_base_url is None else public_base_url
        )
        self._key_prefix = key_prefix

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_key(self, merchant_name: str, merchant_id: str) -> str:
        return brand_object_key(merchant_name, merchant_id, prefix=self._key_prefix)

    def object_url(self, key: str) -> str:
        """Return the public URL for ``key`` inside the configured bucket."""

        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{self._bucket}/{key}"
        if self._region == "us-east-1":
            return f"https://{self._bucket}.s3.amazonaws.com/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client("s3", region_name=self._region)
        return self._client

    async def upload_brand_recording(
        self,
        audio_bytes: bytes,
        *,
        merchant_name: str,
        merchant_id: str,
        interactive: bool = True,
    ) -> StoredObject:
        """Upload the converted recording and return where it is reachable.

        Non-interactive callers (batch scripts, build steps) get a clearly
        marked placeholder URL when storage is not configured instead of an
        exception; request handlers always see ``StorageUnavailable``.
        """

        key = self.object_key(merchant_name, merchant_id)
        try:
            return await self._upload(
                audio_bytes,
                key=key,
                merchant_name=merchant_name,
                merchant_id=merchant_id,
            )
        except StorageUnavailable as exc:
            if interactive:
                raise
            logger.warning("Storage unavailable, using placeholder for %s: %s", key, exc)
            return StoredObject(
                key=key,
                url=f"{PLACEHOLDER_URL_PREFIX}{key}",
                replaced=False,
                placeholder=True,
            )

    async def _upload(
        self,
        audio_bytes: bytes,
        *,
        key: str,
        merchant_name: str,
        merchant_id: str,
    ) -> StoredObject:
        if not audio_bytes:
            raise UploadFailed("Audio payload for upload was empty.")
        if not self._bucket:
            raise StorageUnavailable("S3 bucket name is not configured.")

        try:
            client = self._get_client()
        except BotoCoreError as exc:
            raise StorageUnavailable(f"Unable to create S3 client: {exc}") from exc

        replaced = await self._object_exists(client, key)
        if replaced:
            logger.info("Object %s already exists in %s and will be replaced", key, self._bucket)

        metadata = {
            "merchant-name": _metadata_value(merchant_name),
            "merchant-id": _metadata_value(merchant_id),
            "created-at": datetime.now(timezone.utc).isoformat(),
            "replaced": "true" if replaced else "false",
        }
        try:
            await run_in_threadpool(
                client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=audio_bytes,
                ContentType=RECORDING_CONTENT_TYPE,
                Metadata=metadata,
            )
        except NoCredentialsError as exc:
            raise StorageUnavailable("S3 credentials are not configured.") from exc
        except (BotoCoreError, ClientError) as exc:
            raise UploadFailed(f"Failed to upload brand recording: {exc}") from exc

        url = self.object_url(key)
        logger.info("Uploaded %d bytes to s3://%s/%s", len(audio_bytes), self._bucket, key)
        return StoredObject(key=key, url=url, replaced=replaced)

    async def _object_exists(self, client: Any, key: str) -> bool:
        """Report whether ``key`` is already stored; only used for logging and metadata."""

        try:
            await run_in_threadpool(client.head_object, Bucket=self._bucket, Key=key)
        except NoCredentialsError as exc:
            raise StorageUnavailable("S3 credentials are not configured.") from exc
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code not in _MISSING_OBJECT_CODES:
                logger.warning("Could not check for existing object %s: %s", key, exc)
            return False
        except BotoCoreError as exc:
            logger.warning("Could not check for existing object %s: %s", key, exc)
            return False
        return True

    async def check_bucket(self) -> ServiceCheck:
        """Confirm that the configured bucket exists and is reachable."""

        if not self._bucket:
            return ServiceCheck(False, "S3 bucket name is not configured")
        try:
            client = self._get_client()
            await run_in_threadpool(client.head_bucket, Bucket=self._bucket)
        except NoCredentialsError:
            return ServiceCheck(False, "S3 credentials are not configured")
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                return ServiceCheck(False, f'Bucket "{self._bucket}" not found')
            return ServiceCheck(False, str(exc))
        except BotoCoreError as exc:
            return ServiceCheck(False, str(exc))
        return ServiceCheck(True, "S3 storage connection successful")


_DEFAULT_SERVICE: S3StorageService | None = None


def get_storage_service() -> S3StorageService:
    """Return the default storage service instance."""

    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        _DEFAULT_SERVICE = S3StorageService()
    return _DEFAULT_SERVICE


__all__ = [
    "PLACEHOLDER_URL_PREFIX",
    "S3StorageService",
    "StoredObject",
    "brand_object_key",
    "get_storage_service",
]
