"""Service layer helpers for external integrations."""

from .brand_records import (
    BrandRecordRepository,
    RecordUpdateOutcome,
    get_brand_repository,
)
from .errors import (
    BrandNotFound,
    CaptureUnavailable,
    ConfigurationError,
    InvalidPipelineInput,
    PipelineError,
    RecordNotFound,
    RecordUpdateUnverified,
    StorageUnavailable,
    UnexpectedResponseShape,
    UploadFailed,
    UpstreamServiceError,
)
from .health import ServiceCheck
from .progress_channel import ProcessEvent, ProcessStep, ProgressChannel
from .storage import S3StorageService, StoredObject, brand_object_key, get_storage_service
from .voice_transform import VoiceTransformClient, get_voice_transform_client

__all__ = [
    "BrandRecordRepository",
    "RecordUpdateOutcome",
    "get_brand_repository",
    "BrandNotFound",
    "CaptureUnavailable",
    "ConfigurationError",
    "InvalidPipelineInput",
    "PipelineError",
    "RecordNotFound",
    "RecordUpdateUnverified",
    "StorageUnavailable",
    "UnexpectedResponseShape",
    "UploadFailed",
    "UpstreamServiceError",
    "ServiceCheck",
    "ProcessEvent",
    "ProcessStep",
    "ProgressChannel",
    "S3StorageService",
    "StoredObject",
    "brand_object_key",
    "get_storage_service",
    "VoiceTransformClient",
    "get_voice_transform_client",
]
