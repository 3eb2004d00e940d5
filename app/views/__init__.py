"""Pydantic schemas used as views in the MVC architecture."""

from .brands import BrandListResponse, BrandRead
from .checks import ServiceCheckResponse
from .common import ErrorResponse
from .process_events import ProcessEventPublish, ProcessEventPublishResponse
from .voice_clone import PipelineStageRead, PipelineStagesResponse, VoiceCloneResponse

__all__ = [
    "BrandListResponse",
    "BrandRead",
    "ServiceCheckResponse",
    "ErrorResponse",
    "ProcessEventPublish",
    "ProcessEventPublishResponse",
    "PipelineStageRead",
    "PipelineStagesResponse",
    "VoiceCloneResponse",
]
