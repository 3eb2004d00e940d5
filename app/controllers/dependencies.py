"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.pipelines.voice_clone import VoiceClonePipeline
from app.services.brand_records import BrandRecordRepository, get_brand_repository
from app.services.progress_channel import ProgressChannel
from app.services.storage import S3StorageService, get_storage_service
from app.services.voice_transform import VoiceTransformClient, get_voice_transform_client


def get_progress_channel(request: Request) -> ProgressChannel:
    """Return the process-wide progress channel owned by the application."""

    return request.app.state.progress_channel


ProgressChannelDep = Annotated[ProgressChannel, Depends(get_progress_channel)]
BrandRepositoryDep = Annotated[BrandRecordRepository, Depends(get_brand_repository)]
StorageDep = Annotated[S3StorageService, Depends(get_storage_service)]
VoiceTransformDep = Annotated[VoiceTransformClient, Depends(get_voice_transform_client)]


def get_voice_clone_pipeline(
    channel: ProgressChannelDep,
    transformer: VoiceTransformDep,
    storage: StorageDep,
    records: BrandRepositoryDep,
) -> VoiceClonePipeline:
    """Assemble the pipeline from the injected collaborators."""

    return VoiceClonePipeline(
        channel=channel,
        transformer=transformer,
        storage=storage,
        records=records,
    )


VoiceClonePipelineDep = Annotated[VoiceClonePipeline, Depends(get_voice_clone_pipeline)]


__all__ = [
    "BrandRepositoryDep",
    "ProgressChannelDep",
    "StorageDep",
    "VoiceClonePipelineDep",
    "VoiceTransformDep",
    "get_progress_channel",
    "get_voice_clone_pipeline",
]
