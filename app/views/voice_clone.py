"""Schemas for the voice clone pipeline endpoint."""

from typing import List, Optional

from pydantic import BaseModel, Field


class VoiceCloneResponse(BaseModel):
    success: bool
    url: Optional[str] = None
    db_update_success: Optional[bool] = Field(
        default=None, serialization_alias="dbUpdateSuccess"
    )
    error: Optional[str] = None


class PipelineStageRead(BaseModel):
    order: int
    step: str
    label: str
    summary: str
    fatal: bool


class PipelineStagesResponse(BaseModel):
    stages: List[PipelineStageRead]
