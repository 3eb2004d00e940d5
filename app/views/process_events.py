"""Schemas for publishing progress events."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessEventPublish(BaseModel):
    step: Optional[str] = None
    error: Optional[str] = None
    client_id: Optional[str] = Field(default=None, alias="clientId")

    model_config = ConfigDict(populate_by_name=True)


class ProcessEventPublishResponse(BaseModel):
    success: bool
    delivered: int = 0
