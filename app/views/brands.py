"""Pydantic schemas for brand records."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BrandRead(BaseModel):
    id: int
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    merchant_name: str = Field(serialization_alias="merchantName")
    merchant_id: str = Field(serialization_alias="merchantId")
    record_url: Optional[str] = Field(default=None, serialization_alias="recordUrl")

    model_config = ConfigDict(from_attributes=True)


class BrandListResponse(BaseModel):
    success: bool = True
    brands: List[BrandRead]
