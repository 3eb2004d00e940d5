"""Service status checks consumed by the status dashboard."""

from fastapi import APIRouter

from app.controllers.dependencies import (
    BrandRepositoryDep,
    StorageDep,
    VoiceTransformDep,
)
from app.views import ServiceCheckResponse

router = APIRouter(prefix="/check", tags=["checks"])


@router.get("/database", response_model=ServiceCheckResponse)
async def check_database(records: BrandRepositoryDep) -> ServiceCheckResponse:
    result = await records.check_connection()
    return ServiceCheckResponse(success=result.success, message=result.message)


@router.get("/voice-service", response_model=ServiceCheckResponse)
async def check_voice_service(transformer: VoiceTransformDep) -> ServiceCheckResponse:
    result = await transformer.check_connection()
    return ServiceCheckResponse(success=result.success, message=result.message)


@router.get("/storage", response_model=ServiceCheckResponse)
async def check_storage(storage: StorageDep) -> ServiceCheckResponse:
    result = await storage.check_bucket()
    return ServiceCheckResponse(success=result.success, message=result.message)
