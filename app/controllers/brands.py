"""Brand listing controller."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.controllers.dependencies import BrandRepositoryDep
from app.views import BrandListResponse, BrandRead

router = APIRouter(prefix="/brands", tags=["brands"])

logger = logging.getLogger(__name__)


@router.get("", response_model=BrandListResponse)
async def list_brands(records: BrandRepositoryDep):
    try:
        rows = await records.list_brands()
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Error fetching brands")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": f"Error fetching brands: {exc}"},
        )
    return BrandListResponse(brands=[BrandRead.model_validate(row) for row in rows])
