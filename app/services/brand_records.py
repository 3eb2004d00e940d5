"""Repository helpers for reading brands and persisting their recording URLs."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Callable, Sequence

from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import RECORD_URL_PROCEDURE, session_scope
from app.models.brand import Brand
from app.services.errors import PipelineError, RecordNotFound, RecordUpdateUnverified
from app.services.health import ServiceCheck

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], AbstractAsyncContextManager[AsyncSession]]

STRATEGY_DIRECT = "direct"
STRATEGY_FALLBACK = "fallback"


@dataclass(frozen=True)
class RecordUpdateOutcome:
    """Tagged result of a record URL update attempt."""

    success: bool
    strategy: str | None = None
    error: PipelineError | None = None


def _same_value(stored: str | None, intended: str) -> bool:
    if stored is None:
        return False
    return stored.encode("utf-8") == intended.encode("utf-8")


class BrandRecordRepository:
    """Read brand rows and update their ``record_url`` with verification."""

    def __init__(self, session_factory: SessionProvider = session_scope) -> None:
        self._session_factory = session_factory

    async def list_brands(self) -> Sequence[Brand]:
        async with self._session_factory() as session:
            result = await session.execute(select(Brand).order_by(Brand.merchant_name))
            return result.scalars().all()

    async def get_brand(self, brand_id: int) -> Brand | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Brand).where(Brand.id == brand_id))
            return result.scalar_one_or_none()

    async def get_brand_by_merchant_id(self, merchant_id: str) -> Brand | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Brand).where(Brand.merchant_id == merchant_id)
            )
            return result.scalar_one_or_none()

    async def update_record_url(self, merchant_id: str, record_url: str) -> bool:
        """Store ``record_url`` on the brand and report whether it verifiably stuck."""

        outcome = await self.apply_record_url(merchant_id, record_url)
        return outcome.success

    async def apply_record_url(self, merchant_id: str, record_url: str) -> RecordUpdateOutcome:
        """Run the direct update, falling back to the alternate path when unconfirmed."""

        logger.info("Updating record URL for merchant %s", merchant_id)
        brand_row_id = await self._find_row_id(merchant_id)
        if brand_row_id is None:
            error = RecordNotFound(f"No brand found with merchant id {merchant_id}")
            logger.error("%s", error)
            return RecordUpdateOutcome(success=False, error=error)

        stored = await self._update_by_row_id(brand_row_id, record_url)
        if _same_value(stored, record_url):
            return RecordUpdateOutcome(success=True, strategy=STRATEGY_DIRECT)

        logger.warning(
            "Direct update for merchant %s not confirmed (stored=%r); trying fallback",
            merchant_id,
            stored,
        )
        await self._update_via_fallback(merchant_id, record_url)
        stored = await self._read_record_url(brand_row_id)
        if _same_value(stored, record_url):
            return RecordUpdateOutcome(success=True, strategy=STRATEGY_FALLBACK)

        error = RecordUpdateUnverified(
            f"Stored record URL for merchant {merchant_id} does not match the uploaded URL"
        )
        logger.error("%s (stored=%r)", error, stored)
        return RecordUpdateOutcome(success=False, strategy=STRATEGY_FALLBACK, error=error)

    async def _find_row_id(self, merchant_id: str) -> int | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Brand.id).where(Brand.merchant_id == merchant_id)
            )
            return result.scalars().first()

    async def _update_by_row_id(self, brand_row_id: int, record_url: str) -> str | None:
        async with self._session_factory() as session:
            await session.execute(
                update(Brand).where(Brand.id == brand_row_id).values(record_url=record_url)
            )
            await session.commit()
            result = await session.execute(
                select(Brand.record_url).where(Brand.id == brand_row_id)
            )
            return result.scalar_one_or_none()

    async def _update_via_fallback(self, merchant_id: str, record_url: str) -> None:
        async with self._session_factory() as session:
            if session.get_bind().dialect.name == "postgresql":
                await session.execute(
                    text(f"SELECT {RECORD_URL_PROCEDURE}(:merchant_id, :record_url)"),
                    {"merchant_id": merchant_id, "record_url": record_url},
                )
            else:
                await session.execute(
                    update(Brand)
                    .where(Brand.merchant_id == merchant_id)
                    .values(record_url=record_url)
                )
            await session.commit()

    async def _read_record_url(self, brand_row_id: int) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Brand.record_url).where(Brand.id == brand_row_id)
            )
            return result.scalar_one_or_none()

    async def check_connection(self) -> ServiceCheck:
        """Run a trivial query against the brands table."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(select(Brand.id).limit(1))
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Database check failed: %s", exc)
            return ServiceCheck(False, str(exc.__cause__ or exc))
        return ServiceCheck(
            True, f"Database connection successful. Found {len(rows)} records."
        )


_DEFAULT_REPOSITORY = BrandRecordRepository()


def get_brand_repository() -> BrandRecordRepository:
    """Return the repository bound to the application database."""

    return _DEFAULT_REPOSITORY


__all__ = [
    "BrandRecordRepository",
    "RecordUpdateOutcome",
    "STRATEGY_DIRECT",
    "STRATEGY_FALLBACK",
    "get_brand_repository",
]
