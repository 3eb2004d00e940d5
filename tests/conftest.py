"""Shared fixtures for the voice clone backend tests."""

from __future__ import annotations

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import numpy as np
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

# Keep the application engine off any real database during tests.
os.environ.setdefault("DB_DSN", "sqlite+aiosqlite://")
os.environ.setdefault("S3_BUCKET_NAME", "test-bucket")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.models import Base, Brand  # noqa: E402
from app.pipelines.voice_clone.trimming import encode_wav  # noqa: E402
from app.services.progress_channel import ProgressChannel  # noqa: E402

SAMPLE_RATE = 44_100


def make_wav(
    *,
    silence_before: float = 0.5,
    voiced: float = 1.0,
    silence_after: float = 0.5,
    amplitude: float = 0.5,
    channels: int = 1,
    sample_rate: int = SAMPLE_RATE,
) -> bytes:
    """Build a WAV capture of silence / square wave / silence."""

    lead = np.zeros(int(sample_rate * silence_before), dtype=np.float32)
    frames = int(sample_rate * voiced)
    tone = np.where(np.arange(frames) % 2 == 0, amplitude, -amplitude).astype(np.float32)
    tail = np.zeros(int(sample_rate * silence_after), dtype=np.float32)
    samples = np.concatenate([lead, tone, tail])
    if channels > 1:
        samples = np.repeat(samples[:, None], channels, axis=1)
    return encode_wav(samples, sample_rate)


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav()


@pytest.fixture
def channel() -> ProgressChannel:
    return ProgressChannel(
        heartbeat_interval=5.0,
        connection_timeout=60.0,
        sweep_interval=60.0,
        queue_size=50,
    )


def drain_steps(connection) -> list[str]:
    """Return the ``step`` of every queued event, skipping the greeting."""

    steps = []
    while not connection.queue.empty():
        item = connection.queue.get_nowait()
        if isinstance(item, dict) and "step" in item:
            steps.append(item["step"])
    return steps


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database shared by every session in one test."""

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    @asynccontextmanager
    async def factory():
        async with maker() as session:
            yield session

    async with maker() as session:
        session.add_all(
            [
                Brand(merchant_name="Zeta Bakery", merchant_id="m-200"),
                Brand(merchant_name="Acme Coffee", merchant_id="m-100"),
            ]
        )
        await session.commit()

    yield factory
    await engine.dispose()
