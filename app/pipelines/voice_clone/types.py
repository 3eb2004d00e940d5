"""Typed containers shared across the voice clone pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineResult:
    """What a successful run produced; the upload is kept even if the DB write failed."""

    brand_id: int
    url: str
    object_key: str
    db_update_success: bool
    replaced: bool = False
