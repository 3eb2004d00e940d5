"""Result type shared by the service reachability checks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceCheck:
    """Outcome of a single collaborator health probe."""

    success: bool
    message: str


__all__ = ["ServiceCheck"]
