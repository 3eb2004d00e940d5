"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .brand import Brand  # noqa: F401

__all__ = [
    "Base",
    "Brand",
]
