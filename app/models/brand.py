"""SQLAlchemy model for merchant brands and their voice recordings."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    merchant_name = Column(String(255), nullable=False)
    merchant_id = Column(String(128), unique=True, nullable=False, index=True)
    # NULL until the first successful recording upload.
    record_url = Column(Text, nullable=True)


__all__ = ["Brand"]
