"""
Base model and mixins for the invoice engine.

This module defines the declarative base and the integer primary key mixin
shared by every table.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class IntPK(Base):
    """
    Mixin that adds an integer primary key and a creation timestamp.

    Attributes:
        id (int): Primary key
        created_at (datetime): Row creation time (UTC)
    """
    __abstract__ = True
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
