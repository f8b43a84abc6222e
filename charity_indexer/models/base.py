"""
Declarative base and shared mixins for the indexer models.
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all indexer tables."""


class BaseModel(Base):
    """Abstract base with a readable ``to_dict``."""

    __abstract__ = True

    def to_dict(self) -> dict:
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
        }


class TimestampMixin:
    """Row bookkeeping timestamps, set by the database."""

    indexed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="When the indexer first wrote this row"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="When the indexer last wrote this row"
    )
