"""
Processor checkpoint model - the durable high-water mark per processor.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class ProcessorCheckpoint(BaseModel):
    """Last fully processed transaction version for a named processor."""

    __tablename__ = "indexer_status"

    processor_name: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Logical consumer of the event stream"
    )

    last_processed_version: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        comment="Highest transaction version processed; never decreases"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<ProcessorCheckpoint(processor_name={self.processor_name}, "
            f"version={self.last_processed_version})>"
        )
