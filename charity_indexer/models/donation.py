"""
Donation model - one row per DonationEvent, immutable once written.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Donation(BaseModel):
    """Donation row keyed by the transaction version that emitted it."""

    __tablename__ = "donations"

    transaction_hash: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Transaction version of the event; de-duplication key"
    )

    campaign_id: Mapped[str] = mapped_column(String(32))

    donor: Mapped[str] = mapped_column(String(66))

    amount: Mapped[int] = mapped_column(
        BigInteger,
        comment="Donated amount in octas"
    )

    heart_tokens_minted: Mapped[int] = mapped_column(BigInteger, default=0)

    # The event carries no timestamp; this is ingestion time
    donated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_donation_campaign", "campaign_id"),
        Index("idx_donation_donor", "donor"),
    )

    @property
    def transaction_version(self) -> int:
        return int(self.transaction_hash)

    def __repr__(self) -> str:
        return (
            f"<Donation(version={self.transaction_hash}, "
            f"campaign_id={self.campaign_id}, amount={self.amount})>"
        )
