"""
FundsClaimed model - append-only log of creator withdrawals.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class FundsClaimed(BaseModel):
    """Claim row keyed by the transaction version that emitted it."""

    __tablename__ = "funds_claimed"

    transaction_hash: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Transaction version of the event"
    )

    campaign_id: Mapped[str] = mapped_column(String(32))

    creator: Mapped[str] = mapped_column(String(66))

    amount_claimed: Mapped[int] = mapped_column(BigInteger)

    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_funds_claimed_campaign", "campaign_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<FundsClaimed(version={self.transaction_hash}, "
            f"campaign_id={self.campaign_id}, amount={self.amount_claimed})>"
        )
