"""
Campaign model - mirrors a charity campaign created on-chain.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class Campaign(BaseModel, TimestampMixin):
    """Campaign row derived from CampaignCreated events."""

    __tablename__ = "campaigns"

    campaign_id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="On-chain campaign id (u64 as decimal string)"
    )

    creator_address: Mapped[str] = mapped_column(
        String(66),
        comment="Creator account address"
    )

    description: Mapped[str] = mapped_column(Text, default="")

    goal_amount: Mapped[int] = mapped_column(
        BigInteger,
        comment="Fundraising goal in octas"
    )

    end_timestamp_secs: Mapped[int] = mapped_column(
        BigInteger,
        comment="Campaign end as unix seconds"
    )

    total_donated: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        comment="Running sum of applied donations in octas"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        comment="On-chain creation time"
    )

    __table_args__ = (
        Index("idx_campaign_creator", "creator_address"),
    )

    @property
    def goal_reached(self) -> bool:
        return self.total_donated >= self.goal_amount

    def __repr__(self) -> str:
        return (
            f"<Campaign(campaign_id={self.campaign_id}, "
            f"total_donated={self.total_donated}/{self.goal_amount})>"
        )
