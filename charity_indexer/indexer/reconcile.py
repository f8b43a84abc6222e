"""
Recompute campaign aggregates from the donations table.

Maintenance counterpart of the incremental ``total_donated`` updates: the
sum of recorded donations per campaign is the source of truth.
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from charity_indexer.core.database import get_session_maker
from charity_indexer.core.exceptions import CampaignNotFoundError
from charity_indexer.models.campaign import Campaign
from charity_indexer.models.donation import Donation


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TotalCorrection:
    campaign_id: str
    stored_total: int
    recomputed_total: int


async def reconcile_campaign_totals(
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    dry_run: bool = False,
    campaign_id: Optional[str] = None,
) -> List[TotalCorrection]:
    """
    Set ``Campaign.total_donated`` to the sum of its donation rows.

    Args:
        session_maker: Session factory, defaults to the global one
        dry_run: Report the drift without writing
        campaign_id: Only check this campaign

    Returns:
        The campaigns whose stored total disagreed with the donations

    Raises:
        CampaignNotFoundError: If ``campaign_id`` names no stored campaign
    """
    session_maker = session_maker or get_session_maker()

    donation_sums = (
        select(
            Donation.campaign_id.label("campaign_id"),
            func.sum(Donation.amount).label("total"),
        )
        .group_by(Donation.campaign_id)
        .subquery()
    )

    query = (
        select(
            Campaign.campaign_id,
            Campaign.total_donated,
            func.coalesce(donation_sums.c.total, 0),
        )
        .outerjoin(donation_sums, donation_sums.c.campaign_id == Campaign.campaign_id)
        .order_by(Campaign.campaign_id)
    )
    if campaign_id is not None:
        query = query.where(Campaign.campaign_id == campaign_id)

    async with session_maker() as session:
        rows = (await session.execute(query)).all()

        if campaign_id is not None and not rows:
            raise CampaignNotFoundError(campaign_id)

        corrections = [
            TotalCorrection(row_campaign_id, int(stored or 0), int(recomputed))
            for row_campaign_id, stored, recomputed in rows
            if int(stored or 0) != int(recomputed)
        ]

        if corrections and not dry_run:
            for correction in corrections:
                await session.execute(
                    update(Campaign)
                    .where(Campaign.campaign_id == correction.campaign_id)
                    .values(total_donated=correction.recomputed_total)
                )
            await session.commit()

    for correction in corrections:
        logger.warning(
            "Campaign total out of sync with donations",
            campaign_id=correction.campaign_id,
            stored_total=correction.stored_total,
            recomputed_total=correction.recomputed_total,
            dry_run=dry_run,
        )

    return corrections
