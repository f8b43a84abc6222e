"""
Event handlers for donation events.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession

from charity_indexer.core.database import dialect_insert
from charity_indexer.models.campaign import Campaign
from charity_indexer.models.donation import Donation

from ..core.events import EventKind, RawEvent, parse_payload
from ..core.types import HandlerOutcome, ProcessingStats


logger = structlog.get_logger(__name__)


class DonationHandlers:
    """
    Handles donation events and the ``total_donated`` aggregate.
    """

    def __init__(self, stats: ProcessingStats):
        """Initialize donation handlers."""
        self.stats = stats
        self.logger = logger.bind(service="donation_handlers")

    async def handle_donation(self, db: AsyncSession, event: RawEvent) -> HandlerOutcome:
        """
        Handle DonationEvent.

        The donation row is keyed by transaction version and inserted at most
        once; the campaign total only moves when that insert actually wrote a
        row, and moves by an atomic increment. A donation for an unknown
        campaign is kept as an orphan row and the aggregate is left alone.
        """
        try:
            data = parse_payload(event, EventKind.DONATION)
            donations = Donation.__table__
            campaigns = Campaign.__table__

            # DonationEvent has no timestamp field; stamp ingestion time
            donated_at = datetime.now(timezone.utc)

            insert_stmt = (
                dialect_insert(db, donations)
                .values(
                    transaction_hash=str(event.transaction_version),
                    campaign_id=data.campaign_id,
                    donor=data.donor,
                    amount=data.amount,
                    heart_tokens_minted=data.heart_tokens_minted,
                    donated_at=donated_at,
                )
                .on_conflict_do_nothing(index_elements=[donations.c.transaction_hash])
                .returning(donations.c.transaction_hash)
            )
            inserted = (await db.execute(insert_stmt)).scalar_one_or_none()

            if inserted is None:
                self.logger.debug(
                    "Donation already recorded",
                    version=event.transaction_version,
                    campaign_id=data.campaign_id,
                )
                return HandlerOutcome.DUPLICATE

            self.stats.donations_recorded += 1

            new_total = (
                await db.execute(
                    update(campaigns)
                    .where(campaigns.c.campaign_id == data.campaign_id)
                    .values(
                        total_donated=campaigns.c.total_donated + data.amount,
                        updated_at=func.now(),
                    )
                    .returning(campaigns.c.total_donated)
                )
            ).scalar_one_or_none()

            if new_total is None:
                self.logger.warning(
                    "Campaign not found for donation",
                    campaign_id=data.campaign_id,
                    version=event.transaction_version,
                    amount=data.amount,
                )
                return HandlerOutcome.SKIPPED

            self.logger.info(
                "Donation recorded",
                campaign_id=data.campaign_id,
                donor=data.donor,
                amount=data.amount,
                total_donated=new_total,
                version=event.transaction_version,
            )
            return HandlerOutcome.APPLIED

        except Exception as e:
            self.logger.error(
                "Failed to handle DonationEvent",
                version=event.transaction_version,
                error=str(e),
            )
            raise
