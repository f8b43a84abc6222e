"""
Event handlers for campaign lifecycle events.
"""

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from charity_indexer.core.database import dialect_insert
from charity_indexer.models.campaign import Campaign
from charity_indexer.models.donation import Donation

from ..core.events import EventKind, RawEvent, parse_payload
from ..core.types import HandlerOutcome, ProcessingStats


logger = structlog.get_logger(__name__)


class CampaignHandlers:
    """
    Handles campaign-related contract events.
    """

    def __init__(self, stats: ProcessingStats):
        """Initialize campaign handlers."""
        self.stats = stats
        self.logger = logger.bind(service="campaign_handlers")

    async def handle_campaign_created(self, db: AsyncSession, event: RawEvent) -> HandlerOutcome:
        """
        Handle CampaignCreated: upsert the campaign keyed by ``campaign_id``.

        Re-delivery rewrites the static fields only. A fresh row starts with
        the sum of donations already recorded for the campaign.
        """
        try:
            data = parse_payload(event, EventKind.CAMPAIGN_CREATED)
            campaigns = Campaign.__table__
            donations = Donation.__table__

            recorded_donations = (
                select(func.coalesce(func.sum(donations.c.amount), 0))
                .where(donations.c.campaign_id == data.campaign_id)
                .scalar_subquery()
            )

            stmt = dialect_insert(db, campaigns).values(
                campaign_id=data.campaign_id,
                creator_address=data.creator,
                description=data.description,
                goal_amount=data.goal_amount,
                end_timestamp_secs=data.end_timestamp_secs,
                created_at=data.created_at,
                total_donated=recorded_donations,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[campaigns.c.campaign_id],
                set_={
                    "creator_address": stmt.excluded.creator_address,
                    "description": stmt.excluded.description,
                    "goal_amount": stmt.excluded.goal_amount,
                    "end_timestamp_secs": stmt.excluded.end_timestamp_secs,
                    "created_at": stmt.excluded.created_at,
                    "updated_at": func.now(),
                },
            )
            await db.execute(stmt)

            self.stats.campaigns_upserted += 1
            self.logger.info(
                "Campaign upserted",
                campaign_id=data.campaign_id,
                creator=data.creator,
                goal_amount=data.goal_amount,
                version=event.transaction_version,
            )
            return HandlerOutcome.APPLIED

        except Exception as e:
            self.logger.error(
                "Failed to handle CampaignCreated event",
                version=event.transaction_version,
                error=str(e),
            )
            raise
