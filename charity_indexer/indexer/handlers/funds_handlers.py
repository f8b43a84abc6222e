"""
Event handlers for creator withdrawals.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from charity_indexer.core.database import dialect_insert
from charity_indexer.models.funds_claimed import FundsClaimed

from ..core.events import EventKind, RawEvent, parse_payload
from ..core.types import HandlerOutcome, ProcessingStats


logger = structlog.get_logger(__name__)


class FundsHandlers:
    """
    Handles FundsClaimed events. Claims are an append-only log.
    """

    def __init__(self, stats: ProcessingStats):
        """Initialize funds handlers."""
        self.stats = stats
        self.logger = logger.bind(service="funds_handlers")

    async def handle_funds_claimed(self, db: AsyncSession, event: RawEvent) -> HandlerOutcome:
        """Handle FundsClaimed event."""
        try:
            data = parse_payload(event, EventKind.FUNDS_CLAIMED)
            claims = FundsClaimed.__table__

            stmt = (
                dialect_insert(db, claims)
                .values(
                    transaction_hash=str(event.transaction_version),
                    campaign_id=data.campaign_id,
                    creator=data.creator,
                    amount_claimed=data.amount_claimed,
                    claimed_at=data.claimed_at,
                )
                .on_conflict_do_nothing(index_elements=[claims.c.transaction_hash])
                .returning(claims.c.transaction_hash)
            )
            inserted = (await db.execute(stmt)).scalar_one_or_none()

            if inserted is None:
                self.logger.debug("Claim already recorded", version=event.transaction_version)
                return HandlerOutcome.DUPLICATE

            self.stats.claims_recorded += 1
            self.logger.info(
                "Funds claimed",
                campaign_id=data.campaign_id,
                creator=data.creator,
                amount=data.amount_claimed,
                version=event.transaction_version,
            )
            return HandlerOutcome.APPLIED

        except Exception as e:
            self.logger.error(
                "Failed to handle FundsClaimed event",
                version=event.transaction_version,
                error=str(e),
            )
            raise
