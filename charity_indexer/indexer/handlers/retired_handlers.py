"""
Handlers for event kinds whose contract modules were retired.

Staking, rewards and governance events are still valid kinds; they are
accepted and intentionally write nothing.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.events import RawEvent
from ..core.types import HandlerOutcome, ProcessingStats


logger = structlog.get_logger(__name__)


class RetiredHandlers:
    """No-op handlers for retired kinds."""

    def __init__(self, stats: ProcessingStats):
        self.stats = stats
        self.logger = logger.bind(service="retired_handlers")

    async def handle_retired(self, db: AsyncSession, event: RawEvent) -> HandlerOutcome:
        self.logger.debug(
            "Ignoring retired event kind",
            type_tag=event.type_tag,
            version=event.transaction_version,
        )
        return HandlerOutcome.IGNORED
