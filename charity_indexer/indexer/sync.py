"""
Sync orchestrator: one chain-to-database indexing pass.

A pass reads the processor checkpoint, fetches one page per tracked event
kind concurrently (fan-out), applies each kind's events strictly in
ascending version order (fan-in), then advances the checkpoint if any
progress was made. There is no background loop; the trigger (HTTP or CLI)
decides when a pass runs.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import structlog
from sqlalchemy.exc import DisconnectionError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from charity_indexer.core.config import settings
from charity_indexer.core.database import get_session_maker
from charity_indexer.core.exceptions import (
    CheckpointError,
    DatabaseError,
    EventSourceError,
    IndexerError,
)
from charity_indexer.services.aptos_client import AptosEventClient

from .checkpoint import CheckpointStore
from .core.events import EventKind, RETIRED_EVENT_KINDS, RawEvent
from .core.types import (
    HandlerOutcome,
    KindFetchResult,
    ProcessingStats,
    SyncResult,
    SyncState,
)
from .handlers import CampaignHandlers, DonationHandlers, FundsHandlers, RetiredHandlers


logger = structlog.get_logger(__name__)

EventHandler = Callable[[AsyncSession, RawEvent], Awaitable[HandlerOutcome]]


class SyncOrchestrator:
    """
    Drives one indexing pass.

    Failure isolation:
    - a kind whose fetch fails contributes zero events to the pass
    - an event whose handler fails is rolled back and logged; the loop goes on
    - a failed checkpoint write is logged; the next pass replays the range
    Anything else moves the orchestrator to FAILED and raises IndexerError.
    """

    def __init__(
        self,
        event_client: AptosEventClient,
        checkpoint_store: Optional[CheckpointStore] = None,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        processor_name: Optional[str] = None,
        tracked_kinds: Optional[Sequence[EventKind]] = None,
        page_size: Optional[int] = None,
    ):
        self.event_client = event_client
        self._session_maker = session_maker
        self.checkpoint_store = checkpoint_store or CheckpointStore(session_maker)
        self.processor_name = processor_name or settings.indexer_processor_name
        self.tracked_kinds: List[EventKind] = list(
            tracked_kinds
            if tracked_kinds is not None
            else [EventKind(name) for name in settings.tracked_event_kinds]
        )
        self.page_size = page_size or settings.indexer_page_size
        self.state = SyncState.IDLE
        self.logger = logger.bind(service="sync_orchestrator", processor=self.processor_name)

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return self._session_maker or get_session_maker()

    def _transition(self, state: SyncState) -> None:
        self.logger.debug("Sync state change", previous=self.state.value, state=state.value)
        self.state = state

    def _setup_event_handlers(self, stats: ProcessingStats) -> Dict[EventKind, EventHandler]:
        """Map every known event kind to its handler, bound to this pass's stats."""
        campaign_handlers = CampaignHandlers(stats)
        donation_handlers = DonationHandlers(stats)
        funds_handlers = FundsHandlers(stats)
        retired_handlers = RetiredHandlers(stats)

        event_handlers: Dict[EventKind, EventHandler] = {
            EventKind.CAMPAIGN_CREATED: campaign_handlers.handle_campaign_created,
            EventKind.DONATION: donation_handlers.handle_donation,
            EventKind.FUNDS_CLAIMED: funds_handlers.handle_funds_claimed,
        }
        for kind in RETIRED_EVENT_KINDS:
            event_handlers[kind] = retired_handlers.handle_retired
        return event_handlers

    async def run_pass(self) -> SyncResult:
        """
        Run one synchronization pass.

        Returns:
            Summary with the version the processor is synced to

        Raises:
            IndexerError: On an unrecoverable failure
        """
        stats = ProcessingStats(start_time=datetime.now(timezone.utc))
        event_handlers = self._setup_event_handlers(stats)

        try:
            self._transition(SyncState.READING_CHECKPOINT)
            checkpoint = await self.checkpoint_store.read(self.processor_name)
            previous_version = checkpoint.version
            start_version = checkpoint.start_version
            self.logger.info(
                "Starting indexer run",
                start_version=start_version,
                checkpoint_state=checkpoint.state.value,
            )

            self._transition(SyncState.FETCHING_EVENTS)
            fetch_results = await self._fetch_all(start_version)

            self._transition(SyncState.APPLYING_EVENTS)
            new_version = await self._apply_all(fetch_results, event_handlers, stats, previous_version)

            self._transition(SyncState.ADVANCING_CHECKPOINT)
            advanced = False
            if new_version > previous_version:
                self.logger.info("Updating indexer status", version=new_version)
                try:
                    advanced = await self.checkpoint_store.write(self.processor_name, new_version)
                except CheckpointError as e:
                    self.logger.error(
                        "Failed to update indexer status",
                        version=new_version,
                        error=e.message,
                    )
            else:
                self.logger.info("No new events to process", version=previous_version)

            self._transition(SyncState.DONE)

        except Exception as e:
            self._transition(SyncState.FAILED)
            stats.finish_time = datetime.now(timezone.utc)
            self.logger.error("Fatal error in indexer", error=str(e), exc_info=True)
            if isinstance(e, IndexerError):
                raise
            raise IndexerError(f"Sync pass failed: {e}", {"processor": self.processor_name}) from e

        stats.finish_time = datetime.now(timezone.utc)
        self.logger.info("Indexer run complete", synced_to_version=new_version, **stats.as_dict())

        return SyncResult(
            success=True,
            message="Indexer run complete",
            synced_to_version=new_version,
            previous_version=previous_version,
            checkpoint_advanced=advanced,
            stats=stats,
        )

    async def _fetch_all(self, start_version: int) -> List[KindFetchResult]:
        """Fetch one page per tracked kind concurrently."""
        return list(await asyncio.gather(
            *(self._fetch_kind(kind, start_version) for kind in self.tracked_kinds)
        ))

    async def _fetch_kind(self, kind: EventKind, start_version: int) -> KindFetchResult:
        try:
            events = await self.event_client.fetch_events(kind, start_version, self.page_size)
        except EventSourceError as e:
            self.logger.error(
                "Error fetching events",
                kind=kind.value,
                start_version=start_version,
                error=e.message,
                details=e.details,
            )
            return KindFetchResult(kind=kind, error=e.message)
        except Exception as e:
            self.logger.error(
                "Unexpected error fetching events",
                kind=kind.value,
                start_version=start_version,
                error=str(e),
                exc_info=True,
            )
            return KindFetchResult(kind=kind, error=str(e))

        return KindFetchResult(kind=kind, events=events)

    async def _apply_all(
        self,
        fetch_results: List[KindFetchResult],
        event_handlers: Dict[EventKind, EventHandler],
        stats: ProcessingStats,
        previous_version: int,
    ) -> int:
        """
        Apply every fetched kind and compute the new high-water mark.

        The mark is the highest last-iterated version across kinds, capped
        just below the last version of any kind whose page came back full.
        One transaction can emit several events of a kind, so the rest of
        that version may sit beyond the page; the next pass re-reads it.
        """
        highest = previous_version
        page_limit: Optional[int] = None

        for result in fetch_results:
            if not result.ok:
                stats.fetch_errors[result.kind.value] = result.error
                continue
            if not result.events:
                continue

            stats.events_fetched += len(result.events)
            last_version = await self._apply_kind(result.kind, result.events, event_handlers, stats)

            highest = max(highest, last_version)
            if len(result.events) >= self.page_size:
                kind_limit = last_version - 1
                if kind_limit <= previous_version:
                    # The whole page is one version; re-reading it would never progress
                    self.logger.warning(
                        "Full page within a single version, advancing past it",
                        kind=result.kind.value,
                        version=last_version,
                        page_size=self.page_size,
                    )
                    kind_limit = last_version
                page_limit = kind_limit if page_limit is None else min(page_limit, kind_limit)

        if page_limit is not None and page_limit < highest:
            self.logger.info(
                "Holding checkpoint before the end of a full page",
                highest_seen=highest,
                page_limit=page_limit,
            )
            highest = max(previous_version, page_limit)

        return highest

    async def _apply_kind(
        self,
        kind: EventKind,
        events: List[RawEvent],
        event_handlers: Dict[EventKind, EventHandler],
        stats: ProcessingStats,
    ) -> int:
        """Apply one kind's events sequentially; returns the last version iterated."""
        ordered = sorted(events, key=lambda e: e.transaction_version)
        self.logger.info("Processing events", kind=kind.value, count=len(ordered))

        for event in ordered:
            await self._apply_event(event, event_handlers, stats)

        return ordered[-1].transaction_version

    async def _apply_event(
        self,
        event: RawEvent,
        event_handlers: Dict[EventKind, EventHandler],
        stats: ProcessingStats,
    ) -> None:
        """Apply a single event in its own transaction."""
        try:
            handler = event_handlers[event.kind]
            async with self.session_maker() as session:
                try:
                    outcome = await handler(session, event)
                    await session.commit()
                except Exception as e:
                    try:
                        await session.rollback()
                    except Exception as rollback_error:
                        self.logger.error(
                            "Rollback failed after event error",
                            version=event.transaction_version,
                            error=str(e),
                            rollback_error=str(rollback_error),
                        )
                        raise rollback_error from e
                    raise
            stats.record(outcome)
        except DatabaseError:
            raise
        except (DisconnectionError, InterfaceError, OSError) as e:
            raise DatabaseError(
                "Database unavailable while applying events",
                {"version": event.transaction_version, "reason": str(e)},
            ) from e
        except Exception as e:
            stats.events_failed += 1
            self.logger.error(
                "Error handling event",
                type_tag=event.type_tag,
                version=event.transaction_version,
                error=str(e),
            )
