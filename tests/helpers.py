"""
Shared test helpers: raw event factory and an in-memory event source.
"""

import asyncio
from typing import Dict, List, Optional, Union

from charity_indexer.core.config import AptosConfig
from charity_indexer.core.exceptions import EventSourceError
from charity_indexer.indexer.core.events import EventKind, RawEvent


def make_event(kind: EventKind, version: int, **data) -> RawEvent:
    """Build a RawEvent shaped like an Aptos indexer row."""
    tag = AptosConfig.event_type_tag(kind.value)
    return RawEvent(
        account_address="0x1",
        creation_number=0,
        sequence_number=version,
        data={key: str(value) if isinstance(value, int) else value for key, value in data.items()},
        type=tag,
        transaction_version=version,
        transaction_block_height=version // 10,
        indexed_type=tag,
    )


def campaign_created(version: int, campaign_id: int = 1, **overrides) -> RawEvent:
    data = {
        "campaign_id": campaign_id,
        "creator": "0xc0ffee",
        "description": "Clean water",
        "goal_amount": 1_000,
        "end_timestamp_secs": 1_900_000_000,
        "created_at": 1_700_000_000,
    }
    data.update(overrides)
    return make_event(EventKind.CAMPAIGN_CREATED, version, **data)


def donation(version: int, campaign_id: int = 1, amount: int = 10, donor: str = "0xd0d0") -> RawEvent:
    return make_event(
        EventKind.DONATION,
        version,
        campaign_id=campaign_id,
        donor=donor,
        amount=amount,
        heart_tokens_minted=amount,
    )


def funds_claimed(version: int, campaign_id: int = 1, amount: int = 500) -> RawEvent:
    return make_event(
        EventKind.FUNDS_CLAIMED,
        version,
        campaign_id=campaign_id,
        creator="0xc0ffee",
        amount_claimed=amount,
        claimed_at=1_800_000_000,
    )


class FakeEventSource:
    """
    In-memory stand-in for AptosEventClient.

    ``events`` maps kinds to their full stream; ``failures`` maps kinds to an
    error raised instead of answering. When ``rendezvous`` is set, every
    fetch waits until that many fetches are in flight.
    """

    def __init__(self):
        self.events: Dict[EventKind, List[RawEvent]] = {}
        self.failures: Dict[EventKind, Exception] = {}
        self.calls: List[tuple] = []
        self.rendezvous: Optional[int] = None
        self._arrivals = 0
        self._released = asyncio.Event()

    def add(self, *events: RawEvent) -> None:
        for event in events:
            self.events.setdefault(event.kind, []).append(event)

    def fail(self, kind: EventKind, error: Union[Exception, str] = "boom") -> None:
        if isinstance(error, str):
            error = EventSourceError(error, {"kind": kind.value})
        self.failures[kind] = error

    async def fetch_events(self, kind: EventKind, start_version: int, limit: Optional[int] = None) -> List[RawEvent]:
        self.calls.append((kind, start_version, limit))

        if self.rendezvous:
            self._arrivals += 1
            if self._arrivals >= self.rendezvous:
                self._released.set()
            await self._released.wait()

        if kind in self.failures:
            raise self.failures[kind]

        matching = sorted(
            (e for e in self.events.get(kind, []) if e.transaction_version >= start_version),
            key=lambda e: e.transaction_version,
        )
        return matching[:limit] if limit else matching

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None
