"""
Core indexer types.
"""

from .events import (
    EventKind,
    RETIRED_EVENT_KINDS,
    RawEvent,
    CampaignCreatedData,
    DonationData,
    FundsClaimedData,
    RetiredEventData,
    EventPayload,
    parse_payload,
)
from .types import (
    SyncState,
    CheckpointState,
    HandlerOutcome,
    Checkpoint,
    KindFetchResult,
    ProcessingStats,
    SyncResult,
)

__all__ = [
    "EventKind",
    "RETIRED_EVENT_KINDS",
    "RawEvent",
    "CampaignCreatedData",
    "DonationData",
    "FundsClaimedData",
    "RetiredEventData",
    "EventPayload",
    "parse_payload",
    "SyncState",
    "CheckpointState",
    "HandlerOutcome",
    "Checkpoint",
    "KindFetchResult",
    "ProcessingStats",
    "SyncResult",
]
