"""
Core types for event indexing.
"""

from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .events import EventKind, RawEvent


class SyncState(Enum):
    """Where the orchestrator is within a single pass."""
    IDLE = "idle"
    READING_CHECKPOINT = "reading_checkpoint"
    FETCHING_EVENTS = "fetching_events"
    APPLYING_EVENTS = "applying_events"
    ADVANCING_CHECKPOINT = "advancing_checkpoint"
    DONE = "done"
    FAILED = "failed"


class CheckpointState(Enum):
    """Whether a processor has ever committed a checkpoint."""
    NOT_STARTED = "not_started"
    ACTIVE = "active"


class HandlerOutcome(Enum):
    """Result of applying one event."""
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Checkpoint:
    """Resume point of a processor."""
    processor_name: str
    version: int = 0
    state: CheckpointState = CheckpointState.NOT_STARTED

    @property
    def start_version(self) -> int:
        return self.version + 1

    @classmethod
    def not_started(cls, processor_name: str) -> "Checkpoint":
        return cls(processor_name=processor_name)


@dataclass
class KindFetchResult:
    """One fan-out branch: events for a kind, or the error that replaced them."""
    kind: EventKind
    events: List[RawEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProcessingStats:
    """Statistics for one sync pass."""
    events_fetched: int = 0
    events_applied: int = 0
    events_duplicate: int = 0
    events_skipped: int = 0
    events_ignored: int = 0
    events_failed: int = 0
    campaigns_upserted: int = 0
    donations_recorded: int = 0
    claims_recorded: int = 0
    fetch_errors: Dict[str, str] = field(default_factory=dict)
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None

    def record(self, outcome: HandlerOutcome) -> None:
        if outcome is HandlerOutcome.APPLIED:
            self.events_applied += 1
        elif outcome is HandlerOutcome.DUPLICATE:
            self.events_duplicate += 1
        elif outcome is HandlerOutcome.SKIPPED:
            self.events_skipped += 1
        else:
            self.events_ignored += 1

    def as_dict(self) -> dict:
        return {
            "events_fetched": self.events_fetched,
            "events_applied": self.events_applied,
            "events_duplicate": self.events_duplicate,
            "events_skipped": self.events_skipped,
            "events_ignored": self.events_ignored,
            "events_failed": self.events_failed,
            "campaigns_upserted": self.campaigns_upserted,
            "donations_recorded": self.donations_recorded,
            "claims_recorded": self.claims_recorded,
            "fetch_errors": dict(self.fetch_errors),
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "finish_time": self.finish_time.isoformat() if self.finish_time else None,
        }


@dataclass
class SyncResult:
    """Summary returned by one orchestrator pass."""
    success: bool
    message: str
    synced_to_version: int
    previous_version: int
    checkpoint_advanced: bool = False
    stats: ProcessingStats = field(default_factory=ProcessingStats)
