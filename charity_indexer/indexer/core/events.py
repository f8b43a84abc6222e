"""
Event kinds, raw events and typed payloads for the charity contract.

Payloads form a tagged union: every tracked ``EventKind`` maps to one
dataclass describing its ``data`` shape. Aptos serializes u64 values as
decimal strings, so numeric fields are coerced here rather than in handlers.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from charity_indexer.core.exceptions import EventPayloadError, UnknownEventKindError


class EventKind(Enum):
    """Event kinds emitted by the ``charity`` Move module."""

    CAMPAIGN_CREATED = "CampaignCreated"
    DONATION = "DonationEvent"
    FUNDS_CLAIMED = "FundsClaimed"

    # Retired with the staking and governance modules
    STAKED = "Staked"
    UNSTAKED = "Unstaked"
    REWARDS_CLAIMED = "RewardsClaimed"
    PROPOSAL_CREATED = "ProposalCreated"
    VOTE_CAST = "VoteCast"

    @property
    def is_retired(self) -> bool:
        return self in RETIRED_EVENT_KINDS

    @classmethod
    def from_type_tag(cls, type_tag: str) -> "EventKind":
        """Resolve ``<address>::<module>::<Name>`` (or a bare name) to a kind."""
        name = type_tag.rsplit("::", 1)[-1]
        # Generic instantiations look like Name<T>
        name = name.split("<", 1)[0]
        try:
            return cls(name)
        except ValueError:
            raise UnknownEventKindError(type_tag) from None


RETIRED_EVENT_KINDS = frozenset({
    EventKind.STAKED,
    EventKind.UNSTAKED,
    EventKind.REWARDS_CLAIMED,
    EventKind.PROPOSAL_CREATED,
    EventKind.VOTE_CAST,
})


def _to_int(value: Any, default: Optional[int] = None) -> int:
    if value is None:
        if default is None:
            raise ValueError("missing value")
        return default
    if isinstance(value, bool):
        raise ValueError(f"expected integer, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class RawEvent:
    """An event row as served by the Aptos indexer. Never written back."""

    account_address: str
    creation_number: int
    sequence_number: int
    data: Dict[str, Any]
    type: str
    transaction_version: int
    transaction_block_height: int
    indexed_type: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RawEvent":
        """Build from a GraphQL ``events`` row; raises KeyError/ValueError on bad rows."""
        return cls(
            account_address=row["account_address"],
            creation_number=_to_int(row.get("creation_number"), 0),
            sequence_number=_to_int(row.get("sequence_number"), 0),
            data=row.get("data") or {},
            type=row["type"],
            transaction_version=_to_int(row["transaction_version"]),
            transaction_block_height=_to_int(row.get("transaction_block_height"), 0),
            indexed_type=row.get("indexed_type"),
        )

    @property
    def type_tag(self) -> str:
        return self.indexed_type or self.type

    @property
    def kind(self) -> EventKind:
        return EventKind.from_type_tag(self.type_tag)


def unix_seconds_to_datetime(value: Any) -> datetime:
    return datetime.fromtimestamp(_to_int(value), tz=timezone.utc)


@dataclass(frozen=True)
class CampaignCreatedData:
    campaign_id: str
    creator: str
    description: str
    goal_amount: int
    end_timestamp_secs: int
    created_at: datetime
    kind: EventKind = field(default=EventKind.CAMPAIGN_CREATED, init=False)


@dataclass(frozen=True)
class DonationData:
    campaign_id: str
    donor: str
    amount: int
    heart_tokens_minted: int
    kind: EventKind = field(default=EventKind.DONATION, init=False)


@dataclass(frozen=True)
class FundsClaimedData:
    campaign_id: str
    creator: str
    amount_claimed: int
    claimed_at: datetime
    kind: EventKind = field(default=EventKind.FUNDS_CLAIMED, init=False)


@dataclass(frozen=True)
class RetiredEventData:
    """Payload of a retired kind; kept opaque since nothing reads it."""

    kind: EventKind
    data: Dict[str, Any]


EventPayload = Union[CampaignCreatedData, DonationData, FundsClaimedData, RetiredEventData]


def _parse_campaign_created(data: Dict[str, Any]) -> CampaignCreatedData:
    return CampaignCreatedData(
        campaign_id=str(_to_int(data["campaign_id"])),
        creator=data["creator"],
        description=data.get("description") or "",
        goal_amount=_to_int(data["goal_amount"]),
        end_timestamp_secs=_to_int(data["end_timestamp_secs"]),
        created_at=unix_seconds_to_datetime(data["created_at"]),
    )


def _parse_donation(data: Dict[str, Any]) -> DonationData:
    amount = _to_int(data["amount"])
    if amount < 0:
        raise ValueError("negative donation amount")
    return DonationData(
        campaign_id=str(_to_int(data["campaign_id"])),
        donor=data["donor"],
        amount=amount,
        heart_tokens_minted=_to_int(data.get("heart_tokens_minted"), 0),
    )


def _parse_funds_claimed(data: Dict[str, Any]) -> FundsClaimedData:
    return FundsClaimedData(
        campaign_id=str(_to_int(data["campaign_id"])),
        creator=data["creator"],
        amount_claimed=_to_int(data["amount_claimed"]),
        claimed_at=unix_seconds_to_datetime(data["claimed_at"]),
    )


_PARSERS = {
    EventKind.CAMPAIGN_CREATED: _parse_campaign_created,
    EventKind.DONATION: _parse_donation,
    EventKind.FUNDS_CLAIMED: _parse_funds_claimed,
}


def parse_payload(event: RawEvent, kind: Optional[EventKind] = None) -> EventPayload:
    """
    Decode ``event.data`` into the payload type of its kind.

    Args:
        event: Raw event from the source
        kind: Expected kind; resolved from the type tag when omitted

    Raises:
        UnknownEventKindError: If the type tag names no known kind
        EventPayloadError: If a required field is missing or malformed
    """
    kind = kind or event.kind
    if kind.is_retired:
        return RetiredEventData(kind=kind, data=dict(event.data))

    try:
        return _PARSERS[kind](event.data)
    except KeyError as e:
        raise EventPayloadError(kind.value, event.transaction_version, f"missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise EventPayloadError(kind.value, event.transaction_version, str(e)) from e
