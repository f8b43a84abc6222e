"""
Database models for the charity indexer.

Relational mirrors of on-chain charity contract state, written only by the
event transformers and the checkpoint store.
"""

from .base import Base, BaseModel, TimestampMixin
from .indexer_status import ProcessorCheckpoint
from .campaign import Campaign
from .donation import Donation
from .funds_claimed import FundsClaimed

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "ProcessorCheckpoint",
    "Campaign",
    "Donation",
    "FundsClaimed",
]
