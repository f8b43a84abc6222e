"""
Schemas for the indexer trigger and status endpoints.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from charity_indexer.indexer.core.types import Checkpoint, SyncResult


class SyncRunResponse(BaseModel):
    """Result of one triggered sync pass."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    synced_to_version: str = Field(alias="syncedToVersion")
    previous_version: str = Field(alias="previousVersion")
    checkpoint_advanced: bool = Field(alias="checkpointAdvanced")
    stats: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncRunResponse":
        # Versions are u64 on-chain; strings keep JSON consumers exact
        return cls(
            success=result.success,
            message=result.message,
            synced_to_version=str(result.synced_to_version),
            previous_version=str(result.previous_version),
            checkpoint_advanced=result.checkpoint_advanced,
            stats=result.stats.as_dict(),
        )


class CheckpointResponse(BaseModel):
    """Stored checkpoint of a processor."""
    model_config = ConfigDict(populate_by_name=True)

    processor_name: str = Field(alias="processorName")
    last_processed_version: str = Field(alias="lastProcessedVersion")
    state: str
    checked_at: Optional[datetime] = Field(default=None, alias="checkedAt")

    @classmethod
    def from_checkpoint(cls, checkpoint: Checkpoint, checked_at: datetime) -> "CheckpointResponse":
        return cls(
            processor_name=checkpoint.processor_name,
            last_processed_version=str(checkpoint.version),
            state=checkpoint.state.value,
            checked_at=checked_at,
        )
