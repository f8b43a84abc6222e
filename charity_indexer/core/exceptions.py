"""
Custom exception classes for the indexer.
Provides structured error handling across all modules.
"""

from typing import Any, Optional, Dict


class CharityIndexerException(Exception):
    """Base exception class for the charity indexer."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(CharityIndexerException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DatabaseError(CharityIndexerException):
    """Raised when there's a database error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class EventSourceError(CharityIndexerException):
    """Raised when the Aptos indexer cannot be queried or answers garbage."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "EVENT_SOURCE_ERROR", details)


class IndexerError(CharityIndexerException):
    """Raised when a sync pass cannot continue."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INDEXER_ERROR", details)


class CheckpointError(CharityIndexerException):
    """Raised when the checkpoint store cannot be read or written."""

    def __init__(self, processor_name: str, reason: str):
        super().__init__(
            f"Checkpoint failure for processor {processor_name}: {reason}",
            "CHECKPOINT_ERROR",
            {"processor_name": processor_name, "reason": reason}
        )


class ValidationError(CharityIndexerException):
    """Raised when data validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(CharityIndexerException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


# Event-specific exceptions
class UnknownEventKindError(ValidationError):
    """Raised when an event type tag matches no known event kind."""

    def __init__(self, type_tag: str):
        super().__init__(
            f"Unknown event kind: {type_tag}",
            {"type_tag": type_tag}
        )


class EventPayloadError(ValidationError):
    """Raised when an event payload is missing fields or has bad values."""

    def __init__(self, kind: str, transaction_version: int, reason: str):
        super().__init__(
            f"Invalid {kind} payload at version {transaction_version}: {reason}",
            {"kind": kind, "transaction_version": transaction_version, "reason": reason}
        )


class CampaignNotFoundError(NotFoundError):
    """Raised when a campaign is not found."""

    def __init__(self, campaign_id: str):
        super().__init__(
            f"Campaign not found: {campaign_id}",
            {"campaign_id": campaign_id}
        )
