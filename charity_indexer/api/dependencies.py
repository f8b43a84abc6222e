"""
API dependencies for FastAPI endpoints.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

import structlog

from charity_indexer.core.config import settings
from charity_indexer.indexer.checkpoint import CheckpointStore
from charity_indexer.indexer.sync import SyncOrchestrator
from charity_indexer.services.aptos_client import AptosEventClient, get_aptos_client


logger = structlog.get_logger(__name__)


trigger_auth_scheme = HTTPBearer(auto_error=False)


async def verify_trigger_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(trigger_auth_scheme),
) -> None:
    """Require the configured bearer token when one is set."""
    if not settings.trigger_token:
        return

    supplied = credentials.credentials if credentials else ""
    if not secrets.compare_digest(supplied, settings.trigger_token):
        logger.warning("Rejected trigger call with bad token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"success": False, "error": "Invalid or missing trigger token"},
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_event_client() -> AptosEventClient:
    """Shared Aptos event client."""
    return await get_aptos_client()


async def get_checkpoint_store() -> CheckpointStore:
    return CheckpointStore()


async def get_orchestrator(
    event_client: AptosEventClient = Depends(get_event_client),
    checkpoint_store: CheckpointStore = Depends(get_checkpoint_store),
) -> SyncOrchestrator:
    """A fresh orchestrator per call; passes share nothing but the datastore."""
    return SyncOrchestrator(event_client=event_client, checkpoint_store=checkpoint_store)
