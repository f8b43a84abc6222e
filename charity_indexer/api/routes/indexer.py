"""
Indexer routes: the sync trigger and checkpoint status.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

import structlog

from charity_indexer.core.config import settings
from charity_indexer.core.exceptions import CheckpointError
from charity_indexer.indexer.checkpoint import CheckpointStore
from charity_indexer.indexer.sync import SyncOrchestrator
from charity_indexer.api.dependencies import (
    get_checkpoint_store,
    get_orchestrator,
    verify_trigger_token,
)
from charity_indexer.api.schemas.common import ErrorResponse
from charity_indexer.api.schemas.indexer import CheckpointResponse, SyncRunResponse


logger = structlog.get_logger(__name__)

router = APIRouter()


@router.api_route(
    "/run",
    methods=["POST", "GET"],
    response_model=SyncRunResponse,
    responses={500: {"model": ErrorResponse}},
    dependencies=[Depends(verify_trigger_token)],
    summary="Run Indexer Pass",
    description="Run exactly one synchronization pass and report the synced version",
)
async def run_indexer(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Run one indexer pass synchronously."""
    try:
        result = await orchestrator.run_pass()
    except Exception as e:
        logger.error("Indexer run failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=str(e) or "Unknown error occurred",
                error_code=getattr(e, "code", None),
            ).model_dump(exclude_none=True),
        )

    return SyncRunResponse.from_result(result)


@router.get(
    "/status",
    response_model=CheckpointResponse,
    summary="Indexer Checkpoint",
    description="Get the stored checkpoint of the indexer processor",
)
async def get_indexer_status(
    checkpoint_store: CheckpointStore = Depends(get_checkpoint_store),
):
    """Return the processor checkpoint; 503 if the store is unreachable."""
    try:
        checkpoint = await checkpoint_store.read_strict(settings.indexer_processor_name)
    except CheckpointError as e:
        logger.error("Failed to read checkpoint", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"success": False, "error": e.message},
        )

    return CheckpointResponse.from_checkpoint(checkpoint, datetime.now(timezone.utc))
