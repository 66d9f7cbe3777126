"""
Model Reload Router
Rebuilds the in-memory models from the persisted aggregate counts
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...dependencies import get_orchestrator
from ...services.errors import SentenceBuilderError
from ...services.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reload", tags=["reload"])


class ReloadRequest(BaseModel):
    """Request body for reload endpoint"""
    force: bool = True


class ReloadResponse(BaseModel):
    """Response from reload endpoint"""
    success: bool
    message: str
    reloaded_models: List[str]


@router.post("/models", response_model=ReloadResponse)
def reload_models(
    request: ReloadRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Reload the Markov models from the store.

    - **force**: Rebuild even if the models were already loaded

    N-gram models are dropped and replayed from the store on next use.
    """
    try:
        logger.info(f"[Reload] Reloading models (force={request.force})...")
        orchestrator.ensure_loaded(force=request.force)

        stats = orchestrator.status()
        logger.info(f"[Reload] Models reloaded: {list(stats['models'])}")
        return ReloadResponse(
            success=True,
            message=f"Successfully reloaded {len(stats['models'])} models",
            reloaded_models=list(stats["models"]),
        )

    except SentenceBuilderError:
        raise
    except Exception as e:
        logger.error(f"[Reload] Error reloading models: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/status")
async def reload_status(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    """
    Get status of loaded models.

    Returns whether the store has been replayed and per-model statistics.
    """
    return orchestrator.status()
