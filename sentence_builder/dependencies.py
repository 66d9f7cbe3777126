"""
FastAPI dependencies resolving the service objects built in the app lifespan.
"""

from fastapi import HTTPException, Request

from sentence_builder.services.ingest import TextIngestor
from sentence_builder.services.orchestrator import GenerationOrchestrator
from sentence_builder.services.storage import AggregateStore


def get_store(request: Request) -> AggregateStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Storage not initialized")
    return store


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Generation service not initialized")
    return orchestrator


def get_ingestor(request: Request) -> TextIngestor:
    ingestor = getattr(request.app.state, "ingestor", None)
    if ingestor is None:
        raise HTTPException(status_code=503, detail="Import service not initialized")
    return ingestor
