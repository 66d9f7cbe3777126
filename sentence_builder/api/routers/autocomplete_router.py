from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...config import settings
from ...dependencies import get_orchestrator
from ...services.orchestrator import GenerationOrchestrator

router = APIRouter(prefix="/autocomplete", tags=["autocomplete"])


class SuggestRequest(BaseModel):
    context: str = Field(..., description="Text typed so far")
    order: int = Field(default=settings.DEFAULT_NGRAM_N, ge=1, le=5)
    max_suggestions: int = Field(default=settings.DEFAULT_MAX_SUGGESTIONS, ge=1, le=50)


@router.post("/suggest")
def suggest(req: SuggestRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    suggestions = orchestrator.suggest(req.order, req.context, req.max_suggestions)
    return {
        "ok": True,
        "data": {
            "context": req.context,
            "order": req.order,
            "suggestions": suggestions,
        },
    }
