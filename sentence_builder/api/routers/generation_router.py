from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...config import get_algorithm_tag, settings
from ...dependencies import get_orchestrator
from ...services.orchestrator import GenerationOrchestrator

router = APIRouter(prefix="/generate", tags=["generate"])


class GenerateRequest(BaseModel):
    order: int = Field(default=1, ge=1, le=5, description="1/2 = Markov chain, 3-5 = N-gram")
    start_word: Optional[str] = Field(default=None, description="Seed word(s); random starter when empty")
    max_words: int = Field(default=settings.DEFAULT_MAX_WORDS, ge=1, le=settings.MAX_WORDS_LIMIT)


class TrainRequest(BaseModel):
    text: str = Field(..., min_length=1)
    order: int = Field(default=1, ge=1, le=5)


class ResetRequest(BaseModel):
    order: Optional[int] = Field(default=None, ge=1, le=5, description="Omit to reset every model")


def _model_state(orchestrator: GenerationOrchestrator, order: int) -> dict:
    return {
        "order": order,
        "algorithm": get_algorithm_tag(order),
        "trained": orchestrator.is_trained(order),
        "state_count": orchestrator.state_count(order),
    }


@router.post("/text")
def generate_text(req: GenerateRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    result = orchestrator.generate(req.order, start_token=req.start_word, max_words=req.max_words)
    return {"ok": True, "data": result.to_dict()}


@router.post("/train")
def train(req: TrainRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    orchestrator.train(req.order, req.text)
    return {"ok": True, "data": _model_state(orchestrator, req.order)}


@router.get("/status/{order}")
async def model_status(order: int, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    return {"ok": True, "data": _model_state(orchestrator, order)}


@router.post("/reset")
async def reset(req: ResetRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    orchestrator.reset(req.order)
    return {"ok": True, "data": {"reset": "all" if req.order is None else get_algorithm_tag(req.order)}}
