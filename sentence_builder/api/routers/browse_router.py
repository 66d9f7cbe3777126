"""
Browse Router
Paged views over the stored word and word pair counts
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ...dependencies import get_store
from ...services.errors import InvalidArgumentError
from ...services.storage import AggregateStore

router = APIRouter(prefix="/browse", tags=["browse"])

MAX_PAGE_SIZE = 1000


def _check_paging(offset: int, limit: int):
    if offset < 0 or not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidArgumentError(
            f"offset must be >= 0 and limit between 1 and {MAX_PAGE_SIZE}",
            details={"offset": offset, "limit": limit},
        )


@router.get("/words")
def list_words(
    offset: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    store: AggregateStore = Depends(get_store),
):
    """Words ordered by total count, highest first; ``search`` is a prefix"""
    _check_paging(offset, limit)
    words = [
        {
            "word": w.text,
            "total_count": w.total_count,
            "sentence_start_count": w.sentence_start_count,
            "sentence_end_count": w.sentence_end_count,
        }
        for w in store.list_words(offset=offset, limit=limit, search=search)
    ]
    return {
        "ok": True,
        "data": {"words": words, "offset": offset, "limit": limit, "total": store.word_count()},
    }


@router.get("/pairs")
def list_pairs(
    offset: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    store: AggregateStore = Depends(get_store),
):
    """Word pairs ordered by count, highest first; ``search`` is a first-word prefix"""
    _check_paging(offset, limit)
    pairs = [
        {"first": p.first, "second": p.second, "count": p.count, "probability": p.probability}
        for p in store.list_word_pairs(offset=offset, limit=limit, search=search)
    ]
    return {"ok": True, "data": {"pairs": pairs, "offset": offset, "limit": limit}}
