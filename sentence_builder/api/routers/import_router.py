"""
Text Import Router
Feeds raw text or a server-side .txt file into the aggregate store and models,
and exposes the file import history
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...dependencies import get_ingestor, get_store
from ...services.ingest import TextIngestor
from ...services.storage import AggregateStore, ImportedFileRecord

router = APIRouter(prefix="/import", tags=["import"])


class ImportTextRequest(BaseModel):
    text: str = Field(..., min_length=1)
    # orders 1-2 come from word pairs, only longer n-grams are stored
    ngram_n: Optional[int] = Field(default=None, ge=3, le=5)


class ImportFileRequest(BaseModel):
    path: str = Field(..., description="Path readable by the service process")
    ngram_n: Optional[int] = Field(default=None, ge=3, le=5)


def _file_to_dict(record: ImportedFileRecord) -> dict:
    return {
        "id": record.file_id,
        "filename": record.filename,
        "file_path": record.file_path,
        "word_count": record.word_count,
        "status": record.status.value,
        "error_message": record.error_message,
        "imported_at": record.imported_at.isoformat(),
    }


@router.post("/text")
def import_text(req: ImportTextRequest, ingestor: TextIngestor = Depends(get_ingestor)):
    summary = ingestor.ingest(req.text, ngram_n=req.ngram_n)
    return {"ok": True, "data": asdict(summary)}


@router.post("/file")
def import_file(req: ImportFileRequest, ingestor: TextIngestor = Depends(get_ingestor)):
    try:
        summary = ingestor.ingest_file(req.path, ngram_n=req.ngram_n)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"File not found: {req.path}")
    return {"ok": True, "data": asdict(summary)}


@router.get("/files")
def list_files(store: AggregateStore = Depends(get_store)):
    """Import history, newest first"""
    files = [_file_to_dict(record) for record in store.list_imported_files()]
    return {"ok": True, "data": {"files": files, "count": len(files)}}


@router.delete("/files/{file_id}")
def delete_file(file_id: str, store: AggregateStore = Depends(get_store)):
    """Remove a history entry; stored word counts are kept"""
    if not store.delete_imported_file(file_id):
        raise HTTPException(status_code=404, detail=f"Imported file not found: {file_id}")
    return {"ok": True, "data": {"deleted": file_id}}
