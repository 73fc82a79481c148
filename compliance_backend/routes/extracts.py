"""
API routes for regulatory extracts.

Provides:
- GET  /api/extracts - All extracts
- GET  /api/extracts/search?q= - Term search over title/excerpt/full text/keywords
- POST /api/extracts/filter - Category/jurisdiction/priority/keyword/date filters
- GET  /api/extracts/{id} - One extract
- POST /api/extracts - Append an extract
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..csv_store import ExtractStore
from ..dependencies import get_extract_store
from ..schemas import Extract, ExtractCreate, ExtractFilter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/extracts", tags=["extracts"])


@router.get("", response_model=List[Extract])
async def list_extracts(store: ExtractStore = Depends(get_extract_store)) -> List[Extract]:
    return await store.list_extracts()


@router.get("/search", response_model=List[Extract])
async def search_extracts(
    q: Optional[str] = Query(default=None),
    store: ExtractStore = Depends(get_extract_store),
) -> List[Extract]:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return await store.search_extracts(q)


@router.post("/filter", response_model=List[Extract])
async def filter_extracts(
    filters: ExtractFilter,
    store: ExtractStore = Depends(get_extract_store),
) -> List[Extract]:
    return await store.filter_extracts(filters)


@router.get("/{extract_id}", response_model=Extract)
async def get_extract(extract_id: int, store: ExtractStore = Depends(get_extract_store)) -> Extract:
    extract = await store.get_extract(extract_id)
    if extract is None:
        raise HTTPException(status_code=404, detail="Extract not found")
    return extract


@router.post("", response_model=Extract, status_code=201)
async def create_extract(
    payload: ExtractCreate,
    store: ExtractStore = Depends(get_extract_store),
) -> Extract:
    try:
        return await store.create_extract(payload)
    except OSError as exc:
        logger.exception(f"Failed to write extract: {exc}")
        raise HTTPException(status_code=500, detail="Failed to create extract") from exc
