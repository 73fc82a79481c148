from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..csv_store import ExtractStore
from ..dependencies import get_extract_store
from ..schemas import Keyword

router = APIRouter(prefix="/api/keywords", tags=["keywords"])


@router.get("", response_model=List[Keyword])
async def list_keywords(store: ExtractStore = Depends(get_extract_store)) -> List[Keyword]:
    return await store.list_keywords()


@router.get("/search", response_model=List[Keyword])
async def search_keywords(
    q: Optional[str] = Query(default=None),
    store: ExtractStore = Depends(get_extract_store),
) -> List[Keyword]:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter 'q' is required")
    return await store.search_keywords(q)


@router.get("/{category}", response_model=List[Keyword])
async def keywords_by_category(category: str, store: ExtractStore = Depends(get_extract_store)) -> List[Keyword]:
    return await store.keywords_by_category(category)
