from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_summary_store
from ..persistence import SummaryStore
from ..schemas import Summary, SummaryCreate

router = APIRouter(prefix="/api/summaries", tags=["summaries"])


@router.get("", response_model=List[Summary])
async def list_summaries(store: SummaryStore = Depends(get_summary_store)) -> List[Summary]:
    return await store.list_summaries()


@router.post("", response_model=Summary, status_code=201)
async def create_summary(
    payload: SummaryCreate,
    store: SummaryStore = Depends(get_summary_store),
) -> Summary:
    return await store.create_summary(payload)


@router.get("/{summary_id}", response_model=Summary)
async def get_summary(summary_id: int, store: SummaryStore = Depends(get_summary_store)) -> Summary:
    summary = await store.get_summary(summary_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return summary
