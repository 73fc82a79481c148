"""
API routes for the research chat assistant.

Provides:
- /api/ai/chat - Run the research workflow and return the answer with its trail
- /api/ai/chat/stream - Same workflow as newline-delimited JSON progress events
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ..csv_store import ExtractStore
from ..dependencies import get_completion_client, get_extract_store, get_mcp_service, settings
from ..schemas import ChatRequest, ChatResponse
from ..services.llm import CompletionClient
from ..services.research import run_research_workflow, stream_research_answer

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ai", tags=["chat"])


def _require_message(req: ChatRequest) -> str:
    message = req.message.strip() if isinstance(req.message, str) else ""
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")
    return message


@router.post("/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    mcp: Any = Depends(get_mcp_service),
    store: ExtractStore = Depends(get_extract_store),
    llm: CompletionClient = Depends(get_completion_client),
) -> ChatResponse:
    message = _require_message(req)
    try:
        result = await run_research_workflow(
            message,
            mcp=mcp,
            extract_store=store,
            llm=llm,
            max_attempts=settings.research_max_attempts,
            keyword_limit=settings.research_keyword_limit,
            max_documents=settings.research_max_documents,
        )
    except Exception as exc:
        logger.exception(f"AI chat failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to process AI request") from exc

    return ChatResponse(response=result.answer, workflow=result.workflow_payload())


@router.post("/chat/stream")
async def chat_stream(
    req: ChatRequest,
    mcp: Any = Depends(get_mcp_service),
    store: ExtractStore = Depends(get_extract_store),
    llm: CompletionClient = Depends(get_completion_client),
):
    """
    Streaming research chat.

    Returns newline-delimited JSON with:
    - {"type": "progress", "steps": [...]} - Step progress updates
    - {"type": "final", "response": "...", "workflow": {...}} - Final result
    - {"type": "error", "error": "..."} - Workflow failure
    """
    message = _require_message(req)

    async def event_stream():
        try:
            generator = stream_research_answer(
                message,
                mcp=mcp,
                extract_store=store,
                llm=llm,
                max_attempts=settings.research_max_attempts,
                keyword_limit=settings.research_keyword_limit,
                max_documents=settings.research_max_documents,
            )
            async for chunk in generator:
                yield chunk
        except Exception as e:
            logger.exception(f"Research streaming failed: {e}")
            yield json.dumps({"type": "error", "error": "Failed to process AI request"}) + "\n"

    return StreamingResponse(event_stream(), media_type="application/x-ndjson")
