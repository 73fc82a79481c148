"""
API routes for the MCP tool surface.

Provides:
- GET  /api/mcp/functions - Available tool functions
- POST /api/mcp/query-gen
- POST /api/mcp/content-search
- POST /api/mcp/keywords-gen
- POST /api/mcp/summary
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_mcp_service
from ..schemas import (
    ContentSearchRequest,
    KeywordsGenRequest,
    MCPResult,
    QueryGenRequest,
    SummaryRequest,
)
from ..services.mcp import MCPResponse, MCPServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/mcp", tags=["mcp"])


def _to_result(response: MCPResponse) -> MCPResult:
    return MCPResult(**response.to_dict())


def _failure(function: str, exc: Exception) -> HTTPException:
    logger.exception(f"MCP {function} failed: {exc}")
    return HTTPException(status_code=502, detail=f"MCP {function} failed")


@router.get("/functions")
async def list_functions(mcp: Any = Depends(get_mcp_service)) -> List[Dict[str, Any]]:
    return mcp.get_functions()


@router.post("/query-gen", response_model=MCPResult)
async def query_gen(req: QueryGenRequest, mcp: Any = Depends(get_mcp_service)) -> MCPResult:
    try:
        return _to_result(await mcp.query_gen(req.user_query, req.context or ""))
    except MCPServiceError as exc:
        raise _failure("query_gen", exc) from exc


@router.post("/content-search", response_model=MCPResult)
async def content_search(req: ContentSearchRequest, mcp: Any = Depends(get_mcp_service)) -> MCPResult:
    try:
        return _to_result(await mcp.content_search(req.query, req.filters))
    except MCPServiceError as exc:
        raise _failure("content_search", exc) from exc


@router.post("/keywords-gen", response_model=MCPResult)
async def keywords_gen(req: KeywordsGenRequest, mcp: Any = Depends(get_mcp_service)) -> MCPResult:
    try:
        return _to_result(await mcp.keywords_gen(req.content, req.category))
    except MCPServiceError as exc:
        raise _failure("keywords_gen", exc) from exc


@router.post("/summary", response_model=MCPResult)
async def summary(req: SummaryRequest, mcp: Any = Depends(get_mcp_service)) -> MCPResult:
    try:
        return _to_result(await mcp.summary(req.content, req.options))
    except MCPServiceError as exc:
        raise _failure("summary", exc) from exc
