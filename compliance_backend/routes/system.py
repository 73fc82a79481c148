from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ..dependencies import mcp_service, settings, summary_store
from ..services.mcp import RemoteMCPService

router = APIRouter(tags=["system"])


def _settings_snapshot() -> Dict[str, Dict[str, Any]]:
    return {
        "llm": {
            "configured": settings.llm_configured,
            "base_url": settings.llm_base_url or None,
            "model": settings.llm_model,
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
        },
        "mcp": {
            "mode": "remote" if isinstance(mcp_service, RemoteMCPService) else "mock",
            "base_url": settings.mcp_base_url,
        },
        "research": {
            "max_attempts": settings.research_max_attempts,
            "keyword_limit": settings.research_keyword_limit,
            "max_documents": settings.research_max_documents,
        },
        "storage": {
            "extracts_csv": str(settings.extracts_csv_path),
            "keywords_csv": str(settings.keywords_csv_path),
            "summary_db": str(settings.summary_db_path),
        },
    }


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "extracts_csv_present": settings.extracts_csv_path.exists(),
        "summaries": await summary_store.count_summaries(),
        "settings": _settings_snapshot(),
    }
