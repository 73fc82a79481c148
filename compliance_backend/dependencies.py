from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException

from .config import load_settings
from .csv_store import ExtractStore
from .persistence import SummaryStore
from .services.llm import CompletionClient, build_completion_client
from .services.mcp import build_mcp_service

settings = load_settings()
extract_store = ExtractStore(settings.extracts_csv_path, settings.keywords_csv_path)
summary_store = SummaryStore(settings.summary_db_path)
mcp_service = build_mcp_service(
    settings.mcp_base_url,
    timeout=settings.mcp_timeout,
    latency=settings.mcp_simulated_latency,
)
_completion_client: Optional[CompletionClient] = None


def get_extract_store() -> ExtractStore:
    return extract_store


def get_summary_store() -> SummaryStore:
    return summary_store


def get_mcp_service() -> Any:
    return mcp_service


def get_completion_client() -> CompletionClient:
    global _completion_client
    if not settings.llm_configured:
        raise HTTPException(status_code=503, detail="LLM not configured")
    if _completion_client is None:
        _completion_client = build_completion_client(settings)
    return _completion_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    await summary_store.init()
    yield
