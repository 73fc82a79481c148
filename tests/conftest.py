"""
Shared pytest fixtures for the compliance research backend.

Provides scripted LLM clients, stub MCP services and CSV/SQLite stores
rooted in temporary directories.
"""

import os
import tempfile

# Settings are loaded when compliance_backend.dependencies is imported.
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="compliance-test-"))

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from compliance_backend.csv_store import EXTRACT_COLUMNS, ExtractStore, write_csv
from compliance_backend.persistence import SummaryStore
from compliance_backend.schemas import Extract
from compliance_backend.services.mcp import MCPResponse


# ============================================================================
# LLM stubs
# ============================================================================

class ScriptedLLM:
    """Completion client returning canned responses in call order."""

    def __init__(self, responses: Sequence[Any]) -> None:
        self._responses = list(responses)
        self.prompts: List[str] = []

    async def complete(self, prompt: str, **kwargs: Any) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError(f"Unexpected completion call #{len(self.prompts)}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response

    @property
    def remaining(self) -> int:
        return len(self._responses)


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm([...responses]) -> ScriptedLLM."""
    return ScriptedLLM


def keyword_payload(primary=(), secondary=(), generated=(), category="Capital Adequacy") -> Dict[str, Any]:
    return {
        "primary": list(primary),
        "secondary": list(secondary),
        "generated": list(generated),
        "category": category,
    }


def quality_payload(score: int, recommendation: str, issues=()) -> Dict[str, Any]:
    return {
        "score": score,
        "coverage": score,
        "relevance": score,
        "completeness": score,
        "recommendation": recommendation,
        "issues": list(issues),
    }


@pytest.fixture
def keyword_json():
    return keyword_payload


@pytest.fixture
def quality_json():
    return quality_payload


# ============================================================================
# MCP stubs
# ============================================================================

def make_mcp(
    baseline: Optional[Dict[str, List[str]]] = None,
    results: Optional[List[Dict[str, Any]]] = None,
) -> MagicMock:
    baseline = baseline if baseline is not None else {
        "primary": ["basel iii"],
        "secondary": ["capital"],
        "emerging": [],
    }
    mcp = MagicMock()
    mcp.keywords_gen = AsyncMock(
        return_value=MCPResponse(function="keywords_gen", result={"keywords": baseline})
    )
    mcp.content_search = AsyncMock(
        return_value=MCPResponse(function="content_search", result={"results": list(results or [])})
    )
    mcp.get_functions = MagicMock(return_value=[{"name": "content_search"}])
    return mcp


@pytest.fixture
def mock_mcp():
    """Factory: mock_mcp(baseline=..., results=...) -> MagicMock with async tool methods."""
    return make_mcp


def make_extract(
    extract_id: int,
    title: str,
    relevance: int = 80,
    *,
    category: str = "Capital Adequacy",
    keywords: Sequence[str] = ("capital",),
    effective_date: Optional[str] = "2019-01-01",
    jurisdiction: str = "Federal",
    priority: str = "High Priority",
) -> Extract:
    return Extract(
        id=extract_id,
        title=title,
        source="12 CFR Part 3",
        excerpt=f"Excerpt for {title}",
        category=category,
        jurisdiction=jurisdiction,
        priority=priority,
        effective_date=effective_date,
        last_updated="Dec 15, 2023",
        relevance_score=relevance,
        keywords=list(keywords),
        full_text=f"Full text for {title} covering capital ratios.",
    )


@pytest.fixture
def extract_factory():
    return make_extract


@pytest.fixture
def stub_extract_store():
    """Factory: stub_extract_store([extracts]) -> store whose search returns them."""
    def _create(extracts: Optional[List[Extract]] = None) -> MagicMock:
        store = MagicMock()
        store.search_extracts = AsyncMock(return_value=list(extracts or []))
        return store

    return _create


# ============================================================================
# Real stores in temporary directories
# ============================================================================

SEED_EXTRACTS = [
    make_extract(
        1,
        "Basel III: Minimum Capital Requirements",
        95,
        keywords=("capital requirements", "basel iii", "tier 1"),
        effective_date="2019-01-01",
    ),
    make_extract(
        2,
        "Tier 1 Leverage Ratio Requirements",
        87,
        category="Leverage Ratio",
        keywords=("leverage ratio", "tier 1"),
        effective_date="2018-01-01",
        priority="Medium",
    ),
    make_extract(
        3,
        "TLAC Holdings Requirements",
        78,
        category="TLAC",
        keywords=("tlac", "g-sib"),
        effective_date="2022-01-01",
        jurisdiction="G-SIB",
        priority="Low",
    ),
]


@pytest.fixture
def csv_paths(tmp_path: Path):
    from compliance_backend.csv_store import extract_to_row

    extracts_path = tmp_path / "extracts.csv"
    keywords_path = tmp_path / "keywords.csv"
    write_csv(extracts_path, [extract_to_row(e) for e in SEED_EXTRACTS], EXTRACT_COLUMNS)
    write_csv(
        keywords_path,
        [
            {"id": "1", "term": "capital requirements", "category": "Capital", "frequency": "4"},
            {"id": "2", "term": "basel iii", "category": "Regulation", "frequency": "2"},
            {"id": "3", "term": "tier 1", "category": "Capital", "frequency": "0"},
        ],
        ("id", "term", "category", "frequency"),
    )
    return extracts_path, keywords_path


@pytest.fixture
def extract_store(csv_paths):
    extracts_path, keywords_path = csv_paths
    return ExtractStore(extracts_path, keywords_path)


@pytest.fixture
def summary_store(tmp_path: Path):
    return SummaryStore(tmp_path / "summaries.db")
