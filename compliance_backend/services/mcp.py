"""
MCP tool surface for regulatory research.

Implements:
- query_gen: Expand a user query into search queries
- content_search: Search regulatory content
- keywords_gen: Baseline regulatory keywords for a piece of content
- summary: Executive summary of regulatory content

MockMCPService answers from built-in fixtures. RemoteMCPService forwards
each call to an HTTP tool server.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class MCPServiceError(RuntimeError):
    """Raised when a remote tool call fails."""


@dataclass
class MCPResponse:
    function: str
    result: Dict[str, Any] = field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"function": self.function, "result": self.result}
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


MCP_FUNCTIONS: List[Dict[str, Any]] = [
    {
        "name": "query_gen",
        "description": "Generate optimized search queries for regulatory compliance research",
        "parameters": {"userQuery": "string", "context": "string (optional)"},
    },
    {
        "name": "content_search",
        "description": "Search regulatory content across multiple databases and sources",
        "parameters": {"query": "string", "filters": "object (optional)"},
    },
    {
        "name": "keywords_gen",
        "description": "Generate relevant keywords and tags for regulatory content",
        "parameters": {"content": "string", "category": "string (optional)"},
    },
    {
        "name": "summary",
        "description": "Create comprehensive summaries of regulatory content",
        "parameters": {"content": "string[]", "options": "object (optional)"},
    },
]

_CONTENT_FIXTURES: List[Dict[str, Any]] = [
    {
        "id": "reg_001",
        "title": "Basel III Capital Requirements Update",
        "excerpt": (
            "Banking organizations must maintain minimum capital ratios: common equity tier 1 capital "
            "ratio of 4.5%, tier 1 capital ratio of 6.0%, and total capital ratio of 8.0%."
        ),
        "content": (
            "Detailed framework for capital adequacy requirements under Basel III including buffer "
            "mechanisms, conservation measures, and supervisory review processes for internationally "
            "active banks."
        ),
        "source": "BIS Regulatory Guidelines",
        "relevanceScore": 95,
        "lastUpdated": "2024-12-15",
    },
    {
        "id": "reg_002",
        "title": "Liquidity Coverage Ratio Implementation",
        "excerpt": (
            "Banks must maintain sufficient high-quality liquid assets to survive a 30-day stressed "
            "funding scenario with LCR minimum of 100%."
        ),
        "content": (
            "Comprehensive guidelines on calculating LCR including eligible HQLA categories, cash outflow "
            "calculations, and regulatory reporting requirements for liquidity risk management."
        ),
        "source": "Federal Reserve Bulletin",
        "relevanceScore": 88,
        "lastUpdated": "2024-12-10",
    },
    {
        "id": "reg_003",
        "title": "Stress Testing Methodologies",
        "excerpt": (
            "Annual stress testing scenarios must include baseline, adverse, and severely adverse economic "
            "conditions with capital adequacy assessments."
        ),
        "content": (
            "Detailed methodology for conducting bank stress tests including scenario design, capital "
            "projection models, risk-weighted asset calculations, and supervisory evaluation criteria."
        ),
        "source": "ECB Banking Supervision",
        "relevanceScore": 82,
        "lastUpdated": "2024-12-08",
    },
    {
        "id": "reg_004",
        "title": "Operational Risk Management Framework",
        "excerpt": (
            "Standardised approach for operational risk capital requirements based on business indicator "
            "component and internal loss multiplier."
        ),
        "content": (
            "Framework for identifying, assessing, monitoring and controlling operational risk including "
            "governance structures, risk appetite statements, and business continuity planning requirements."
        ),
        "source": "Basel Committee Guidelines",
        "relevanceScore": 79,
        "lastUpdated": "2024-12-05",
    },
]

_BASELINE_KEYWORDS: Dict[str, List[str]] = {
    "primary": ["basel III", "capital requirements", "regulatory compliance", "banking supervision"],
    "secondary": ["risk management", "liquidity coverage", "stress testing", "prudential regulation"],
    "emerging": ["digital banking", "fintech regulation", "ESG compliance", "cyber risk"],
}

_SUMMARY_FIXTURE: Dict[str, Any] = {
    "overview": (
        "The regulatory landscape for banking continues to evolve with enhanced capital requirements, "
        "liquidity standards, and stress testing frameworks. Key developments include Basel III "
        "implementation, digital banking regulations, and ESG compliance mandates."
    ),
    "keyPoints": [
        "Basel III capital requirements are being phased in with stricter minimum ratios",
        "Liquidity Coverage Ratio (LCR) implementation varies by jurisdiction but maintains core principles",
        "Stress testing methodologies are becoming more sophisticated and frequent",
        "Digital banking regulations are emerging to address fintech and cryptocurrency risks",
        "ESG factors are increasingly integrated into regulatory frameworks",
    ],
    "implications": [
        "Banks need to maintain higher capital buffers",
        "Enhanced liquidity management processes required",
        "Regular stress testing and scenario planning mandatory",
        "Investment in compliance technology and reporting systems",
    ],
    "recommendations": [
        "Develop comprehensive compliance monitoring systems",
        "Enhance risk management frameworks",
        "Invest in regulatory technology solutions",
        "Maintain close dialogue with regulatory authorities",
    ],
}


class MockMCPService:
    """Fixture-backed tool service. `latency` seconds are slept per call."""

    def __init__(self, latency: float = 0.0) -> None:
        self._latency = max(0.0, float(latency))

    async def _simulate(self) -> float:
        if self._latency > 0:
            await asyncio.sleep(self._latency)
        return self._latency

    def get_functions(self) -> List[Dict[str, Any]]:
        return [dict(fn) for fn in MCP_FUNCTIONS]

    async def query_gen(self, user_query: str, context: str = "") -> MCPResponse:
        elapsed = await self._simulate()
        queries = [
            f"{user_query} regulatory framework analysis",
            f"{user_query} compliance requirements banking",
            f"{user_query} regulatory updates recent changes",
            f"{user_query} implementation guidelines best practices",
        ]
        return MCPResponse(
            function="query_gen",
            result={
                "originalQuery": user_query,
                "context": context or "",
                "generatedQueries": queries[:3],
                "searchStrategy": "comprehensive_regulatory_search",
                "priorityAreas": ["compliance", "regulatory", "banking"],
            },
            metadata={"processingTime": elapsed, "confidence": 0.92},
        )

    async def content_search(self, query: str, filters: Optional[Dict[str, Any]] = None) -> MCPResponse:
        elapsed = await self._simulate()
        results = [dict(item) for item in _CONTENT_FIXTURES]
        return MCPResponse(
            function="content_search",
            result={
                "query": query,
                "totalResults": len(results),
                "documents": results,
                "results": results,
                "searchMetrics": {
                    "indexesSearched": ["regulatory_docs", "compliance_updates", "banking_guidelines"],
                    "filtersApplied": filters or {},
                },
            },
            metadata={"processingTime": elapsed, "sources": ["BIS", "Federal Reserve", "ECB"]},
        )

    async def keywords_gen(self, content: str, category: Optional[str] = None) -> MCPResponse:
        elapsed = await self._simulate()
        keywords = {key: list(values) for key, values in _BASELINE_KEYWORDS.items()}
        preview = content if len(content) <= 100 else content[:100] + "..."
        return MCPResponse(
            function="keywords_gen",
            result={
                "inputContent": preview,
                "category": category or "banking_regulation",
                "keywords": keywords,
                "totalKeywords": sum(len(values) for values in keywords.values()),
                "confidence": 0.89,
            },
            metadata={"processingTime": elapsed, "confidence": 0.89},
        )

    async def summary(self, content: List[str], options: Optional[Dict[str, Any]] = None) -> MCPResponse:
        elapsed = await self._simulate()
        options = options or {}
        summary = {key: (list(value) if isinstance(value, list) else value) for key, value in _SUMMARY_FIXTURE.items()}
        return MCPResponse(
            function="summary",
            result={
                "inputSources": len(content),
                "style": options.get("style") or "executive",
                "length": options.get("length") or "detailed",
                "summary": summary,
                "wordCount": len(summary["overview"].split()),
            },
            metadata={
                "processingTime": elapsed,
                "confidence": 0.94,
                "sources": ["Multiple regulatory documents", "Banking guidelines", "Compliance frameworks"],
            },
        )


class RemoteMCPService:
    """Forward tool calls to an HTTP tool server (`POST {base_url}/{function}`)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = max(1.0, float(timeout))
        self._transport = transport

    def get_functions(self) -> List[Dict[str, Any]]:
        return [dict(fn) for fn in MCP_FUNCTIONS]

    async def _call(self, function: str, payload: Dict[str, Any]) -> MCPResponse:
        url = f"{self._base_url}/{function}"
        timeout = httpx.Timeout(self._timeout, connect=min(5.0, self._timeout))
        start = time.perf_counter()
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                detail = exc.response.text if exc.response is not None else str(exc)
                raise MCPServiceError(f"MCP {function} returned {exc.response.status_code}: {detail}") from exc
            except httpx.RequestError as exc:
                raise MCPServiceError(f"MCP {function} request failed: {exc}") from exc
            except ValueError as exc:
                raise MCPServiceError(f"MCP {function} returned invalid JSON") from exc
        elapsed = time.perf_counter() - start
        logger.debug("MCP %s completed in %.2fs", function, elapsed)

        if not isinstance(data, dict):
            raise MCPServiceError(f"MCP {function} returned unexpected payload type {type(data).__name__}")
        if isinstance(data.get("result"), dict):
            return MCPResponse(
                function=str(data.get("function") or function),
                result=data["result"],
                metadata=data.get("metadata"),
            )
        return MCPResponse(function=function, result=data, metadata={"processingTime": elapsed})

    async def query_gen(self, user_query: str, context: str = "") -> MCPResponse:
        return await self._call("query_gen", {"userQuery": user_query, "context": context})

    async def content_search(self, query: str, filters: Optional[Dict[str, Any]] = None) -> MCPResponse:
        return await self._call("content_search", {"query": query, "filters": filters or {}})

    async def keywords_gen(self, content: str, category: Optional[str] = None) -> MCPResponse:
        return await self._call("keywords_gen", {"content": content, "category": category})

    async def summary(self, content: List[str], options: Optional[Dict[str, Any]] = None) -> MCPResponse:
        return await self._call("summary", {"content": content, "options": options or {}})


def build_mcp_service(base_url: Optional[str], *, timeout: float = 30.0, latency: float = 0.0):
    if base_url:
        logger.info("Using remote MCP service at %s", base_url)
        return RemoteMCPService(base_url, timeout=timeout)
    return MockMCPService(latency=latency)
