from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExtractBase(_CamelModel):
    title: str = Field(min_length=1)
    source: str
    excerpt: str
    category: str
    jurisdiction: str
    priority: str
    effective_date: Optional[str] = Field(default=None, alias="effectiveDate")
    last_updated: str = Field(alias="lastUpdated")
    relevance_score: int = Field(alias="relevanceScore", ge=0, le=100)
    keywords: List[str] = Field(default_factory=list)
    full_text: str = Field(alias="fullText")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    created_date: Optional[str] = Field(default=None, alias="createdDate")
    updated_date: Optional[str] = Field(default=None, alias="updatedDate")


class ExtractCreate(ExtractBase):
    pass


class Extract(ExtractBase):
    id: int


class ExtractFilter(_CamelModel):
    categories: Optional[List[str]] = None
    jurisdictions: Optional[List[str]] = None
    priorities: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")


class Keyword(BaseModel):
    id: int
    term: str
    category: str
    usage_count: int = 0


class SummaryCreate(_CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    extract_ids: List[int] = Field(default_factory=list, alias="extractIds")
    keywords: List[str] = Field(default_factory=list)


class Summary(SummaryCreate):
    id: int
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class ChatRequest(BaseModel):
    # Validated by the route so that non-string values get the same 400 as blank ones.
    message: Any = Field(default=None)


class WorkflowMemoryStats(_CamelModel):
    keywords_count: int = Field(alias="keywordsCount")
    documents_count: int = Field(alias="documentsCount")
    quality_score: Optional[int] = Field(default=None, alias="qualityScore")
    attempts: int


class ChatWorkflow(BaseModel):
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    visualizations: List[Dict[str, Any]] = Field(default_factory=list)
    memory: WorkflowMemoryStats


class ChatResponse(BaseModel):
    response: str
    workflow: ChatWorkflow


class QueryGenRequest(_CamelModel):
    user_query: str = Field(alias="userQuery", min_length=1)
    context: Optional[str] = None


class ContentSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    filters: Optional[Dict[str, Any]] = None


class KeywordsGenRequest(BaseModel):
    content: str = Field(min_length=1)
    category: Optional[str] = None


class SummaryRequest(BaseModel):
    content: List[str] = Field(default_factory=list)
    options: Optional[Dict[str, Any]] = None


class MCPResult(BaseModel):
    function: str
    result: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None
