"""CSV-backed storage for regulatory extracts and the keyword catalogue."""

from __future__ import annotations

import asyncio
import csv
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .schemas import Extract, ExtractCreate, ExtractFilter, Keyword
from .utils.text import split_list_field, split_terms

logger = logging.getLogger(__name__)

EXTRACT_COLUMNS: Sequence[str] = (
    "id",
    "title",
    "source",
    "excerpt",
    "category",
    "jurisdiction",
    "priority",
    "effectiveDate",
    "lastUpdated",
    "relevanceScore",
    "keywords",
    "fullText",
    "createdBy",
    "updatedBy",
    "createdDate",
    "updatedDate",
)


def read_csv(path: Path) -> List[Dict[str, str]]:
    """Read a CSV file with a header row. Missing or unreadable files read as empty."""
    path = Path(path)
    if not path.exists():
        logger.warning("CSV file not found: %s", path)
        return []
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle)
            return [
                {key: (value or "") for key, value in row.items() if key is not None}
                for row in reader
                if any((value or "").strip() for value in row.values() if isinstance(value, str))
            ]
    except (OSError, csv.Error) as exc:
        logger.error("Error reading CSV file %s: %s", path, exc)
        return []


def write_csv(path: Path, rows: List[Dict[str, Any]], fieldnames: Sequence[str]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(fieldnames), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({key: "" if row.get(key) is None else row.get(key) for key in fieldnames})
    os.replace(tmp_path, path)


def _to_int(raw: Optional[str], default: int = 0) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _optional(raw: Optional[str]) -> Optional[str]:
    value = (raw or "").strip()
    return value or None


def _parse_date(raw: Optional[str]) -> Optional[date]:
    value = (raw or "").strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def row_to_extract(row: Dict[str, str]) -> Extract:
    score = _to_int(row.get("relevanceScore"))
    return Extract(
        id=_to_int(row.get("id")),
        title=row.get("title") or "Untitled",
        source=row.get("source") or "",
        excerpt=row.get("excerpt") or "",
        category=row.get("category") or "",
        jurisdiction=row.get("jurisdiction") or "",
        priority=row.get("priority") or "",
        effective_date=_optional(row.get("effectiveDate")),
        last_updated=row.get("lastUpdated") or "",
        relevance_score=min(100, max(0, score)),
        keywords=split_list_field(row.get("keywords") or ""),
        full_text=row.get("fullText") or "",
        created_by=_optional(row.get("createdBy")),
        updated_by=_optional(row.get("updatedBy")),
        created_date=_optional(row.get("createdDate")),
        updated_date=_optional(row.get("updatedDate")),
    )


def extract_to_row(extract: Extract) -> Dict[str, Any]:
    return {
        "id": str(extract.id),
        "title": extract.title,
        "source": extract.source,
        "excerpt": extract.excerpt,
        "category": extract.category,
        "jurisdiction": extract.jurisdiction,
        "priority": extract.priority,
        "effectiveDate": extract.effective_date or "",
        "lastUpdated": extract.last_updated,
        "relevanceScore": str(extract.relevance_score),
        "keywords": ",".join(extract.keywords),
        "fullText": extract.full_text,
        "createdBy": extract.created_by or "",
        "updatedBy": extract.updated_by or "",
        "createdDate": extract.created_date or "",
        "updatedDate": extract.updated_date or "",
    }


def row_to_keyword(row: Dict[str, str]) -> Keyword:
    usage = row.get("usage_count") or row.get("frequency")
    return Keyword(
        id=_to_int(row.get("id")),
        term=row.get("term") or "",
        category=row.get("category") or "",
        usage_count=_to_int(usage),
    )


def matches_terms(extract: Extract, terms: Sequence[str]) -> bool:
    haystack = " ".join(
        [extract.title, extract.excerpt, extract.full_text, " ".join(extract.keywords)]
    ).lower()
    return any(term in haystack for term in terms)


def matches_filter(extract: Extract, filters: ExtractFilter) -> bool:
    if filters.categories and extract.category not in filters.categories:
        return False
    if filters.jurisdictions and extract.jurisdiction not in filters.jurisdictions:
        return False
    if filters.priorities and extract.priority not in filters.priorities:
        return False
    if filters.keywords:
        extract_keywords = {keyword.lower() for keyword in extract.keywords}
        if not any(keyword.strip().lower() in extract_keywords for keyword in filters.keywords):
            return False
    if filters.start_date or filters.end_date:
        effective = _parse_date(extract.effective_date)
        if effective is None:
            return False
        start = _parse_date(filters.start_date)
        end = _parse_date(filters.end_date)
        if start and effective < start:
            return False
        if end and effective > end:
            return False
    return True


class ExtractStore:
    """Regulatory extracts and keywords read from CSV files.

    Reads go to disk on every call so edits to the CSV files are picked up
    without a restart. Appends are serialized by a lock.
    """

    def __init__(self, extracts_path: Path, keywords_path: Path) -> None:
        self.extracts_path = Path(extracts_path)
        self.keywords_path = Path(keywords_path)
        self._write_lock = asyncio.Lock()

    async def _read(self, path: Path) -> List[Dict[str, str]]:
        return await asyncio.to_thread(read_csv, path)

    async def list_extracts(self) -> List[Extract]:
        rows = await self._read(self.extracts_path)
        return [row_to_extract(row) for row in rows]

    async def get_extract(self, extract_id: int) -> Optional[Extract]:
        for extract in await self.list_extracts():
            if extract.id == extract_id:
                return extract
        return None

    async def search_extracts(self, query: str) -> List[Extract]:
        terms = split_terms(query)
        if not terms:
            return []
        return [extract for extract in await self.list_extracts() if matches_terms(extract, terms)]

    async def filter_extracts(self, filters: ExtractFilter) -> List[Extract]:
        return [extract for extract in await self.list_extracts() if matches_filter(extract, filters)]

    async def create_extract(self, payload: ExtractCreate) -> Extract:
        async with self._write_lock:
            rows = await self._read(self.extracts_path)
            next_id = max([_to_int(row.get("id")) for row in rows] + [0]) + 1
            extract = Extract(id=next_id, **payload.model_dump())
            rows.append(extract_to_row(extract))
            await asyncio.to_thread(write_csv, self.extracts_path, rows, EXTRACT_COLUMNS)
        logger.info("Created extract %s (%s)", extract.id, extract.title)
        return extract

    async def list_keywords(self) -> List[Keyword]:
        rows = await self._read(self.keywords_path)
        return [row_to_keyword(row) for row in rows]

    async def keywords_by_category(self, category: str) -> List[Keyword]:
        return [keyword for keyword in await self.list_keywords() if keyword.category == category]

    async def search_keywords(self, query: str) -> List[Keyword]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [keyword for keyword in await self.list_keywords() if needle in keyword.term.lower()]
