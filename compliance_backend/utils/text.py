from __future__ import annotations

from typing import List


def truncate_text(text: str, max_length: int, *, suffix: str = "...") -> str:
    text = text or ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def format_duration(seconds: float) -> str:
    millis = max(0.0, float(seconds)) * 1000.0
    if millis < 1000:
        return f"{int(round(millis))}ms"
    return f"{millis / 1000.0:.1f}s"


def split_terms(query: str) -> List[str]:
    """Lower-cased whitespace tokens of a search string, empty tokens dropped."""
    return [term for term in (query or "").lower().split() if term]


def split_list_field(raw: str) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
