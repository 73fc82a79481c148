"""
Steps of the research workflow.

- generate_keywords: baseline keywords + one completion
- retrieve_documents: content search + local extract search, deduplicated and ranked
- assess_quality: completion-scored coverage/relevance/completeness
- generate_alternative_keywords: completion seeded with the first keyword set
- synthesize_answer: final answer from the workflow memory

Malformed JSON from the model is recovered with a fixed default at each
call site. Errors raised by the search or completion collaborators are
not caught here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    DEFAULT_CATEGORY,
    RECOMMENDATIONS,
    DocumentResult,
    KeywordSet,
    QualityCheck,
    WorkflowMemory,
)
from .parsing import ParseError, decode_with_default, score_value, string_list
from .prompts import (
    ALTERNATIVE_KEYWORDS_TEMPLATE,
    ANSWER_TEMPLATE,
    KEYWORDS_TEMPLATE,
    QUALITY_TEMPLATE,
    format_documents_for_answer,
    format_documents_for_quality,
    format_keyword_trail,
    to_json,
)

logger = logging.getLogger(__name__)

DEFAULT_KEYWORD_LIMIT = 8
DEFAULT_MAX_DOCUMENTS = 15
CONTENT_SEARCH_DEFAULT_SCORE = 85
LOCAL_SEARCH_DEFAULT_SCORE = 75
CONTENT_SEARCH_DEFAULT_SOURCE = "Regulatory Database"
ALTERNATIVE_CATEGORY = "Alternative Search"
NO_ANSWER_MESSAGE = "Unable to generate comprehensive answer with available information."

EMPTY_KEYWORDS = KeywordSet()

FALLBACK_QUALITY = QualityCheck(
    score=60,
    coverage=60,
    relevance=60,
    completeness=60,
    recommendation="proceed",
    issues=("Unable to parse quality assessment",),
)

FALLBACK_ALTERNATIVE_KEYWORDS = KeywordSet.build(
    primary=["banking regulation", "compliance framework", "regulatory requirements"],
    secondary=["financial services", "risk management", "regulatory guidance"],
    generated=["supervisory expectations", "regulatory interpretation"],
    category=ALTERNATIVE_CATEGORY,
)


# =============================================================================
# DECODERS
# =============================================================================

def _keyword_decoder(default_category: str):
    def _decode(data: Dict[str, Any]) -> KeywordSet:
        category = data.get("category")
        return KeywordSet.build(
            primary=string_list(data.get("primary"), field_name="primary"),
            secondary=string_list(data.get("secondary"), field_name="secondary"),
            generated=string_list(data.get("generated"), field_name="generated"),
            category=str(category).strip() if category else default_category,
        )

    return _decode


def _decode_quality(data: Dict[str, Any]) -> QualityCheck:
    recommendation = str(data.get("recommendation") or "proceed").strip().lower()
    if recommendation not in RECOMMENDATIONS:
        logger.warning("Unknown quality recommendation %r, treating as proceed", recommendation)
        recommendation = "proceed"
    return QualityCheck(
        score=score_value(data.get("score"), 50, field_name="score"),
        coverage=score_value(data.get("coverage"), 50, field_name="coverage"),
        relevance=score_value(data.get("relevance"), 50, field_name="relevance"),
        completeness=score_value(data.get("completeness"), 50, field_name="completeness"),
        recommendation=recommendation,
        issues=tuple(string_list(data.get("issues"), field_name="issues")),
    )


def _terms(value: Any) -> List[str]:
    try:
        return string_list(value)
    except ParseError:
        return []


def _baseline_keywords(response: Any) -> Dict[str, List[str]]:
    result = getattr(response, "result", None) or {}
    keywords = result.get("keywords") if isinstance(result, dict) else None
    if not isinstance(keywords, dict):
        keywords = {}
    return {
        "primary": _terms(keywords.get("primary")),
        "secondary": _terms(keywords.get("secondary")),
        "emerging": _terms(keywords.get("emerging")),
    }


# =============================================================================
# KEYWORD GENERATOR
# =============================================================================

async def generate_keywords(question: str, mcp: Any, llm: Any) -> KeywordSet:
    """
    Build the keyword set for a question.

    Baseline primary/secondary terms from the keyword provider are followed
    by the model's terms. Baseline "emerging" terms are shown to the model
    but not merged.
    """
    baseline = _baseline_keywords(await mcp.keywords_gen(question))

    prompt = KEYWORDS_TEMPLATE.format(question=question, baseline=to_json(baseline))
    raw_response = await llm.complete(prompt)
    generated = decode_with_default(
        raw_response,
        _keyword_decoder(DEFAULT_CATEGORY),
        EMPTY_KEYWORDS,
        label="keyword set",
    )

    keywords = KeywordSet.build(
        primary=[*baseline["primary"], *generated.primary],
        secondary=[*baseline["secondary"], *generated.secondary],
        generated=generated.generated,
        category=generated.category,
    )
    if keywords.is_empty():
        keywords = KeywordSet.build(primary=[question.strip()], category=keywords.category)
    return keywords


async def generate_alternative_keywords(question: str, original: KeywordSet, llm: Any) -> KeywordSet:
    prompt = ALTERNATIVE_KEYWORDS_TEMPLATE.format(
        question=question,
        original=to_json(original.to_dict()),
    )
    raw_response = await llm.complete(prompt)
    alternative = decode_with_default(
        raw_response,
        _keyword_decoder(ALTERNATIVE_CATEGORY),
        FALLBACK_ALTERNATIVE_KEYWORDS,
        label="alternative keyword set",
    )
    if alternative.is_empty() or _same_terms(alternative, original):
        logger.info("Alternative keywords empty or unchanged; using fallback set")
        return FALLBACK_ALTERNATIVE_KEYWORDS
    return alternative


def _same_terms(left: KeywordSet, right: KeywordSet) -> bool:
    def _normalized(keywords: KeywordSet) -> List[str]:
        return [term.lower() for term in keywords.all_terms()]

    return _normalized(left) == _normalized(right)


# =============================================================================
# DOCUMENT RETRIEVER
# =============================================================================

def build_search_query(keywords: KeywordSet, limit: int = DEFAULT_KEYWORD_LIMIT) -> str:
    return " ".join(keywords.all_terms()[:limit])


def normalize_relevance(value: Any, default: int) -> int:
    """Coerce a provider relevance value onto 0-100; fractions in (0, 1] are scaled."""
    if not value or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if isinstance(value, float) and 0.0 < number <= 1.0:
        number *= 100.0
    return int(round(min(100.0, max(0.0, number))))


def _content_rows(response: Any) -> List[Dict[str, Any]]:
    result = getattr(response, "result", None) or {}
    if not isinstance(result, dict):
        return []
    rows = result.get("results") or result.get("documents") or []
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict) and row.get("title")]


def _from_content_result(row: Dict[str, Any], keywords: KeywordSet) -> DocumentResult:
    row_keywords = _terms(row.get("keywords")) or list(keywords.primary[:3])
    return DocumentResult(
        title=str(row["title"]),
        source=row.get("source") or CONTENT_SEARCH_DEFAULT_SOURCE,
        excerpt=row.get("excerpt") or row.get("summary") or "",
        relevance_score=normalize_relevance(row.get("relevanceScore"), CONTENT_SEARCH_DEFAULT_SCORE),
        category=row.get("category") or keywords.category,
        keywords=tuple(row_keywords),
    )


def _from_extract(extract: Any) -> DocumentResult:
    return DocumentResult(
        title=extract.title,
        source=extract.source,
        excerpt=extract.excerpt,
        relevance_score=normalize_relevance(extract.relevance_score, LOCAL_SEARCH_DEFAULT_SCORE),
        category=extract.category,
        keywords=tuple(extract.keywords or ()),
    )


def dedupe_by_title(documents: Iterable[DocumentResult]) -> List[DocumentResult]:
    """Keep the first document seen for each title."""
    seen = set()
    unique: List[DocumentResult] = []
    for doc in documents:
        if doc.title in seen:
            continue
        seen.add(doc.title)
        unique.append(doc)
    return unique


def rank_documents(documents: Sequence[DocumentResult], limit: int = DEFAULT_MAX_DOCUMENTS) -> List[DocumentResult]:
    """Highest relevance first; equal scores keep their first-seen order."""
    ranked = sorted(enumerate(documents), key=lambda pair: (-pair[1].relevance_score, pair[0]))
    return [doc for _, doc in ranked[:limit]]


async def retrieve_documents(
    keywords: KeywordSet,
    mcp: Any,
    extract_store: Any,
    *,
    keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    max_documents: int = DEFAULT_MAX_DOCUMENTS,
) -> List[DocumentResult]:
    search_query = build_search_query(keywords, keyword_limit)

    search_response = await mcp.content_search(search_query)
    local_extracts = await extract_store.search_extracts(search_query)

    documents = [_from_content_result(row, keywords) for row in _content_rows(search_response)]
    documents.extend(_from_extract(extract) for extract in local_extracts)

    logger.debug(
        "Retrieved %d candidate documents for query %r",
        len(documents),
        search_query,
    )
    return rank_documents(dedupe_by_title(documents), max_documents)


# =============================================================================
# QUALITY ASSESSOR
# =============================================================================

async def assess_quality(
    question: str,
    keywords: KeywordSet,
    documents: Sequence[DocumentResult],
    llm: Any,
) -> QualityCheck:
    """
    Score the documents against the question.

    The recommendation label is taken from the model as-is; the numeric
    thresholds only appear in the prompt.
    """
    prompt = QUALITY_TEMPLATE.format(
        question=question,
        keywords=to_json(keywords.to_dict()),
        document_count=len(documents),
        document_lines=format_documents_for_quality(documents),
    )
    raw_response = await llm.complete(prompt)
    return decode_with_default(raw_response, _decode_quality, FALLBACK_QUALITY, label="quality check")


# =============================================================================
# ANSWER SYNTHESIZER
# =============================================================================

async def synthesize_answer(question: str, memory: WorkflowMemory, llm: Any) -> str:
    documents = list(memory.documents.values())
    latest = memory.latest_quality
    prompt = ANSWER_TEMPLATE.format(
        question=question,
        attempts=memory.current_attempt,
        document_count=len(documents),
        quality_score=latest.score if latest else "N/A",
        keywords=format_keyword_trail(memory.keyword_sets),
        documents=format_documents_for_answer(documents),
    )
    answer: Optional[str] = await llm.complete(prompt)
    if not answer or not answer.strip():
        return NO_ANSWER_MESSAGE
    return answer
