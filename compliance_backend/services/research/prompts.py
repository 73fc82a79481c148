"""
Prompts for the research workflow.

One template per completion call site:
- KEYWORDS: expand a question into primary/secondary/generated keywords
- QUALITY: score retrieved documents against the question
- ALTERNATIVE_KEYWORDS: different keywords after a weak first attempt
- ANSWER: final answer from the accumulated research
"""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence

# =============================================================================
# KEYWORD GENERATION
# =============================================================================

KEYWORDS_TEMPLATE = """Analyze this banking/financial regulation question and generate comprehensive keywords:

Question: "{question}"

Existing relevant keywords from database: {baseline}

Generate additional keywords in this JSON format:
{{
  "primary": ["keyword1", "keyword2", ...],
  "secondary": ["related1", "related2", ...],
  "generated": ["new1", "new2", ...],
  "category": "category_name"
}}

Focus on:
- Banking regulatory terms
- Compliance frameworks
- Legal terminology
- Industry-specific jargon
- Synonyms and variations

Generate 5-8 primary keywords, 8-12 secondary keywords, and 3-5 new generated keywords.
Output ONLY the JSON object."""


# =============================================================================
# QUALITY ASSESSMENT
# =============================================================================

QUALITY_TEMPLATE = """Assess the quality of this document collection for answering a banking compliance question:

Question: "{question}"
Keywords Used: {keywords}
Documents Found: {document_count}

Document Titles and Relevance Scores:
{document_lines}

Evaluate and return JSON:
{{
  "score": 0-100,
  "coverage": 0-100,
  "relevance": 0-100,
  "completeness": 0-100,
  "recommendation": "proceed|retry|insufficient",
  "issues": ["issue1", "issue2"]
}}

Scoring criteria:
- Coverage: How well do documents cover the question topic?
- Relevance: How relevant are documents to the specific question?
- Completeness: Can the question be fully answered with these documents?
- Overall score: Average of the above

Recommend "insufficient" if score < 40, "retry" if score < 70, otherwise "proceed".
Output ONLY the JSON object."""


# =============================================================================
# ALTERNATIVE KEYWORDS (RETRY)
# =============================================================================

ALTERNATIVE_KEYWORDS_TEMPLATE = """The initial keyword search didn't yield sufficient results. Generate alternative keywords for this banking regulation question:

Question: "{question}"
Original Keywords: {original}

Generate alternative approaches using:
- Broader regulatory terms
- Different regulatory frameworks
- Alternative legal terminology
- Related compliance areas
- Industry synonyms

Do not repeat the original keywords.

Return JSON format:
{{
  "primary": ["alternative1", "alternative2", ...],
  "secondary": ["broader1", "broader2", ...],
  "generated": ["creative1", "creative2", ...],
  "category": "category_name"
}}"""


# =============================================================================
# ANSWER SYNTHESIS
# =============================================================================

ANSWER_TEMPLATE = """You are an expert banking compliance consultant. Answer this question using the research conducted:

QUESTION: "{question}"

RESEARCH SUMMARY:
- Search Attempts: {attempts}
- Documents Found: {document_count}
- Quality Score: {quality_score}/100
- Keywords Used: {keywords}

RELEVANT DOCUMENTS:
{documents}

INSTRUCTIONS:
1. Provide a comprehensive, authoritative answer
2. Use specific regulatory references from the documents
3. Include practical implementation guidance
4. Highlight key compliance requirements
5. Use clear formatting with bullet points and bold text
6. Cite relevant document sources
7. If information is incomplete, acknowledge limitations

Format your response professionally for banking compliance professionals."""


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def format_documents_for_quality(documents: Sequence[Any]) -> str:
    if not documents:
        return "(No documents found)"
    return "\n".join(
        f"- {doc.title} (Score: {doc.relevance_score}, Category: {doc.category})" for doc in documents
    )


def format_documents_for_answer(documents: Sequence[Any]) -> str:
    if not documents:
        return "(No documents available)"

    blocks = []
    for doc in documents:
        blocks.append(
            "\n".join(
                [
                    f"Title: {doc.title}",
                    f"Source: {doc.source}",
                    f"Category: {doc.category}",
                    f"Relevance: {doc.relevance_score}%",
                    f"Content: {doc.excerpt}",
                    "---",
                ]
            )
        )
    return "\n".join(blocks)


def format_keyword_trail(keyword_sets: Dict[str, Any]) -> str:
    trail = [", ".join(keywords.primary) for keywords in keyword_sets.values()]
    return "; ".join(part for part in trail if part) or "(none)"
