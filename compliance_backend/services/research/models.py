"""Data model of the research workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

RECOMMENDATIONS = ("proceed", "retry", "insufficient")
DEFAULT_CATEGORY = "General Compliance"


@dataclass(frozen=True)
class KeywordSet:
    primary: Tuple[str, ...] = ()
    secondary: Tuple[str, ...] = ()
    generated: Tuple[str, ...] = ()
    category: str = DEFAULT_CATEGORY

    @classmethod
    def build(
        cls,
        primary: Sequence[str] = (),
        secondary: Sequence[str] = (),
        generated: Sequence[str] = (),
        category: Optional[str] = None,
    ) -> "KeywordSet":
        return cls(
            primary=tuple(primary),
            secondary=tuple(secondary),
            generated=tuple(generated),
            category=category or DEFAULT_CATEGORY,
        )

    def all_terms(self) -> List[str]:
        return [*self.primary, *self.secondary, *self.generated]

    def is_empty(self) -> bool:
        return not (self.primary or self.secondary or self.generated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": list(self.primary),
            "secondary": list(self.secondary),
            "generated": list(self.generated),
            "category": self.category,
        }


@dataclass(frozen=True)
class DocumentResult:
    title: str
    source: str
    excerpt: str
    relevance_score: int
    category: str
    keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "source": self.source,
            "excerpt": self.excerpt,
            "relevanceScore": self.relevance_score,
            "category": self.category,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class QualityCheck:
    score: int
    coverage: int
    relevance: int
    completeness: int
    recommendation: str = "proceed"
    issues: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "coverage": self.coverage,
            "relevance": self.relevance,
            "completeness": self.completeness,
            "recommendation": self.recommendation,
            "issues": list(self.issues),
        }


@dataclass
class WorkflowStep:
    step: int
    name: str
    message: str
    status: str = "pending"  # "pending", "processing", "completed", "failed"
    result: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "step": self.step,
            "name": self.name,
            "status": self.status,
            "message": self.message,
        }
        if self.result is not None:
            payload["result"] = self.result
        return payload


@dataclass
class WorkflowMemory:
    """Everything gathered while answering one question.

    Built by the orchestrator for a single request and handed to each step;
    nothing here outlives the request.
    """

    keyword_sets: Dict[str, KeywordSet] = field(default_factory=dict)
    documents: Dict[str, DocumentResult] = field(default_factory=dict)
    quality_checks: List[QualityCheck] = field(default_factory=list)
    current_attempt: int = 0
    max_attempts: int = 2

    def remember_keywords(self, key: str, keywords: KeywordSet) -> None:
        self.keyword_sets[key] = keywords

    def remember_documents(self, documents: Sequence[DocumentResult]) -> None:
        for doc in documents:
            self.documents[doc.title] = doc

    def record_quality(self, check: QualityCheck) -> None:
        if self.current_attempt >= self.max_attempts:
            raise RuntimeError(
                f"Attempt budget exhausted ({self.current_attempt}/{self.max_attempts})"
            )
        self.quality_checks.append(check)
        self.current_attempt += 1

    @property
    def latest_quality(self) -> Optional[QualityCheck]:
        return self.quality_checks[-1] if self.quality_checks else None

    def can_retry(self) -> bool:
        return self.current_attempt < self.max_attempts

    def stats(self) -> Dict[str, Any]:
        latest = self.latest_quality
        return {
            "keywordsCount": len(self.keyword_sets),
            "documentsCount": len(self.documents),
            "qualityScore": latest.score if latest else None,
            "attempts": self.current_attempt,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywords": {key: value.to_dict() for key, value in self.keyword_sets.items()},
            "documents": [doc.to_dict() for doc in self.documents.values()],
            "qualityChecks": [check.to_dict() for check in self.quality_checks],
            "currentAttempt": self.current_attempt,
            "maxAttempts": self.max_attempts,
        }
