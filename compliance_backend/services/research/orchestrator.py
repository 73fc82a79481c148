"""
Research workflow orchestrator.

Main entry point for answering a compliance question. Implements:
- run_research_workflow(): keywords -> retrieval -> quality -> (one retry) -> answer
- stream_research_answer(): the same run reported as newline-delimited JSON
- Step bookkeeping and progress reporting
- Visualization payloads for the chat UI
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Sequence

from ...utils.text import format_duration, truncate_text
from .models import DocumentResult, KeywordSet, QualityCheck, WorkflowMemory, WorkflowStep
from .modes import (
    DEFAULT_KEYWORD_LIMIT,
    DEFAULT_MAX_DOCUMENTS,
    assess_quality,
    generate_alternative_keywords,
    generate_keywords,
    retrieve_documents,
    synthesize_answer,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[List[Dict[str, Any]]], None]

DEFAULT_MAX_ATTEMPTS = 2
EXCERPT_PREVIEW_CHARS = 150


@dataclass
class ResearchResult:
    """Result from the research workflow."""
    answer: str
    steps: List[WorkflowStep] = field(default_factory=list)
    memory: WorkflowMemory = field(default_factory=WorkflowMemory)
    visualizations: List[Dict[str, Any]] = field(default_factory=list)
    duration_seconds: float = 0.0

    def workflow_payload(self) -> Dict[str, Any]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "visualizations": self.visualizations,
            "memory": self.memory.stats(),
        }


def _initial_steps() -> List[WorkflowStep]:
    return [
        WorkflowStep(1, "Keyword Generation", "Preparing to analyze question and generate keywords..."),
        WorkflowStep(2, "Document Retrieval", "Ready to search for relevant documents..."),
        WorkflowStep(3, "Quality Assessment", "Waiting to evaluate document quality..."),
        WorkflowStep(4, "Answer Generation", "Ready to compile comprehensive answer..."),
    ]


def _keywords_visualization(keywords: KeywordSet) -> Dict[str, Any]:
    return {"type": "keywords", "title": "Generated Keywords", "data": keywords.to_dict()}


def _documents_visualization(documents: Sequence[DocumentResult]) -> Dict[str, Any]:
    return {
        "type": "documents",
        "title": "Retrieved Documents",
        "data": {
            "totalFound": len(documents),
            "documents": [
                {
                    "title": doc.title,
                    "source": doc.source,
                    "category": doc.category,
                    "relevanceScore": doc.relevance_score,
                    "excerpt": truncate_text(doc.excerpt, EXCERPT_PREVIEW_CHARS),
                }
                for doc in documents
            ],
        },
    }


def _quality_visualization(check: QualityCheck, attempts: int) -> Dict[str, Any]:
    return {
        "type": "quality",
        "title": "Quality Assessment",
        "data": {
            "score": check.score,
            "coverage": check.coverage,
            "relevance": check.relevance,
            "completeness": check.completeness,
            "attempts": attempts,
            "recommendation": check.recommendation,
        },
    }


async def run_research_workflow(
    question: str,
    *,
    mcp: Any,
    extract_store: Any,
    llm: Any,
    on_progress: Optional[ProgressCallback] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    max_documents: int = DEFAULT_MAX_DOCUMENTS,
) -> ResearchResult:
    """
    Answer a compliance question.

    Steps run strictly in order. A second retrieval/assessment round runs
    only when the first assessment recommends "retry" and the attempt
    budget allows it.

    Args:
        question: User question (non-empty)
        mcp: Keyword baseline + content search provider
        extract_store: Local full-text search over regulatory extracts
        llm: Text completion client exposing ``complete(prompt)``
        on_progress: Called with the serialized steps after each change
        max_attempts: Quality-check budget
        keyword_limit: Keywords used to build the search string
        max_documents: Documents kept per retrieval

    Returns:
        ResearchResult with the answer, steps, memory and visualizations

    Raises:
        ValueError: if the question is blank
        Any error from the collaborators, after the running step is marked failed
    """
    question = (question or "").strip()
    if not question:
        raise ValueError("Question must not be empty")

    start = time.perf_counter()
    memory = WorkflowMemory(max_attempts=max(1, max_attempts))
    steps = _initial_steps()
    visualizations: List[Dict[str, Any]] = []

    def _report() -> None:
        if on_progress:
            on_progress([step.to_dict() for step in steps])

    def _begin(step: WorkflowStep, message: str) -> None:
        step.status = "processing"
        step.message = message
        _report()

    keyword_step, retrieval_step, quality_step, answer_step = steps

    try:
        # Step 1: Keywords
        _begin(keyword_step, "Analyzing question and generating targeted keywords...")
        keywords = await generate_keywords(question, mcp, llm)
        memory.remember_keywords(question, keywords)
        keyword_step.status = "completed"
        keyword_step.result = keywords.to_dict()
        keyword_step.message = (
            f"Generated {len(keywords.primary)} primary keywords and "
            f"{len(keywords.secondary)} secondary keywords"
        )
        visualizations.append(_keywords_visualization(keywords))
        _report()

        # Step 2: Retrieval
        _begin(retrieval_step, "Searching for relevant regulatory documents...")
        documents = await retrieve_documents(
            keywords,
            mcp,
            extract_store,
            keyword_limit=keyword_limit,
            max_documents=max_documents,
        )
        memory.remember_documents(documents)
        retrieval_step.status = "completed"
        retrieval_step.result = [doc.to_dict() for doc in documents]
        retrieval_step.message = f"Found {len(documents)} relevant documents"
        visualizations.append(_documents_visualization(documents))
        _report()

        # Step 3: Quality, with at most one retry
        _begin(quality_step, "Evaluating document quality and relevance...")
        check = await assess_quality(question, keywords, documents, llm)
        memory.record_quality(check)

        if check.recommendation == "retry" and memory.can_retry():
            quality_step.message = "Quality insufficient, generating alternative keywords and retrying..."
            _report()
            logger.info("Quality score %s below threshold; retrying with alternative keywords", check.score)

            alternative = await generate_alternative_keywords(question, keywords, llm)
            memory.remember_keywords(f"{question}_retry", alternative)

            retry_documents = await retrieve_documents(
                alternative,
                mcp,
                extract_store,
                keyword_limit=keyword_limit,
                max_documents=max_documents,
            )
            memory.remember_documents(retry_documents)

            check = await assess_quality(question, alternative, retry_documents, llm)
            memory.record_quality(check)
            quality_step.message = (
                f"Quality assessment complete (attempt {memory.current_attempt}). Score: {check.score}/100"
            )
        else:
            quality_step.message = f"Quality assessment complete. Score: {check.score}/100"

        quality_step.status = "completed"
        quality_step.result = check.to_dict()
        visualizations.append(_quality_visualization(check, memory.current_attempt))
        _report()

        # Step 4: Answer
        _begin(answer_step, "Compiling comprehensive answer using all collected information...")
        answer = await synthesize_answer(question, memory, llm)
        answer_step.status = "completed"
        answer_step.result = {"answer": answer}
        answer_step.message = "Comprehensive answer generated successfully"
        _report()

    except Exception as exc:
        current = next((step for step in steps if step.status == "processing"), None)
        if current is not None:
            current.status = "failed"
            current.message = f"Error: {exc}"
            _report()
        logger.error("Research workflow failed at %s: %s", current.name if current else "setup", exc)
        raise

    duration = time.perf_counter() - start
    logger.info(
        "Research workflow finished in %s (attempts=%d, documents=%d)",
        format_duration(duration),
        memory.current_attempt,
        len(memory.documents),
    )
    return ResearchResult(
        answer=answer,
        steps=steps,
        memory=memory,
        visualizations=visualizations,
        duration_seconds=duration,
    )


async def stream_research_answer(
    question: str,
    *,
    mcp: Any,
    extract_store: Any,
    llm: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    keyword_limit: int = DEFAULT_KEYWORD_LIMIT,
    max_documents: int = DEFAULT_MAX_DOCUMENTS,
) -> AsyncGenerator[str, None]:
    """
    Streaming version of the research workflow.

    Yields JSON-lines with:
    - {"type": "progress", "steps": [...]} - Step updates
    - {"type": "final", "response": "...", "workflow": {...}} - Final result
    """
    queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    def _on_progress(steps: List[Dict[str, Any]]) -> None:
        queue.put_nowait(json.dumps({"type": "progress", "steps": steps}) + "\n")

    task = asyncio.create_task(
        run_research_workflow(
            question,
            mcp=mcp,
            extract_store=extract_store,
            llm=llm,
            on_progress=_on_progress,
            max_attempts=max_attempts,
            keyword_limit=keyword_limit,
            max_documents=max_documents,
        )
    )
    task.add_done_callback(lambda _task: queue.put_nowait(None))

    try:
        while True:
            line = await queue.get()
            if line is None:
                break
            yield line
    finally:
        if not task.done():
            task.cancel()
        elif not task.cancelled() and task.exception() is not None:
            logger.debug("Research stream closed after workflow failure: %s", task.exception())

    result = task.result()
    yield json.dumps({
        "type": "final",
        "response": result.answer,
        "workflow": result.workflow_payload(),
    }) + "\n"
