"""
Multi-step compliance research workflow.

The LLM expands the question into keywords, documents are retrieved and
scored, a weak result triggers one retry with alternative keywords, and a
final answer is composed from everything gathered.

Components:
- models: Keyword sets, document results, quality checks, workflow memory
- parsing: JSON decoding of completions with named defaults
- prompts: Prompt templates for each completion call site
- modes: The individual workflow steps
- orchestrator: Sequencing, retry control, progress and streaming
"""

from .models import DocumentResult, KeywordSet, QualityCheck, WorkflowMemory, WorkflowStep
from .orchestrator import ResearchResult, run_research_workflow, stream_research_answer

__all__ = [
    "DocumentResult",
    "KeywordSet",
    "QualityCheck",
    "ResearchResult",
    "WorkflowMemory",
    "WorkflowStep",
    "run_research_workflow",
    "stream_research_answer",
]
