"""Tests for sequencing, retry control and streaming of the research workflow."""

import asyncio
import gc
import json

import pytest

from compliance_backend.services.research import run_research_workflow, stream_research_answer
from compliance_backend.services.research.modes import NO_ANSWER_MESSAGE

QUESTION = "What are Basel III capital requirements?"

REMOTE_RESULTS = [
    {"title": "Basel III Update", "source": "BIS", "excerpt": "Minimum CET1 of 4.5%", "relevanceScore": 90},
    {"title": "Leverage Ratio", "source": "FRB", "excerpt": "Tier 1 leverage", "relevanceScore": 0.8},
]


def _run(question, mcp, store, llm, **kwargs):
    return run_research_workflow(question, mcp=mcp, extract_store=store, llm=llm, **kwargs)


class TestRunResearchWorkflow:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("recommendation", ["proceed", "insufficient"])
    async def test_no_retry_unless_recommended(
        self, recommendation, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        mcp = mock_mcp(results=REMOTE_RESULTS)
        llm = scripted_llm([
            keyword_json(primary=["tier 1"]),
            quality_json(82 if recommendation == "proceed" else 30, recommendation),
            "Banks must hold 4.5% CET1.",
        ])

        result = await _run(QUESTION, mcp, stub_extract_store(), llm)

        assert result.answer == "Banks must hold 4.5% CET1."
        assert result.memory.current_attempt == 1
        assert len(result.memory.quality_checks) == 1
        assert list(result.memory.keyword_sets) == [QUESTION]
        assert mcp.content_search.await_count == 1
        assert llm.remaining == 0
        assert [step.status for step in result.steps] == ["completed"] * 4

    @pytest.mark.asyncio
    async def test_single_retry_with_alternative_keywords(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        mcp = mock_mcp(results=REMOTE_RESULTS)
        llm = scripted_llm([
            keyword_json(primary=["tier 1"]),
            quality_json(55, "retry"),
            keyword_json(primary=["common equity"], secondary=["buffers"]),
            quality_json(50, "retry"),
            "Answer after retry",
        ])

        result = await _run(QUESTION, mcp, stub_extract_store(), llm)

        memory = result.memory
        assert memory.current_attempt == 2
        assert len(memory.quality_checks) == 2
        assert list(memory.keyword_sets) == [QUESTION, f"{QUESTION}_retry"]
        first, retry = memory.keyword_sets.values()
        assert set(first.all_terms()) != set(retry.all_terms())
        assert mcp.content_search.await_count == 2
        mcp.content_search.assert_awaited_with("common equity buffers")
        assert result.steps[2].result["score"] == 50
        assert "attempt 2" in result.steps[2].message
        assert result.answer == "Answer after retry"

    @pytest.mark.asyncio
    async def test_budget_of_one_never_retries(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        llm = scripted_llm([keyword_json(primary=["tier 1"]), quality_json(20, "retry"), "Partial answer"])

        result = await _run(QUESTION, mock_mcp(), stub_extract_store(), llm, max_attempts=1)

        assert result.memory.current_attempt == 1
        assert result.answer == "Partial answer"

    @pytest.mark.asyncio
    async def test_larger_budget_still_retries_once(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        llm = scripted_llm([
            keyword_json(primary=["tier 1"]),
            quality_json(50, "retry"),
            keyword_json(primary=["common equity"]),
            quality_json(45, "retry"),
            "Answer",
        ])

        result = await _run(QUESTION, mock_mcp(), stub_extract_store(), llm, max_attempts=3)

        assert result.memory.current_attempt == 2
        assert llm.remaining == 0

    @pytest.mark.asyncio
    async def test_documents_are_remembered_once(
        self, mock_mcp, stub_extract_store, extract_factory, scripted_llm, keyword_json, quality_json
    ):
        store = stub_extract_store([extract_factory(7, "Basel III Update", 70)])
        llm = scripted_llm([keyword_json(), quality_json(80, "proceed"), "ok"])

        result = await _run(QUESTION, mock_mcp(results=REMOTE_RESULTS), store, llm)

        assert list(result.memory.documents) == ["Basel III Update", "Leverage Ratio"]
        assert result.memory.documents["Basel III Update"].source == "BIS"
        payload = result.workflow_payload()
        assert payload["memory"] == {
            "keywordsCount": 1,
            "documentsCount": 2,
            "qualityScore": 80,
            "attempts": 1,
        }
        assert [v["type"] for v in payload["visualizations"]] == ["keywords", "documents", "quality"]

    @pytest.mark.asyncio
    async def test_retry_copy_of_a_document_replaces_the_first(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        mcp = mock_mcp(results=[
            {"title": "Basel III Update", "excerpt": "CET1 minimum", "relevanceScore": 90},
            {"title": "Leverage Ratio", "source": "FRB", "relevanceScore": 70},
        ])
        llm = scripted_llm([
            keyword_json(primary=["tier 1"], category="Capital Adequacy"),
            quality_json(55, "retry"),
            keyword_json(primary=["common equity"], category="Alt Category"),
            quality_json(75, "proceed"),
            "Answer",
        ])

        result = await _run(QUESTION, mcp, stub_extract_store(), llm)

        documents = result.memory.documents
        assert list(documents) == ["Basel III Update", "Leverage Ratio"]
        assert documents["Basel III Update"].category == "Alt Category"
        assert documents["Basel III Update"].keywords == ("common equity",)
        assert "Category: Alt Category" in llm.prompts[-1]
        assert "Category: Capital Adequacy" not in llm.prompts[-1]

    @pytest.mark.asyncio
    async def test_empty_retrieval_still_answers(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        llm = scripted_llm([keyword_json(), quality_json(10, "insufficient"), ""])

        result = await _run("Obscure regulation", mock_mcp(results=[]), stub_extract_store(), llm)

        assert result.memory.documents == {}
        assert result.steps[1].message == "Found 0 relevant documents"
        assert result.answer == NO_ANSWER_MESSAGE
        assert "(No documents found)" in llm.prompts[1]

    @pytest.mark.asyncio
    async def test_progress_is_reported_in_order(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        snapshots = []
        llm = scripted_llm([keyword_json(), quality_json(80, "proceed"), "done"])

        await _run(QUESTION, mock_mcp(), stub_extract_store(), llm, on_progress=snapshots.append)

        assert snapshots[0][0]["status"] == "processing"
        assert snapshots[0][1]["status"] == "pending"
        assert all(step["status"] == "completed" for step in snapshots[-1])
        processing_order = [
            next(step["step"] for step in snapshot if step["status"] == "processing")
            for snapshot in snapshots
            if any(step["status"] == "processing" for step in snapshot)
        ]
        assert processing_order == sorted(processing_order)

    @pytest.mark.asyncio
    async def test_failure_marks_running_step(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json
    ):
        snapshots = []
        mcp = mock_mcp()
        mcp.content_search.side_effect = ConnectionError("search unavailable")
        llm = scripted_llm([keyword_json(primary=["tier 1"])])

        with pytest.raises(ConnectionError):
            await _run(QUESTION, mcp, stub_extract_store(), llm, on_progress=snapshots.append)

        last = snapshots[-1]
        assert last[0]["status"] == "completed"
        assert last[1]["status"] == "failed"
        assert last[1]["message"] == "Error: search unavailable"
        assert last[2]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_blank_question_rejected(self, mock_mcp, stub_extract_store, scripted_llm):
        mcp = mock_mcp()
        with pytest.raises(ValueError):
            await _run("   ", mcp, stub_extract_store(), scripted_llm([]))
        mcp.keywords_gen.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_repeated_runs_are_independent(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        responses = [keyword_json(primary=["tier 1"]), quality_json(75, "proceed"), "Same answer"]
        mcp = mock_mcp(results=REMOTE_RESULTS)

        first = await _run(QUESTION, mcp, stub_extract_store(), scripted_llm(responses))
        second = await _run(QUESTION, mcp, stub_extract_store(), scripted_llm(responses))

        assert first.answer == second.answer
        assert first.memory.to_dict() == second.memory.to_dict()
        assert [s.to_dict() for s in first.steps] == [s.to_dict() for s in second.steps]


class TestStreamResearchAnswer:
    @pytest.mark.asyncio
    async def test_streams_progress_then_final(
        self, mock_mcp, stub_extract_store, scripted_llm, keyword_json, quality_json
    ):
        llm = scripted_llm([keyword_json(), quality_json(80, "proceed"), "Streamed answer"])

        lines = [
            json.loads(line)
            async for line in stream_research_answer(
                QUESTION, mcp=mock_mcp(results=REMOTE_RESULTS), extract_store=stub_extract_store(), llm=llm
            )
        ]

        assert all(line["type"] == "progress" for line in lines[:-1])
        assert len(lines) > 1
        final = lines[-1]
        assert final["type"] == "final"
        assert final["response"] == "Streamed answer"
        assert final["workflow"]["memory"]["attempts"] == 1
        assert len(final["workflow"]["steps"]) == 4

    @pytest.mark.asyncio
    async def test_stream_reraises_workflow_error(self, mock_mcp, stub_extract_store, scripted_llm):
        llm = scripted_llm([RuntimeError("model offline")])
        lines = []

        with pytest.raises(RuntimeError, match="model offline"):
            async for line in stream_research_answer(
                QUESTION, mcp=mock_mcp(), extract_store=stub_extract_store(), llm=llm
            ):
                lines.append(json.loads(line))

        assert lines[-1]["steps"][0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_closing_stream_after_failure_retrieves_task_error(
        self, mock_mcp, stub_extract_store, scripted_llm
    ):
        loop = asyncio.get_running_loop()
        unhandled = []
        loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
        try:
            stream = stream_research_answer(
                QUESTION,
                mcp=mock_mcp(),
                extract_store=stub_extract_store(),
                llm=scripted_llm([RuntimeError("model offline")]),
            )
            first = json.loads(await stream.__anext__())
            for _ in range(20):
                await asyncio.sleep(0)
            await stream.aclose()
            del stream
            gc.collect()
        finally:
            loop.set_exception_handler(None)

        assert first["type"] == "progress"
        assert unhandled == []
