"""Tests for the three-stage analysis pipeline."""

import pytest

from conftest import (
    ANALYSIS_REPLY,
    CONTENT_REPLY,
    RESEARCH_REPLY,
    FakeLLMProvider,
    pipeline_replies,
)
from scatterbrain.core.exceptions import UpstreamError
from scatterbrain.core.prompted_call import PromptedCall
from scatterbrain.pipeline.agents import (
    ANALYSIS_PARAMS,
    CONTENT_PARAMS,
    RESEARCH_PARAMS,
    AnalysisPipeline,
)
from scatterbrain.pipeline.models import (
    AnalysisOutput,
    PipelineRun,
    PipelineStage,
    ResearchOutput,
    format_output,
)


def _pipeline(replies) -> tuple[AnalysisPipeline, FakeLLMProvider]:
    provider = FakeLLMProvider(replies)
    return AnalysisPipeline(PromptedCall(provider), model="test-model"), provider


class TestRun:
    @pytest.mark.asyncio
    async def test_successful_run(self):
        pipeline, provider = _pipeline(pipeline_replies())

        run = await pipeline.run("I think remote work is dying")

        assert run.success is True
        assert run.errors == []
        assert run.failed_stage is None
        assert run.research.topics[0] == "remote work"
        assert run.analysis.connections[0].source == "autonomy"
        assert run.content.summary.headline == "Remote work is evolving, not dying"
        assert run.timing.research is not None
        assert run.timing.analysis is not None
        assert run.timing.content is not None
        assert run.timing.total >= 0
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_total_time_tracks_stage_times(self):
        provider = FakeLLMProvider(pipeline_replies(), delay=0.02)
        pipeline = AnalysisPipeline(PromptedCall(provider))

        run = await pipeline.run("text")

        timing = run.timing
        stages = timing.research + timing.analysis + timing.content
        assert min(timing.research, timing.analysis, timing.content) >= 15
        assert timing.total >= stages
        assert timing.total - stages <= 50

    @pytest.mark.asyncio
    async def test_mistyped_fields_do_not_fail_stages(self):
        research = dict(RESEARCH_REPLY, categories=["ideas", "concerns"])
        analysis = dict(
            ANALYSIS_REPLY,
            insights=[{"insight": "Mandates signal trust gaps", "importance": 9}],
        )
        pipeline, _ = _pipeline([research, analysis, CONTENT_REPLY])

        run = await pipeline.run("I think remote work is dying")

        assert run.success is True
        assert run.errors == []
        assert run.research.categories == {}
        assert run.research.topics[0] == "remote work"
        assert run.analysis.insights[0].importance == "9"

    @pytest.mark.asyncio
    async def test_stage_budgets_and_model(self):
        pipeline, provider = _pipeline(pipeline_replies())

        await pipeline.run("text")

        budgets = [(c["max_tokens"], c["temperature"]) for c in provider.calls]
        assert budgets == [RESEARCH_PARAMS, ANALYSIS_PARAMS, CONTENT_PARAMS]
        assert {c["model"] for c in provider.calls} == {"test-model"}

    @pytest.mark.asyncio
    async def test_each_stage_sees_previous_output(self):
        pipeline, provider = _pipeline(pipeline_replies())

        await pipeline.run("I think remote work is dying")

        assert "I think remote work is dying" in provider.calls[0]["prompt"]
        assert "Return-to-office mandates are rising" in provider.calls[1]["prompt"]
        content_prompt = provider.calls[2]["prompt"]
        assert "Control vs trust" in content_prompt
        assert "I think remote work is dying" in content_prompt

    @pytest.mark.asyncio
    async def test_unparseable_research_stops_run(self):
        pipeline, provider = _pipeline(["Sorry, no JSON from me."])

        run = await pipeline.run("text")

        assert run.success is False
        assert run.failed_stage == PipelineStage.RESEARCH
        assert len(run.errors) == 1
        assert run.errors[0].startswith("Research Agent failed:")
        assert run.research is None
        assert run.timing.research is None
        assert run.timing.total is not None
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_analysis_transport_failure_keeps_research(self):
        pipeline, provider = _pipeline([RESEARCH_REPLY, UpstreamError("connection reset")])

        run = await pipeline.run("text")

        assert run.success is False
        assert run.failed_stage == PipelineStage.ANALYSIS
        assert run.errors == ["Analysis Agent failed: connection reset"]
        assert run.research.themes == ["autonomy", "collaboration"]
        assert run.analysis is None
        assert run.timing.research is not None
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_content_failure_keeps_earlier_stages(self):
        pipeline, _ = _pipeline([RESEARCH_REPLY, ANALYSIS_REPLY, "not json"])

        run = await pipeline.run("text")

        assert run.failed_stage == PipelineStage.CONTENT
        assert run.errors[0].startswith("Content Agent failed:")
        assert run.analysis.synthesis == "Remote work is shifting, not dying"
        assert run.content is None


class TestEvents:
    @pytest.mark.asyncio
    async def test_event_order(self):
        pipeline, _ = _pipeline(pipeline_replies())
        events = []

        await pipeline.run("text", on_event=events.append)

        assert [(e["stage"], e["status"]) for e in events] == [
            ("research", "processing"),
            ("research", "complete"),
            ("analysis", "processing"),
            ("analysis", "complete"),
            ("content", "processing"),
            ("content", "complete"),
        ]
        assert events[1]["preview"] == {
            "topics": ["remote work", "office culture", "productivity"],
            "themes": ["autonomy", "collaboration"],
        }
        assert events[3]["preview"] == {"patterns": 2, "insights": 1}
        assert events[5]["preview"] == {"headline": "Remote work is evolving, not dying"}
        assert isinstance(events[1]["time"], int)

    @pytest.mark.asyncio
    async def test_async_callback(self):
        pipeline, _ = _pipeline(pipeline_replies())
        events = []

        async def on_event(event):
            events.append(event)

        await pipeline.run("text", on_event=on_event)

        assert len(events) == 6

    @pytest.mark.asyncio
    async def test_failed_stage_emits_no_complete(self):
        pipeline, _ = _pipeline([RESEARCH_REPLY, "no json"])
        events = []

        await pipeline.run("text", on_event=events.append)

        assert events[-1] == {
            "stage": "analysis",
            "status": "processing",
            "message": "Finding patterns and insights...",
        }


class TestStageOutputs:
    def test_fallback_output(self):
        output = ResearchOutput.fallback("raw reply")
        assert output.is_fallback
        assert output.raw_text == "raw reply"

    def test_partial_reply_validates(self):
        output = AnalysisOutput.model_validate({"synthesis": "only this"})
        assert output.patterns == []
        assert not output.is_fallback

    def test_prompt_json_excludes_error_fields(self):
        output = ResearchOutput(topics=["a"], key_points=["b"])
        dumped = output.to_prompt_json()
        assert '"keyPoints"' in dumped
        assert "rawText" not in dumped
        assert "error" not in dumped


class TestFormatOutput:
    @pytest.mark.asyncio
    async def test_success_shape(self):
        pipeline, _ = _pipeline(pipeline_replies())
        run = await pipeline.run("text")

        result = format_output(run)

        assert result["success"] is True
        assert result["summary"]["headline"] == "Remote work is evolving, not dying"
        assert [i["title"] for i in result["insights"]] == ["Trust gap", "Hybrid norm"]
        assert result["actions"][0]["action"] == "Define outcome metrics"
        assert result["highlights"] == ["Remote work is shifting", "Trust drives policy"]
        assert result["visual"]["primaryColor"] == "blue"
        assert result["metadata"]["topics"][0] == "remote work"
        assert result["metadata"]["patterns"][0]["pattern"] == "Control vs trust"
        assert set(result["metadata"]["timing"]) == {"research", "analysis", "content", "total"}

    def test_failure_shape(self):
        run = PipelineRun(
            success=False,
            research=ResearchOutput(topics=["x"]),
            errors=["Analysis Agent failed: boom"],
            failed_stage=PipelineStage.ANALYSIS,
        )

        result = format_output(run)

        assert result["error"] is True
        assert result["message"] == "Analysis Agent failed: boom"
        assert result["partial"]["research"]["topics"] == ["x"]
        assert result["partial"]["failedStage"] == "analysis"
        assert "success" not in result
