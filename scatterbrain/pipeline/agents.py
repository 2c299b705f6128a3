"""Three-stage analysis pipeline: research -> analysis -> content.

Each stage is one prompted call whose prompt depends on the previous stage's
output, so the stages run strictly in sequence. A stage that raises, or that
gets back text with no usable JSON, stops the run. The run is then returned
with ``success=False``, the stages completed so far, and one error message.
"""

import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from scatterbrain.core.exceptions import ParseError
from scatterbrain.core.prompted_call import ModelParams, PromptedCall
from scatterbrain.pipeline.models import (
    AnalysisOutput,
    ContentOutput,
    PipelineRun,
    PipelineStage,
    ResearchOutput,
    StageOutput,
)
from scatterbrain.pipeline.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    CONTENT_SYSTEM_PROMPT,
    RESEARCH_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_content_prompt,
    build_research_prompt,
)

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=StageOutput)

EventCallback = Callable[[dict[str, Any]], Union[Awaitable[None], None]]

# Token budget and temperature per stage
RESEARCH_PARAMS = (1500, 0.3)
ANALYSIS_PARAMS = (2000, 0.5)
CONTENT_PARAMS = (2500, 0.7)

_PROCESSING_MESSAGES = {
    PipelineStage.RESEARCH: "Extracting key information...",
    PipelineStage.ANALYSIS: "Finding patterns and insights...",
    PipelineStage.CONTENT: "Creating presentation...",
}


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _preview(stage: PipelineStage, output: StageOutput) -> dict[str, Any]:
    if isinstance(output, ResearchOutput):
        return {"topics": output.topics[:3], "themes": output.themes[:3]}
    if isinstance(output, AnalysisOutput):
        return {"patterns": len(output.patterns), "insights": len(output.insights)}
    if isinstance(output, ContentOutput):
        return {"headline": output.summary.headline}
    return {}


class AnalysisPipeline:
    """Runs the research, analysis and content agents over one submission.

    Usage:
        pipeline = AnalysisPipeline(PromptedCall(provider), model="claude-sonnet-4-5")
        run = await pipeline.run("I think remote work is dying")
        result = format_output(run)
    """

    def __init__(self, prompted_call: PromptedCall, *, model: Optional[str] = None):
        self._call = prompted_call
        self._model = model

    def _params(self, budget: tuple[int, float]) -> ModelParams:
        max_tokens, temperature = budget
        return ModelParams(max_tokens=max_tokens, temperature=temperature, model=self._model)

    async def _invoke(
        self,
        output_type: type[S],
        system_prompt: str,
        user_prompt: str,
        budget: tuple[int, float],
    ) -> S:
        result = await self._call.invoke(system_prompt, user_prompt, self._params(budget))
        parsed = result.parse_as(output_type)
        if parsed is None:
            return output_type.fallback(result.raw_text)
        return parsed

    async def research(self, text: str) -> ResearchOutput:
        """Extract topics, themes, questions, key points and categories."""
        return await self._invoke(
            ResearchOutput,
            RESEARCH_SYSTEM_PROMPT,
            build_research_prompt(text),
            RESEARCH_PARAMS,
        )

    async def analysis(self, research: ResearchOutput) -> AnalysisOutput:
        """Find patterns, connections and rated insights in the research."""
        return await self._invoke(
            AnalysisOutput,
            ANALYSIS_SYSTEM_PROMPT,
            build_analysis_prompt(research),
            ANALYSIS_PARAMS,
        )

    async def content(self, analysis: AnalysisOutput, original_input: str) -> ContentOutput:
        """Turn the analysis into summary, insight cards, actions and highlights."""
        return await self._invoke(
            ContentOutput,
            CONTENT_SYSTEM_PROMPT,
            build_content_prompt(analysis, original_input),
            CONTENT_PARAMS,
        )

    async def run(
        self,
        text: str,
        on_event: Optional[EventCallback] = None,
    ) -> PipelineRun:
        """Run all three stages in order.

        Never raises for stage failures: the returned run records which stage
        failed and keeps the outputs of the stages before it.

        Args:
            text: The user's submission.
            on_event: Optional callback receiving a ``processing`` event before
                each stage and a ``complete`` event (with time and preview)
                after it. May be sync or async.
        """
        run = PipelineRun()
        started = time.perf_counter()

        async def emit(event: dict[str, Any]) -> None:
            if on_event is None:
                return
            outcome = on_event(event)
            if inspect.isawaitable(outcome):
                await outcome

        async def stage(kind: PipelineStage, call: Callable[[], Awaitable[S]]) -> S:
            run.failed_stage = kind
            await emit(
                {"stage": kind.value, "status": "processing", "message": _PROCESSING_MESSAGES[kind]}
            )
            stage_start = time.perf_counter()
            output = await call()
            if output.is_fallback:
                raise ParseError(f"{kind.label} stage returned no parseable JSON")
            elapsed = _elapsed_ms(stage_start)
            setattr(run.timing, kind.value, elapsed)
            logger.info("Stage %s completed in %dms", kind.value, elapsed)
            await emit(
                {
                    "stage": kind.value,
                    "status": "complete",
                    "time": elapsed,
                    "preview": _preview(kind, output),
                }
            )
            return output

        try:
            run.research = await stage(PipelineStage.RESEARCH, lambda: self.research(text))
            research = run.research
            run.analysis = await stage(PipelineStage.ANALYSIS, lambda: self.analysis(research))
            analysis = run.analysis
            run.content = await stage(
                PipelineStage.CONTENT, lambda: self.content(analysis, text)
            )
            run.success = True
            run.failed_stage = None
        except Exception as e:
            failed = run.failed_stage or PipelineStage.RESEARCH
            run.errors.append(f"{failed.label} Agent failed: {e}")
            logger.error("Pipeline stopped at %s stage: %s", failed.value, e)
        finally:
            run.timing.total = _elapsed_ms(started)

        if run.success:
            logger.info("Pipeline completed in %dms", run.timing.total)
        return run
