"""Data models for the three-stage analysis pipeline.

Stage outputs mirror the JSON the model is asked to emit (camelCase on the
wire, snake_case in Python). Every field has an empty default so partially
filled responses still validate. A stage output built from unparseable text
carries ``error`` and ``raw_text`` instead of content.

PipelineRun accumulates stage outputs and timings for one submission and is
projected by ``format_output`` into the flat shape stored and returned to
clients.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from scatterbrain.core.prompted_call import PARSE_FAILURE
from scatterbrain.core.wire import LenientWireModel, WireModel


class PipelineStage(str, Enum):
    RESEARCH = "research"
    ANALYSIS = "analysis"
    CONTENT = "content"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class StageOutput(LenientWireModel):
    error: str | None = None
    raw_text: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.error is not None

    @classmethod
    def fallback(cls, raw_text: str):
        return cls(error=PARSE_FAILURE, raw_text=raw_text)

    def to_prompt_json(self) -> str:
        """Serialize for embedding in the next stage's prompt."""
        return self.model_dump_json(
            by_alias=True, indent=2, exclude={"error", "raw_text"}
        )


# Stage 1: research


class ResearchOutput(StageOutput):
    topics: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    categories: dict[str, list[str]] = Field(default_factory=dict)
    context: str = ""


# Stage 2: analysis


class Pattern(LenientWireModel):
    pattern: str = ""
    evidence: list[str] = Field(default_factory=list)


class Connection(LenientWireModel):
    # "from" is a keyword, so the endpoints are source/target in Python
    source: str = Field(default="", alias="from")
    target: str = Field(default="", alias="to")
    relationship: str = ""


class RatedInsight(LenientWireModel):
    insight: str = ""
    importance: str = ""
    rationale: str = ""


class AnalysisOutput(StageOutput):
    patterns: list[Pattern] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    insights: list[RatedInsight] = Field(default_factory=list)
    synthesis: str = ""
    priorities: list[str] = Field(default_factory=list)


# Stage 3: content


class Summary(LenientWireModel):
    headline: str = ""
    overview: str = ""


class FormattedInsight(LenientWireModel):
    title: str = ""
    description: str = ""
    icon: str = ""
    color: str = ""


class ActionItem(LenientWireModel):
    action: str = ""
    rationale: str = ""
    priority: str = ""


class VisualElements(LenientWireModel):
    primary_color: str = ""
    mood: str = ""
    emphasis: list[str] = Field(default_factory=list)


class ContentOutput(StageOutput):
    summary: Summary = Field(default_factory=Summary)
    formatted_insights: list[FormattedInsight] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    visual_elements: VisualElements = Field(default_factory=VisualElements)


# Run


class StageTiming(WireModel):
    """Elapsed wall-clock milliseconds per stage and overall."""

    research: int | None = None
    analysis: int | None = None
    content: int | None = None
    total: int | None = None


class PipelineRun(WireModel):
    success: bool = False
    research: ResearchOutput | None = None
    analysis: AnalysisOutput | None = None
    content: ContentOutput | None = None
    timing: StageTiming = Field(default_factory=StageTiming)
    errors: list[str] = Field(default_factory=list)
    failed_stage: PipelineStage | None = None


def format_output(run: PipelineRun) -> dict[str, Any]:
    """Project a run into the flat result shape.

    Successful runs give summary, insights, actions, highlights, visual hints
    and metadata. Failed runs give ``{error, message, partial}`` with the
    whole run as the partial payload.
    """
    if not run.success or run.content is None:
        return {
            "error": True,
            "message": ", ".join(run.errors),
            "partial": run.to_wire(),
        }

    content = run.content
    research = run.research or ResearchOutput()
    analysis = run.analysis or AnalysisOutput()
    return {
        "success": True,
        "summary": content.summary.to_wire(),
        "insights": [i.to_wire() for i in content.formatted_insights],
        "actions": [a.to_wire() for a in content.action_items],
        "highlights": list(content.highlights),
        "visual": content.visual_elements.to_wire(),
        "metadata": {
            "topics": list(research.topics),
            "themes": list(research.themes),
            "patterns": [p.to_wire() for p in analysis.patterns],
            "timing": run.timing.to_wire(),
        },
    }
