"""Shared test fixtures for the Scatterbrain content engine.

Provides a scripted LLM provider, canned model replies for every stage, and
store fixtures, so no test reaches a real model or database.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional, Union

import pytest

from scatterbrain.core.llm_factory import LLMProvider, LLMResponse
from scatterbrain.core.prompted_call import PromptedCall
from scatterbrain.core.store import InMemoryRecordStore, JsonFileRecordStore

Reply = Union[str, dict, BaseException]


class FakeLLMProvider(LLMProvider):
    """LLMProvider that replays scripted replies in order.

    Each reply is a string (returned as-is), a dict (returned as JSON), or an
    exception (raised). Every call is recorded in ``calls``.
    """

    def __init__(self, replies: Optional[list[Reply]] = None, *, delay: float = 0.0):
        self.replies: list[Reply] = list(replies or [])
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    @property
    def model(self) -> str:
        return "fake-model"

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            raise AssertionError("FakeLLMProvider ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return LLMResponse(content=reply, model=model or self.model)


# Pipeline stage replies

RESEARCH_REPLY = {
    "topics": ["remote work", "office culture", "productivity"],
    "themes": ["autonomy", "collaboration"],
    "questions": ["Is remote work actually declining?"],
    "keyPoints": ["Return-to-office mandates are rising"],
    "categories": {"ideas": ["hybrid schedules"], "tasks": [], "concerns": ["isolation"]},
    "context": "Opinion about the future of remote work",
}

ANALYSIS_REPLY = {
    "patterns": [
        {"pattern": "Control vs trust", "evidence": ["mandates", "monitoring software"]},
        {"pattern": "Hybrid as compromise", "evidence": ["2-3 office days"]},
    ],
    "connections": [{"from": "autonomy", "to": "retention", "relationship": "drives"}],
    "insights": [
        {"insight": "Mandates signal trust gaps", "importance": "high", "rationale": "..."}
    ],
    "synthesis": "Remote work is shifting, not dying",
    "priorities": ["Measure outcomes, not presence"],
}

CONTENT_REPLY = {
    "summary": {
        "headline": "Remote work is evolving, not dying",
        "overview": "Mandates reveal a trust problem more than a productivity one.",
    },
    "formattedInsights": [
        {
            "title": "Trust gap",
            "description": "Office mandates often mask a lack of trust.",
            "icon": "🔍",
            "color": "blue",
        },
        {
            "title": "Hybrid norm",
            "description": "Hybrid schedules are becoming the default.",
            "icon": "🧭",
            "color": "green",
        },
    ],
    "actionItems": [
        {"action": "Define outcome metrics", "rationale": "Presence is a poor proxy", "priority": "high"}
    ],
    "highlights": ["Remote work is shifting", "Trust drives policy"],
    "visualElements": {"primaryColor": "blue", "mood": "analytical", "emphasis": ["trust"]},
}

# Generator phase replies

GEN_RESEARCH_REPLY = {
    "domain": "Transportation and energy",
    "keyDimensions": ["battery chemistry", "charging infrastructure"],
    "expertPerspectives": ["Energy economists on grid load"],
    "counterintuitiveFindings": ["EV lifetime emissions depend on the grid mix"],
    "crossDisciplinaryConnections": ["urban planning"],
    "currentDevelopments": ["solid-state batteries"],
    "authorityFigures": ["Jane Doe: Battery Futures"],
}

GEN_CONTENT_REPLY = {
    "twitter": "1/ EVs are not just cars with batteries.",
    "linkedin": "However, the grid matters more than the car. Perhaps that is the real story.",
    "reddit": "Let's talk about EVs. Furthermore, charging is the bottleneck.",
    "youtube": "Title: The EV grid problem",
}

GEN_EXPLORATION_REPLY = {
    "podcasts": ["The Energy Gang: EV episode"],
    "researchers": ["Jane Doe: Battery Futures (Substack)"],
    "relatedTopics": ["grid storage", "urban planning", "lithium mining"],
    "practicalApplications": ["Track your commute energy use for a week"],
}


def pipeline_replies() -> list[Reply]:
    return [RESEARCH_REPLY, ANALYSIS_REPLY, CONTENT_REPLY]


def generator_replies() -> list[Reply]:
    return [GEN_RESEARCH_REPLY, GEN_CONTENT_REPLY, GEN_EXPLORATION_REPLY]


@pytest.fixture
def fake_provider() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
def prompted_call(fake_provider: FakeLLMProvider) -> PromptedCall:
    return PromptedCall(fake_provider)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def json_store_file(tmp_path: Path) -> Path:
    """Path for a temporary JSON record store (not created)."""
    return tmp_path / "records.json"


@pytest.fixture
def json_store(json_store_file: Path) -> JsonFileRecordStore:
    return JsonFileRecordStore(json_store_file)
