"""Data models for the research-augmented generator.

PlatformContent is the one canonical shape for generated posts. Model output
and legacy records that use ``x_twitter``, ``youtube_script`` or a structured
YouTube outline are mapped onto it by ``normalize_platform_content``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import Field

from scatterbrain.core.wire import LenientWireModel, WireModel

PLATFORMS = ("twitter", "linkedin", "reddit", "youtube")
LONG_FORM_PLATFORMS = frozenset({"linkedin", "reddit"})

_LEGACY_KEYS = {
    "x_twitter": "twitter",
    "youtube_script": "youtube",
}


class Sophistication(str, Enum):
    CASUAL = "casual"
    PROFESSIONAL = "professional"
    ACADEMIC = "academic"


class ProfilePreferences(WireModel):
    tone: str = "conversational"
    sophistication: Sophistication = Sophistication.PROFESSIONAL
    include_exploration: bool = True


class UserProfile(WireModel):
    """Caller-supplied voice description that shapes authored content."""

    voice: str = "default"
    expertise: list[str] = Field(default_factory=list)
    preferences: ProfilePreferences = Field(default_factory=ProfilePreferences)

    def cache_fragment(self) -> str:
        """Deterministic serialization used in cache keys."""
        return json.dumps(self.to_wire(), sort_keys=True, separators=(",", ":"))


class ResearchContext(LenientWireModel):
    domain: str = ""
    key_dimensions: list[str] = Field(default_factory=list)
    expert_perspectives: list[str] = Field(default_factory=list)
    counterintuitive_findings: list[str] = Field(default_factory=list)
    cross_disciplinary_connections: list[str] = Field(default_factory=list)
    current_developments: list[str] = Field(default_factory=list)
    authority_figures: list[str] = Field(default_factory=list)


class PlatformContent(WireModel):
    twitter: str = ""
    linkedin: str = ""
    reddit: str = ""
    youtube: str = ""

    def items(self) -> list[tuple[str, str]]:
        return [(p, getattr(self, p)) for p in PLATFORMS]

    def combined(self) -> str:
        return " ".join(text for _, text in self.items())


class ExplorationPaths(LenientWireModel):
    podcasts: list[str] = Field(default_factory=list)
    researchers: list[str] = Field(default_factory=list)
    related_topics: list[str] = Field(default_factory=list)
    practical_applications: list[str] = Field(default_factory=list)


class EnhancedContentResult(WireModel):
    research_context: ResearchContext
    content: PlatformContent
    exploration_paths: ExplorationPaths


def _render_outline(outline: dict[str, Any]) -> str:
    lines = []
    if outline.get("title"):
        lines.append(f"Title: {outline['title']}")
    if outline.get("description"):
        lines.append(f"Description: {outline['description']}")
    points = outline.get("main_points") or outline.get("mainPoints") or []
    if points:
        lines.append("Main Points:")
        lines.extend(f"- {point}" for point in points)
    rest = {
        k: v
        for k, v in outline.items()
        if k not in {"title", "description", "main_points", "mainPoints"}
    }
    for key, value in rest.items():
        lines.append(f"{key}: {value if isinstance(value, str) else json.dumps(value)}")
    return "\n".join(lines)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return _render_outline(value)
    if isinstance(value, list):
        return "\n".join(_as_text(v) for v in value)
    return str(value)


def normalize_platform_content(raw: Any) -> dict[str, str]:
    """Map any generated-content shape onto the four canonical platform keys.

    Accepts a dict or a JSON-encoded dict. Legacy keys are folded onto their
    canonical names (a canonical key wins when both are present), and
    structured values such as a YouTube outline are rendered to text.
    Platforms that are absent are omitted from the result.
    """
    if isinstance(raw, PlatformContent):
        return raw.to_wire()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return {}
    if not isinstance(raw, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in raw.items():
        canonical = _LEGACY_KEYS.get(key, key)
        if canonical not in PLATFORMS:
            continue
        if canonical in normalized and key != canonical:
            continue
        normalized[canonical] = _as_text(value)
    return normalized
