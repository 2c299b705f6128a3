"""Data models for voice discovery and personalization.

VoiceProfile is stored as a snake_case row in the ``voice_profiles`` table.
Requests and responses that cross the HTTP boundary (questionnaire answers,
feedback, voice-aware results) use camelCase via WireModel.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from scatterbrain.core.wire import WireModel
from scatterbrain.generator.models import (
    ExplorationPaths,
    PlatformContent,
    ResearchContext,
)


class Archetype(str, Enum):
    """Voice personas, in tie-break order."""

    EXPLORER = "explorer"
    TEACHER = "teacher"
    SYNTHESIZER = "synthesizer"
    IMPLEMENTER = "implementer"


class VocabularyLevel(str, Enum):
    CASUAL = "casual"
    PROFESSIONAL = "professional"
    ACADEMIC = "academic"


class SentenceComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class EngagementStyle(str, Enum):
    CONVERSATIONAL = "conversational"
    EDUCATIONAL = "educational"
    ANALYTICAL = "analytical"
    PRACTICAL = "practical"


class ResearchDepth(str, Enum):
    SURFACE = "surface"
    MODERATE = "moderate"
    DEEP = "deep"


class ToneAdjustment(str, Enum):
    MORE_FORMAL = "more_formal"
    LESS_FORMAL = "less_formal"
    MORE_EXPERT = "more_expert"
    LESS_EXPERT = "less_expert"


FORMALITY_MIN = 0
FORMALITY_MAX = 5
DEFAULT_FORMALITY = 3
DEFAULT_HUMOR = 2


class VoiceProfile(BaseModel):
    """Durable per-user voice preferences."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str
    archetype: Archetype = Archetype.EXPLORER
    archetype_confidence: float = 0.0
    natural_phrases: list[str] = Field(default_factory=list)
    avoided_phrases: list[str] = Field(default_factory=list)
    vocabulary_level: VocabularyLevel = VocabularyLevel.PROFESSIONAL
    sentence_complexity: SentenceComplexity = SentenceComplexity.MODERATE
    confirmed_expertise: list[str] = Field(default_factory=list)
    learning_interests: list[str] = Field(default_factory=list)
    engagement_style: EngagementStyle = EngagementStyle.CONVERSATIONAL
    humor_level: int = DEFAULT_HUMOR
    formality_level: int = DEFAULT_FORMALITY
    research_depth: ResearchDepth = ResearchDepth.MODERATE
    feedback_count: int = 0
    last_feedback_date: Optional[str] = None
    voice_maturity_score: float = 0.0
    onboarding_responses: list[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> VoiceProfile:
        # Stored rows may hold nulls for list/int columns
        cleaned = {k: v for k, v in record.items() if v is not None}
        return cls.model_validate(cleaned)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class DiscoveryQuestion(WireModel):
    id: str
    question: str
    type: str
    context: Optional[str] = None
    options: Optional[list[str]] = None


class VoiceDiscoveryResponse(WireModel):
    question_id: str
    answer: Any = None
    timestamp: Optional[datetime] = None


class VoiceArchetypeResult(WireModel):
    primary: Archetype
    confidence: float
    traits: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    scores: dict[str, float] = Field(default_factory=dict)


class VoiceFeedback(WireModel):
    content_id: str
    rating: int
    feedback_type: str
    specific_feedback: Optional[str] = None
    phrases_to_add: list[str] = Field(default_factory=list)
    phrases_to_remove: list[str] = Field(default_factory=list)
    tone_adjustment: Optional[ToneAdjustment] = None


class VoiceMetadata(WireModel):
    archetype: Archetype
    adaptations: list[str] = Field(default_factory=list)
    authenticity_score: float


class VoiceAwareContent(WireModel):
    content: PlatformContent
    exploration_paths: ExplorationPaths
    research_context: ResearchContext
    voice_metadata: VoiceMetadata
    needs_voice_onboarding: bool = False
