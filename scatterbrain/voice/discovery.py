"""Voice discovery: a fixed questionnaire scored into one of four archetypes.

Three multiple-choice questions vote for archetypes (two strong, one weak)
and the natural-phrases multi-select adds small keyword bonuses. The winning
archetype then seeds a VoiceProfile through fixed lookup tables.
"""

import logging
from typing import Any, Optional

from scatterbrain.voice.models import (
    Archetype,
    DiscoveryQuestion,
    EngagementStyle,
    ResearchDepth,
    SentenceComplexity,
    VocabularyLevel,
    VoiceArchetypeResult,
    VoiceDiscoveryResponse,
    VoiceProfile,
)

logger = logging.getLogger(__name__)

A = Archetype

DISCOVERY_QUESTIONS: tuple[DiscoveryQuestion, ...] = (
    DiscoveryQuestion(
        id="writing_excitement",
        question="When you discover something fascinating, what's your first instinct?",
        type="multiple_choice",
        options=[
            "I want to understand every detail and connection",
            "I need to share it with others immediately",
            "I start thinking about how to use or apply it",
            "I wonder what else this could lead to",
        ],
    ),
    DiscoveryQuestion(
        id="expertise_claim",
        question="Which statement best describes your relationship with knowledge?",
        type="multiple_choice",
        options=[
            "I share what I'm learning as I discover it",
            "I teach concepts I've thoroughly mastered",
            "I connect ideas from different areas I've studied",
            "I focus on practical applications I've tested",
        ],
    ),
    DiscoveryQuestion(
        id="content_fear",
        question="What concerns you most when sharing your thoughts publicly?",
        type="multiple_choice",
        options=[
            "Sounding like I know more than I actually do",
            "Not explaining things clearly enough",
            "Missing important connections or nuances",
            "Sharing advice that doesn't actually work",
        ],
    ),
    DiscoveryQuestion(
        id="natural_phrases",
        question="Which phrases feel most natural to you? (Select all that apply)",
        type="multi_select",
        options=[
            "I've been exploring...",
            "In my experience...",
            "Research suggests...",
            "Here's what I've learned...",
            "Let me break this down...",
            "This reminds me of...",
            "The data shows...",
            "I've found that...",
            "What if we considered...",
            "The key insight is...",
        ],
    ),
    DiscoveryQuestion(
        id="expertise_areas",
        question=(
            "In which areas do you have genuine, hands-on expertise? "
            "(Be honest - this ensures authentic content)"
        ),
        context="Select only areas where you have substantial experience or formal training",
        type="text",
    ),
    DiscoveryQuestion(
        id="learning_areas",
        question="What topics are you actively learning about but wouldn't claim expertise in?",
        context="These will be positioned as explorations rather than expert insights",
        type="text",
    ),
    DiscoveryQuestion(
        id="voice_inspiration",
        question="Whose writing or speaking style do you admire and why?",
        context="This helps us understand your aspirational voice",
        type="text",
    ),
)

# question id -> (option index -> archetype, points awarded)
CHOICE_SCORING: dict[str, tuple[tuple[Archetype, ...], float]] = {
    "writing_excitement": ((A.SYNTHESIZER, A.TEACHER, A.IMPLEMENTER, A.EXPLORER), 2.0),
    "expertise_claim": ((A.EXPLORER, A.TEACHER, A.SYNTHESIZER, A.IMPLEMENTER), 2.0),
    "content_fear": ((A.EXPLORER, A.TEACHER, A.SYNTHESIZER, A.IMPLEMENTER), 1.0),
}

PHRASE_KEYWORDS: dict[Archetype, tuple[str, ...]] = {
    A.EXPLORER: ("exploring", "learned"),
    A.TEACHER: ("break", "key insight"),
    A.SYNTHESIZER: ("reminds", "data"),
    A.IMPLEMENTER: ("experience", "found"),
}
PHRASE_POINTS = 0.5

# Confidence reported when no answer scored any points
NO_SIGNAL_CONFIDENCE = 0.25

ARCHETYPE_TRAITS: dict[Archetype, list[str]] = {
    A.EXPLORER: ["curious", "questioning", "discovery-oriented", "learning-focused"],
    A.TEACHER: ["clear", "structured", "helpful", "explanatory"],
    A.SYNTHESIZER: ["connective", "analytical", "pattern-seeking", "integrative"],
    A.IMPLEMENTER: ["practical", "action-oriented", "results-focused", "experiential"],
}

ARCHETYPE_RECOMMENDATIONS: dict[Archetype, list[str]] = {
    A.EXPLORER: [
        "Position yourself as a fellow learner discovering insights alongside your audience",
        "Use phrases like 'I discovered' and 'What I'm learning' to maintain authenticity",
        "Share your research process and sources to build credibility without false expertise",
    ],
    A.TEACHER: [
        "Focus on breaking down complex topics into digestible insights",
        "Use analogies and examples to make concepts accessible",
        "Structure content with clear learning objectives and takeaways",
    ],
    A.SYNTHESIZER: [
        "Highlight connections between different domains and ideas",
        "Use visual frameworks and models to illustrate relationships",
        "Position yourself as a pattern-recognizer and connector of concepts",
    ],
    A.IMPLEMENTER: [
        "Lead with practical applications and real-world examples",
        "Share specific steps and actionable frameworks",
        "Focus on outcomes and results rather than theory",
    ],
}

VOCABULARY_BY_ARCHETYPE = {
    A.EXPLORER: VocabularyLevel.PROFESSIONAL,
    A.TEACHER: VocabularyLevel.PROFESSIONAL,
    A.SYNTHESIZER: VocabularyLevel.ACADEMIC,
    A.IMPLEMENTER: VocabularyLevel.PROFESSIONAL,
}
COMPLEXITY_BY_ARCHETYPE = {
    A.EXPLORER: SentenceComplexity.MODERATE,
    A.TEACHER: SentenceComplexity.SIMPLE,
    A.SYNTHESIZER: SentenceComplexity.COMPLEX,
    A.IMPLEMENTER: SentenceComplexity.MODERATE,
}
ENGAGEMENT_BY_ARCHETYPE = {
    A.EXPLORER: EngagementStyle.CONVERSATIONAL,
    A.TEACHER: EngagementStyle.EDUCATIONAL,
    A.SYNTHESIZER: EngagementStyle.ANALYTICAL,
    A.IMPLEMENTER: EngagementStyle.PRACTICAL,
}
RESEARCH_DEPTH_BY_ARCHETYPE = {
    A.EXPLORER: ResearchDepth.MODERATE,
    A.TEACHER: ResearchDepth.MODERATE,
    A.SYNTHESIZER: ResearchDepth.DEEP,
    A.IMPLEMENTER: ResearchDepth.SURFACE,
}


def _find(responses: list[VoiceDiscoveryResponse], question_id: str) -> Optional[Any]:
    for response in responses:
        if response.question_id == question_id:
            return response.answer
    return None


def _split_areas(answer: Any) -> list[str]:
    if not answer:
        return []
    if isinstance(answer, list):
        answer = ",".join(str(a) for a in answer)
    return [part.strip() for part in str(answer).split(",") if part.strip()]


def _choice_index(answer: Any) -> Optional[int]:
    # Answers arrive as ints from the wizard, but JSON clients may send "2"
    if isinstance(answer, bool):
        return None
    try:
        return int(answer)
    except (TypeError, ValueError):
        return None


class VoiceDiscoveryAnalyzer:
    """Scores questionnaire answers and derives a starting voice profile."""

    def score(self, responses: list[VoiceDiscoveryResponse]) -> dict[Archetype, float]:
        scores = {archetype: 0.0 for archetype in Archetype}

        for response in responses:
            if response.question_id in CHOICE_SCORING:
                mapping, points = CHOICE_SCORING[response.question_id]
                index = _choice_index(response.answer)
                if index is None or not 0 <= index < len(mapping):
                    logger.debug(
                        "Ignoring out-of-range answer for %s: %r",
                        response.question_id,
                        response.answer,
                    )
                    continue
                scores[mapping[index]] += points

            elif response.question_id == "natural_phrases":
                phrases = response.answer if isinstance(response.answer, list) else []
                for phrase in phrases:
                    text = str(phrase)
                    for archetype, keywords in PHRASE_KEYWORDS.items():
                        if any(keyword in text for keyword in keywords):
                            scores[archetype] += PHRASE_POINTS

        return scores

    def analyze_responses(self, responses: list[VoiceDiscoveryResponse]) -> VoiceArchetypeResult:
        """Pick the primary archetype and report confidence, traits and recommendations.

        Ties go to the archetype listed first in Archetype. When nothing
        scored, the result is explorer with 0.25 confidence.
        """
        scores = self.score(responses)
        total = sum(scores.values())

        if total == 0:
            primary = Archetype.EXPLORER
            confidence = NO_SIGNAL_CONFIDENCE
        else:
            # max() keeps the first maximal item, which follows enum order
            primary = max(Archetype, key=lambda a: scores[a])
            confidence = scores[primary] / total

        return VoiceArchetypeResult(
            primary=primary,
            confidence=confidence,
            traits=list(ARCHETYPE_TRAITS[primary]),
            recommendations=self.recommendations(primary, responses),
            scores={a.value: s for a, s in scores.items()},
        )

    def recommendations(
        self, archetype: Archetype, responses: list[VoiceDiscoveryResponse]
    ) -> list[str]:
        recommendations = list(ARCHETYPE_RECOMMENDATIONS[archetype])
        expertise = _find(responses, "expertise_areas")
        if expertise:
            areas = ", ".join(_split_areas(expertise)) or str(expertise)
            recommendations.append(
                f"Leverage your expertise in {areas} to add unique perspectives"
            )
            recommendations.append(
                "Feel confident sharing first-hand experiences in your areas of expertise"
            )
        return recommendations

    def generate_voice_profile(
        self,
        result: VoiceArchetypeResult,
        responses: list[VoiceDiscoveryResponse],
        *,
        user_id: str,
    ) -> VoiceProfile:
        """Build a profile seeded from the archetype and the raw answers."""
        natural = _find(responses, "natural_phrases")
        primary = result.primary
        return VoiceProfile(
            user_id=user_id,
            archetype=primary,
            archetype_confidence=result.confidence,
            natural_phrases=[str(p) for p in natural] if isinstance(natural, list) else [],
            confirmed_expertise=_split_areas(_find(responses, "expertise_areas")),
            learning_interests=_split_areas(_find(responses, "learning_areas")),
            onboarding_responses=[r.to_wire() for r in responses],
            vocabulary_level=VOCABULARY_BY_ARCHETYPE[primary],
            sentence_complexity=COMPLEXITY_BY_ARCHETYPE[primary],
            engagement_style=ENGAGEMENT_BY_ARCHETYPE[primary],
            research_depth=RESEARCH_DEPTH_BY_ARCHETYPE[primary],
        )
