"""Tests for voice discovery scoring and profile generation."""

import pytest

from scatterbrain.voice.discovery import (
    ARCHETYPE_RECOMMENDATIONS,
    ARCHETYPE_TRAITS,
    DISCOVERY_QUESTIONS,
    VoiceDiscoveryAnalyzer,
)
from scatterbrain.voice.models import (
    Archetype,
    EngagementStyle,
    ResearchDepth,
    SentenceComplexity,
    VocabularyLevel,
    VoiceDiscoveryResponse,
)


def _answers(**answers) -> list[VoiceDiscoveryResponse]:
    return [VoiceDiscoveryResponse(question_id=q, answer=a) for q, a in answers.items()]


@pytest.fixture
def analyzer() -> VoiceDiscoveryAnalyzer:
    return VoiceDiscoveryAnalyzer()


class TestQuestions:
    def test_seven_questions(self):
        assert [q.id for q in DISCOVERY_QUESTIONS] == [
            "writing_excitement",
            "expertise_claim",
            "content_fear",
            "natural_phrases",
            "expertise_areas",
            "learning_areas",
            "voice_inspiration",
        ]

    def test_choice_questions_have_four_options(self):
        for question in DISCOVERY_QUESTIONS[:3]:
            assert question.type == "multiple_choice"
            assert len(question.options) == 4


class TestScore:
    def test_choice_points(self, analyzer):
        scores = analyzer.score(
            _answers(writing_excitement=0, expertise_claim=2, content_fear=3)
        )
        assert scores[Archetype.SYNTHESIZER] == 4.0
        assert scores[Archetype.IMPLEMENTER] == 1.0
        assert scores[Archetype.EXPLORER] == 0.0

    def test_phrase_keywords(self, analyzer):
        scores = analyzer.score(
            _answers(
                natural_phrases=[
                    "I've been exploring...",
                    "Here's what I've learned...",
                    "The data shows...",
                    "In my experience...",
                ]
            )
        )
        assert scores[Archetype.EXPLORER] == 1.0
        assert scores[Archetype.SYNTHESIZER] == 0.5
        assert scores[Archetype.IMPLEMENTER] == 0.5
        assert scores[Archetype.TEACHER] == 0.0

    def test_numeric_strings_accepted(self, analyzer):
        scores = analyzer.score(_answers(expertise_claim="1"))
        assert scores[Archetype.TEACHER] == 2.0

    @pytest.mark.parametrize("answer", [4, -1, "abc", None, True])
    def test_invalid_choices_ignored(self, analyzer, answer):
        scores = analyzer.score(_answers(writing_excitement=answer))
        assert sum(scores.values()) == 0.0


class TestAnalyzeResponses:
    def test_clear_winner(self, analyzer):
        result = analyzer.analyze_responses(
            _answers(writing_excitement=2, expertise_claim=3, content_fear=3)
        )

        assert result.primary == Archetype.IMPLEMENTER
        assert result.confidence == pytest.approx(1.0)
        assert result.traits == ARCHETYPE_TRAITS[Archetype.IMPLEMENTER]
        assert result.recommendations == ARCHETYPE_RECOMMENDATIONS[Archetype.IMPLEMENTER]
        assert result.scores["implementer"] == 5.0

    def test_tie_goes_to_first_archetype(self, analyzer):
        # teacher 2 (writing_excitement=1), synthesizer 2 (expertise_claim=2)
        result = analyzer.analyze_responses(_answers(writing_excitement=1, expertise_claim=2))

        assert result.primary == Archetype.TEACHER
        assert result.confidence == pytest.approx(0.5)

    def test_no_signal_defaults_to_explorer(self, analyzer):
        result = analyzer.analyze_responses(_answers(voice_inspiration="Carl Sagan"))

        assert result.primary == Archetype.EXPLORER
        assert result.confidence == 0.25

    def test_expertise_adds_recommendations(self, analyzer):
        result = analyzer.analyze_responses(
            _answers(expertise_claim=1, expertise_areas="physics, teaching ")
        )

        assert len(result.recommendations) == 5
        assert result.recommendations[3] == (
            "Leverage your expertise in physics, teaching to add unique perspectives"
        )


class TestGenerateVoiceProfile:
    def test_profile_from_synthesizer(self, analyzer):
        responses = _answers(
            writing_excitement=0,
            expertise_claim=2,
            natural_phrases=["This reminds me of..."],
            expertise_areas="economics,  history",
            learning_areas=["biology", "chess"],
        )
        result = analyzer.analyze_responses(responses)

        profile = analyzer.generate_voice_profile(result, responses, user_id="u1")

        assert profile.user_id == "u1"
        assert profile.archetype == Archetype.SYNTHESIZER
        assert profile.archetype_confidence == pytest.approx(1.0)
        assert profile.natural_phrases == ["This reminds me of..."]
        assert profile.confirmed_expertise == ["economics", "history"]
        assert profile.learning_interests == ["biology", "chess"]
        assert profile.vocabulary_level == VocabularyLevel.ACADEMIC
        assert profile.sentence_complexity == SentenceComplexity.COMPLEX
        assert profile.engagement_style == EngagementStyle.ANALYTICAL
        assert profile.research_depth == ResearchDepth.DEEP
        assert profile.formality_level == 3
        assert profile.humor_level == 2
        assert profile.onboarding_responses[0] == {
            "questionId": "writing_excitement",
            "answer": 0,
            "timestamp": None,
        }

    def test_profile_without_optional_answers(self, analyzer):
        responses = _answers(writing_excitement=2)
        result = analyzer.analyze_responses(responses)

        profile = analyzer.generate_voice_profile(result, responses, user_id="u2")

        assert profile.archetype == Archetype.IMPLEMENTER
        assert profile.research_depth == ResearchDepth.SURFACE
        assert profile.engagement_style == EngagementStyle.PRACTICAL
        assert profile.natural_phrases == []
        assert profile.confirmed_expertise == []
