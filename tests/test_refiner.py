"""Tests for voice refinement and authenticity scoring."""

import random

import pytest

from scatterbrain.generator.models import PlatformContent
from scatterbrain.voice.models import VoiceProfile
from scatterbrain.voice.refiner import (
    RegexVoiceRefiner,
    VoiceRefiner,
    adjust_formality,
    refine_content,
    score_authenticity,
    strip_avoided_phrases,
)


def _profile(**overrides) -> VoiceProfile:
    return VoiceProfile(user_id="u1", **overrides)


class TestAdjustFormality:
    def test_casual_level_swaps_formal_words(self):
        text = "However, perhaps we should wait. Therefore I agree. Furthermore, yes."
        assert adjust_formality(text, 1) == "but, maybe we should wait. so I agree. also, yes."

    def test_formal_level_swaps_casual_words(self):
        assert adjust_formality("Maybe later, but so what", 5) == "perhaps later, however therefore what"

    def test_neutral_level_is_unchanged(self):
        text = "However, maybe."
        assert adjust_formality(text, 3) == text

    def test_whole_words_only(self):
        assert adjust_formality("butter and also", 4) == "butter and furthermore"

    def test_one_direction_per_pass(self):
        # formal -> casual output is not swapped back within the same call
        assert adjust_formality("however", 0) == "but"


class TestStripAvoidedPhrases:
    def test_case_insensitive(self):
        assert strip_avoided_phrases("Game-Changer alert: a game-changer", ["game-changer"]) == " alert: a "

    def test_matches_inside_words(self):
        assert strip_avoided_phrases("synergistic", ["synerg"]) == "istic"

    def test_regex_characters_are_literal(self):
        assert strip_avoided_phrases("cost (approx.) 5", ["(approx.)"]) == "cost  5"


class TestRegexVoiceRefiner:
    def test_satisfies_protocol(self):
        assert isinstance(RegexVoiceRefiner(), VoiceRefiner)

    @pytest.mark.parametrize("platform", ["linkedin", "reddit"])
    def test_prepends_natural_phrase_on_long_form(self, platform):
        refiner = RegexVoiceRefiner(random.Random(0))
        profile = _profile(natural_phrases=["Here's the thing:"])

        assert refiner.refine("EVs are great.", platform, profile) == "Here's the thing: EVs are great."

    @pytest.mark.parametrize("platform", ["twitter", "youtube"])
    def test_no_phrase_on_short_form(self, platform):
        refiner = RegexVoiceRefiner(random.Random(0))
        profile = _profile(natural_phrases=["Here's the thing:"])

        assert refiner.refine("EVs are great.", platform, profile) == "EVs are great."

    def test_phrase_not_repeated(self):
        refiner = RegexVoiceRefiner(random.Random(0))
        profile = _profile(natural_phrases=["honestly"])

        assert refiner.refine("Honestly, EVs.", "linkedin", profile) == "Honestly, EVs."

    def test_full_refinement(self):
        refiner = RegexVoiceRefiner(random.Random(0))
        profile = _profile(
            avoided_phrases=["leverage "],
            formality_level=1,
        )

        refined = refiner.refine("However, we leverage batteries.", "reddit", profile)

        assert refined == "but, we batteries."

    def test_refine_content_covers_every_platform(self):
        refiner = RegexVoiceRefiner(random.Random(0))
        content = PlatformContent(
            twitter="Perhaps.", linkedin="Perhaps.", reddit="Perhaps.", youtube="Perhaps."
        )

        refined = refine_content(refiner, content, _profile(formality_level=2))

        assert refined == PlatformContent(
            twitter="maybe.", linkedin="maybe.", reddit="maybe.", youtube="maybe."
        )
        assert content.twitter == "Perhaps."


class TestScoreAuthenticity:
    def test_baseline(self):
        assert score_authenticity("anything", _profile()) == pytest.approx(0.7)

    def test_natural_phrase_bonus_is_capped(self):
        profile = _profile(natural_phrases=["alpha", "beta"])
        # half the phrases present, fraction capped at 0.3
        assert score_authenticity("alpha only", profile) == pytest.approx(0.73)

    def test_avoided_phrase_penalty_per_distinct_phrase(self):
        profile = _profile(avoided_phrases=["synergy", "Synergy", "paradigm"])
        text = "synergy synergy paradigm"
        assert score_authenticity(text, profile) == pytest.approx(0.5)

    def test_confidence_bonus(self):
        assert score_authenticity("x", _profile(archetype_confidence=0.81)) == pytest.approx(0.8)
        assert score_authenticity("x", _profile(archetype_confidence=0.8)) == pytest.approx(0.7)

    def test_clamped_to_unit_interval(self):
        profile = _profile(avoided_phrases=[f"w{i}" for i in range(10)])
        text = " ".join(f"w{i}" for i in range(10))
        assert score_authenticity(text, profile) == 0.0
