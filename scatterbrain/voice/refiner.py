"""String-level voice refinement and authenticity scoring.

Refinement is deterministic apart from which natural phrase gets prepended,
and it makes no model calls. It sits behind the VoiceRefiner protocol so a
tokenizer-aware implementation can replace the regex one without touching
the engine.
"""

import random
import re
from typing import Optional, Protocol, runtime_checkable

from scatterbrain.generator.models import LONG_FORM_PLATFORMS, PlatformContent
from scatterbrain.voice.models import DEFAULT_HUMOR, DEFAULT_FORMALITY, VoiceProfile

BASE_AUTHENTICITY = 0.7
NATURAL_PHRASE_WEIGHT = 0.1
NATURAL_PHRASE_FRACTION_CAP = 0.3
AVOIDED_PHRASE_PENALTY = 0.1
CONFIDENCE_BONUS = 0.1
CONFIDENCE_THRESHOLD = 0.8

FORMAL_TO_CASUAL = {
    "perhaps": "maybe",
    "however": "but",
    "therefore": "so",
    "furthermore": "also",
}
CASUAL_TO_FORMAL = {casual: formal for formal, casual in FORMAL_TO_CASUAL.items()}

_FORMAL_WORDS = re.compile(r"\b(?:" + "|".join(FORMAL_TO_CASUAL) + r")\b", re.IGNORECASE)
_CASUAL_WORDS = re.compile(r"\b(?:" + "|".join(CASUAL_TO_FORMAL) + r")\b", re.IGNORECASE)


@runtime_checkable
class VoiceRefiner(Protocol):
    def refine(self, text: str, platform: str, profile: VoiceProfile) -> str: ...


def adjust_formality(text: str, formality_level: int) -> str:
    """Swap connectives toward casual (level <= 2) or formal (level >= 4).

    Matching ignores case; replacements are the lowercase target word.
    Level 3 returns text unchanged.
    """
    if formality_level <= 2:
        return _FORMAL_WORDS.sub(lambda m: FORMAL_TO_CASUAL[m.group(0).lower()], text)
    if formality_level >= 4:
        return _CASUAL_WORDS.sub(lambda m: CASUAL_TO_FORMAL[m.group(0).lower()], text)
    return text


def strip_avoided_phrases(text: str, phrases: list[str]) -> str:
    """Remove every case-insensitive occurrence of each phrase, mid-word included."""
    for phrase in phrases:
        if phrase:
            text = re.sub(re.escape(phrase), "", text, flags=re.IGNORECASE)
    return text


def adjust_humor(text: str, humor_level: int) -> str:
    # Extension point: humor is not applied yet.
    return text


class RegexVoiceRefiner:
    """Regex-based refiner.

    Args:
        rng: Source of randomness for picking the natural phrase to prepend.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def refine(self, text: str, platform: str, profile: VoiceProfile) -> str:
        refined = text

        phrases = [p for p in profile.natural_phrases if p]
        if phrases and platform in LONG_FORM_PLATFORMS:
            phrase = self._rng.choice(phrases)
            if phrase.lower() not in refined.lower():
                refined = f"{phrase} {refined}"

        refined = strip_avoided_phrases(refined, profile.avoided_phrases)

        formality = profile.formality_level
        refined = adjust_formality(
            refined, DEFAULT_FORMALITY if formality is None else formality
        )

        if platform in ("twitter", "reddit"):
            refined = adjust_humor(refined, profile.humor_level or DEFAULT_HUMOR)

        return refined


def refine_content(
    refiner: VoiceRefiner, content: PlatformContent, profile: VoiceProfile
) -> PlatformContent:
    """Run every platform string through the refiner."""
    return PlatformContent(
        **{platform: refiner.refine(text, platform, profile) for platform, text in content.items()}
    )


def score_authenticity(text: str, profile: VoiceProfile) -> float:
    """Heuristic 0-1 match between text and the profile's phrase preferences.

    Starts at 0.7, adds up to 0.1 scaled by the share of natural phrases
    present (share capped at 0.3), subtracts 0.1 per distinct avoided phrase
    still present, and adds 0.1 when archetype confidence exceeds 0.8.
    """
    lowered = text.lower()
    score = BASE_AUTHENTICITY

    natural = [p for p in profile.natural_phrases if p]
    if natural:
        found = sum(1 for p in natural if p.lower() in lowered)
        if found:
            fraction = found / len(natural)
            score += NATURAL_PHRASE_WEIGHT * min(fraction, NATURAL_PHRASE_FRACTION_CAP)

    avoided = {p.lower() for p in profile.avoided_phrases if p}
    score -= AVOIDED_PHRASE_PENALTY * sum(1 for p in avoided if p in lowered)

    if profile.archetype_confidence > CONFIDENCE_THRESHOLD:
        score += CONFIDENCE_BONUS

    return max(0.0, min(1.0, score))
