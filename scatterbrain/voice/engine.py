"""Voice-aware content generation and the feedback learning loop.

VoiceAwareContentEngine wraps the research-augmented generator: it loads the
user's voice profile, translates it into a generator UserProfile, refines the
generated posts toward the user's phrasing and scores how authentic the
result sounds. Feedback on generated content is recorded and folded back into
the profile, with every profile change written to the learning history.
"""

import logging
from typing import Any, Optional

from scatterbrain.core.exceptions import PersistenceError
from scatterbrain.core.store import (
    CONTENT_FEEDBACK,
    VOICE_LEARNING_HISTORY,
    VOICE_PROFILES,
    RecordStore,
    utc_now_iso,
)
from scatterbrain.generator.engine import ResearchAugmentedGenerator
from scatterbrain.generator.models import ProfilePreferences, Sophistication, UserProfile
from scatterbrain.voice.models import (
    FORMALITY_MAX,
    FORMALITY_MIN,
    Archetype,
    ResearchDepth,
    ToneAdjustment,
    VocabularyLevel,
    VoiceAwareContent,
    VoiceFeedback,
    VoiceMetadata,
    VoiceProfile,
)
from scatterbrain.voice.refiner import (
    RegexVoiceRefiner,
    VoiceRefiner,
    refine_content,
    score_authenticity,
)

logger = logging.getLogger(__name__)

REINFORCEMENT_RATING = 4
MATURITY_STEP = 0.05
MATURITY_MAX = 1.0
DEFAULT_AUTHENTICITY = 0.5

ARCHETYPE_TONES = {
    Archetype.EXPLORER: "curious and discovering",
    Archetype.TEACHER: "clear and educational",
    Archetype.SYNTHESIZER: "analytical and connective",
    Archetype.IMPLEMENTER: "practical and action-oriented",
}

DEFAULT_USER_PROFILE = UserProfile(
    voice="curious explorer",
    expertise=[],
    preferences=ProfilePreferences(
        tone="conversational and discovering",
        sophistication=Sophistication.PROFESSIONAL,
        include_exploration=True,
    ),
)


def profile_to_user_profile(profile: VoiceProfile) -> UserProfile:
    """Translate a stored voice profile into generator instructions."""
    return UserProfile(
        voice=f"{profile.archetype.value} archetype with {profile.engagement_style.value} style",
        expertise=list(profile.confirmed_expertise),
        preferences=ProfilePreferences(
            tone=ARCHETYPE_TONES[profile.archetype],
            sophistication=Sophistication(profile.vocabulary_level.value),
            include_exploration=True,
        ),
    )


def applied_adaptations(profile: VoiceProfile) -> list[str]:
    adaptations = [
        f"Using {profile.archetype.value} archetype",
        f"{profile.vocabulary_level.value} vocabulary",
        f"{profile.engagement_style.value} engagement",
    ]
    if profile.natural_phrases:
        adaptations.append(f"Incorporating {len(profile.natural_phrases)} natural phrases")
    if profile.confirmed_expertise:
        adaptations.append(f"Leveraging expertise in {', '.join(profile.confirmed_expertise)}")
    return adaptations


def _merge(existing: list[str], additions: list[str]) -> list[str]:
    merged = list(existing)
    for phrase in additions:
        if phrase and phrase not in merged:
            merged.append(phrase)
    return merged


def feedback_changes(profile: VoiceProfile, feedback: VoiceFeedback) -> dict[str, Any]:
    """Profile fields to change for a rating below the reinforcement threshold."""
    changes: dict[str, Any] = {}

    if feedback.phrases_to_add:
        changes["natural_phrases"] = _merge(profile.natural_phrases, feedback.phrases_to_add)
    if feedback.phrases_to_remove:
        changes["avoided_phrases"] = _merge(profile.avoided_phrases, feedback.phrases_to_remove)

    tone = feedback.tone_adjustment
    if tone == ToneAdjustment.MORE_FORMAL:
        changes["formality_level"] = min(FORMALITY_MAX, profile.formality_level + 1)
    elif tone == ToneAdjustment.LESS_FORMAL:
        changes["formality_level"] = max(FORMALITY_MIN, profile.formality_level - 1)
    elif tone == ToneAdjustment.MORE_EXPERT:
        changes["vocabulary_level"] = VocabularyLevel.ACADEMIC.value
        changes["research_depth"] = ResearchDepth.DEEP.value
    elif tone == ToneAdjustment.LESS_EXPERT:
        changes["vocabulary_level"] = VocabularyLevel.PROFESSIONAL.value
        changes["research_depth"] = ResearchDepth.MODERATE.value

    return changes


class VoiceAwareContentEngine:
    """Personalizes generated content with the user's stored voice profile.

    Args:
        generator: Research-augmented generator producing the raw posts.
        store: Record store holding voice profiles, feedback and history.
        refiner: String-level refiner, RegexVoiceRefiner when omitted.
    """

    def __init__(
        self,
        generator: ResearchAugmentedGenerator,
        store: RecordStore,
        refiner: Optional[VoiceRefiner] = None,
    ):
        self._generator = generator
        self._store = store
        self._refiner = refiner or RegexVoiceRefiner()

    @property
    def generator(self) -> ResearchAugmentedGenerator:
        return self._generator

    async def load_profile(self, user_id: str) -> Optional[VoiceProfile]:
        record = await self._store.find_one(VOICE_PROFILES, user_id=user_id)
        return VoiceProfile.from_record(record) if record else None

    async def generate_voice_aware_content(self, topic: str, user_id: str) -> VoiceAwareContent:
        """Generate content for a topic in the user's voice.

        Users without a profile get content from the default explorer profile
        and are flagged for onboarding.

        Raises:
            ValidationError: If topic is empty.
            UpstreamError: If a provider call fails.
            PersistenceError: If the profile cannot be read.
        """
        profile = await self.load_profile(user_id)

        if profile is None:
            logger.info("No voice profile, using defaults", extra={"user_id": user_id})
            result = await self._generator.generate(topic, DEFAULT_USER_PROFILE)
            return VoiceAwareContent(
                content=result.content,
                exploration_paths=result.exploration_paths,
                research_context=result.research_context,
                voice_metadata=VoiceMetadata(
                    archetype=Archetype.EXPLORER,
                    adaptations=["Using default voice profile"],
                    authenticity_score=DEFAULT_AUTHENTICITY,
                ),
                needs_voice_onboarding=True,
            )

        result = await self._generator.generate(topic, profile_to_user_profile(profile))
        refined = refine_content(self._refiner, result.content, profile)
        authenticity = score_authenticity(refined.combined(), profile)
        logger.info(
            "Voice-aware content ready (archetype=%s, authenticity=%.2f)",
            profile.archetype.value,
            authenticity,
            extra={"user_id": user_id},
        )

        return VoiceAwareContent(
            content=refined,
            exploration_paths=result.exploration_paths,
            research_context=result.research_context,
            voice_metadata=VoiceMetadata(
                archetype=profile.archetype,
                adaptations=applied_adaptations(profile),
                authenticity_score=authenticity,
            ),
        )

    async def process_voice_feedback(
        self, user_id: str, content_id: str, feedback: VoiceFeedback
    ) -> Optional[VoiceProfile]:
        """Record feedback and update the user's profile from it.

        Ratings of 4 or 5 reinforce the profile (maturity and counters only).
        Lower ratings merge phrase lists and apply the tone adjustment.

        Returns:
            The updated profile, or None when the user has no profile yet.

        Raises:
            PersistenceError: If the feedback record or profile cannot be written.
        """
        record = {
            "user_id": user_id,
            "content_id": content_id,
            "feedback_type": feedback.feedback_type,
            "rating": feedback.rating,
            "specific_feedback": feedback.specific_feedback,
            "phrases_to_add": feedback.phrases_to_add,
            "phrases_to_remove": feedback.phrases_to_remove,
            "tone_adjustment": feedback.tone_adjustment.value if feedback.tone_adjustment else None,
            "platform": "multi",
            "content_type": "analysis",
        }
        try:
            await self._store.insert(CONTENT_FEEDBACK, record)
        except PersistenceError as e:
            logger.error("Feedback write failed: %s", e, extra={"user_id": user_id})
            raise PersistenceError("Failed to process feedback")

        profile = await self.load_profile(user_id)
        if profile is None:
            logger.info("Feedback stored without a voice profile", extra={"user_id": user_id})
            return None

        now = utc_now_iso()
        if feedback.rating >= REINFORCEMENT_RATING:
            change_type = "reinforcement"
            old_value: dict[str, Any] = {
                "voice_maturity_score": profile.voice_maturity_score,
                "feedback_count": profile.feedback_count,
            }
            changes: dict[str, Any] = {
                "voice_maturity_score": min(
                    MATURITY_MAX, profile.voice_maturity_score + MATURITY_STEP
                ),
            }
        else:
            change_type = "pattern_update"
            changes = feedback_changes(profile, feedback)
            current = profile.to_record()
            old_value = {
                "natural_phrases": profile.natural_phrases,
                "avoided_phrases": profile.avoided_phrases,
                "formality_level": profile.formality_level,
            }
            old_value.update((k, current.get(k)) for k in changes if k not in old_value)

        changes["feedback_count"] = profile.feedback_count + 1
        changes["last_feedback_date"] = now

        updated = await self._store.update(VOICE_PROFILES, {"user_id": user_id}, changes)
        await self._store.insert(
            VOICE_LEARNING_HISTORY,
            {
                "user_id": user_id,
                "change_type": change_type,
                "old_value": old_value,
                "new_value": changes,
                "trigger_source": "user_feedback",
            },
        )
        logger.info(
            "Voice profile %s after rating %d",
            change_type,
            feedback.rating,
            extra={"user_id": user_id},
        )

        if updated:
            return VoiceProfile.from_record(updated[0])
        return VoiceProfile.from_record({**profile.to_record(), **changes})
