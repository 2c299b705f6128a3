"""Request boundary for the content engine.

ThoughtService turns validated request bodies into engine calls and store
writes. Each operation validates its input before any network call, runs
the model-bound work under the outer request budget, and persists results
only after that work finishes. The HTTP layer (scatterbrain.server) and the
CLI (scatterbrain.main) both drive the engine through this class.
"""

import asyncio
from typing import Any, AsyncIterator, Awaitable, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from scatterbrain.core.exceptions import (
    PersistenceError,
    PipelineFailedError,
    ScatterbrainError,
    UpstreamTimeoutError,
    ValidationError,
)
from scatterbrain.core.logger import get_request_logger
from scatterbrain.core.store import (
    CONTENT_FEEDBACK,
    THOUGHTS,
    VOICE_LEARNING_HISTORY,
    VOICE_PROFILES,
    RecordStore,
)
from scatterbrain.generator.models import (
    ProfilePreferences,
    Sophistication,
    UserProfile,
    normalize_platform_content,
)
from scatterbrain.pipeline.agents import AnalysisPipeline, EventCallback
from scatterbrain.pipeline.models import PipelineRun, format_output
from scatterbrain.voice.discovery import DISCOVERY_QUESTIONS, VoiceDiscoveryAnalyzer
from scatterbrain.voice.engine import VoiceAwareContentEngine
from scatterbrain.voice.models import VoiceDiscoveryResponse, VoiceFeedback, VoiceProfile

T = TypeVar("T")

DEFAULT_REQUEST_TIMEOUT = 45.0
SOURCE_TYPES = ("text", "url")
RATING_MIN = 1
RATING_MAX = 5
DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 100
THOUGHT_CONTENT_CHARS = 500

# Applied to /generate requests that carry no userProfile
GENERATE_DEFAULT_PROFILE = UserProfile(
    voice="conversational yet sophisticated",
    expertise=["general knowledge"],
    preferences=ProfilePreferences(
        tone="professional",
        sophistication=Sophistication.PROFESSIONAL,
        include_exploration=True,
    ),
)


def _require_text(body: dict[str, Any], key: str = "content") -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Content is required and must be a string")
    return value


def _optional_profile(body: dict[str, Any]) -> Optional[UserProfile]:
    if body.get("userProfile") is None:
        return None
    try:
        return UserProfile.model_validate(body["userProfile"])
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid userProfile: {e.error_count()} field error(s)")


def thought_posts(result: dict[str, Any]) -> dict[str, str]:
    """Derive platform posts for a thought from a formatted pipeline result."""
    summary = result.get("summary") or {}
    insights = result.get("insights") or []
    descriptions = [i.get("description", "") for i in insights if i.get("description")]
    headline = summary.get("headline", "")
    overview = summary.get("overview", "")
    return normalize_platform_content(
        {
            "twitter": descriptions[0] if descriptions else "Key insight from your thought",
            "reddit": "\n\n".join(descriptions) or "Discussion starter",
            "linkedin": f"{headline}\n\n{overview}",
            "youtube": {
                "title": headline,
                "description": overview,
                "main_points": result.get("highlights") or [],
            },
        }
    )


def thought_record(
    user_id: str, text: str, source_type: str, result: dict[str, Any]
) -> dict[str, Any]:
    """Project a formatted pipeline result into a thoughts row."""
    summary = result.get("summary") or {}
    metadata = result.get("metadata") or {}
    patterns = metadata.get("patterns") or []
    return {
        "user_id": user_id,
        "title": summary.get("headline") or "New Insight",
        "content": text[:THOUGHT_CONTENT_CHARS],
        "source_type": source_type,
        "source_data": text,
        "analysis": {
            "analysis": summary.get("overview", ""),
            "research_suggestions": [p.get("pattern", "") for p in patterns],
            "key_themes": metadata.get("themes") or [],
            "connections": [" → ".join(p.get("evidence") or []) for p in patterns],
            "insights": result.get("insights") or [],
            "action_items": result.get("actions") or [],
            "visual_elements": result.get("visual") or {},
        },
        "generated_content": thought_posts(result),
        "tags": metadata.get("topics") or [],
    }


class ThoughtService:
    """Composes pipeline, voice engine, discovery analyzer and store per request.

    Args:
        pipeline: Three-stage analysis pipeline.
        voice_engine: Voice-aware generator and feedback processor.
        store: Record store for thoughts, profiles and feedback.
        analyzer: Questionnaire scorer, a default instance when omitted.
        request_timeout: Outer budget in seconds for model-bound work.
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        voice_engine: VoiceAwareContentEngine,
        store: RecordStore,
        *,
        analyzer: Optional[VoiceDiscoveryAnalyzer] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self._pipeline = pipeline
        self._voice_engine = voice_engine
        self._store = store
        self._analyzer = analyzer or VoiceDiscoveryAnalyzer()
        self.request_timeout = request_timeout

    async def _within_budget(self, work: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(work, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise UpstreamTimeoutError(
                f"Request exceeded {self.request_timeout:g}s budget"
            )

    # Pipeline analysis

    def validate_analysis(self, body: dict[str, Any]) -> tuple[str, str]:
        """Check an analysis request body.

        Returns:
            The submitted text and its source type.

        Raises:
            ValidationError: If content is missing or a field is malformed.
        """
        text = _require_text(body)
        source_type = body.get("sourceType") or "text"
        if source_type not in SOURCE_TYPES:
            raise ValidationError(f"sourceType must be one of: {', '.join(SOURCE_TYPES)}")
        _optional_profile(body)
        return text, source_type

    async def _run_pipeline(
        self, text: str, on_event: Optional[EventCallback] = None
    ) -> PipelineRun:
        return await self._within_budget(self._pipeline.run(text, on_event))

    @staticmethod
    def _successful_result(run: PipelineRun) -> dict[str, Any]:
        formatted = format_output(run)
        if formatted.get("error"):
            raise PipelineFailedError(formatted["message"], partial=formatted["partial"])
        return formatted

    async def _save_thought(
        self, user_id: str, text: str, source_type: str, result: dict[str, Any]
    ) -> str:
        try:
            thought = await self._store.insert(
                THOUGHTS, thought_record(user_id, text, source_type, result)
            )
        except PersistenceError as e:
            raise PersistenceError(f"Failed to save: {e}", result=result)
        return thought["id"]

    async def analyze(self, user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Run the pipeline on a submission and save the resulting thought.

        Raises:
            ValidationError: If the body is malformed.
            UpstreamTimeoutError: If the pipeline exceeds the request budget.
            PipelineFailedError: If a stage failed; carries the partial run.
            PersistenceError: If the thought cannot be saved; carries the result.
        """
        log = get_request_logger(__name__, user_id)
        text, source_type = self.validate_analysis(body)
        log.info("Analysis requested (%d chars, %s)", len(text), source_type)

        run = await self._run_pipeline(text)
        result = self._successful_result(run)
        thought_id = await self._save_thought(user_id, text, source_type, result)
        log.info("Saved thought %s", thought_id)
        return {"success": True, "thoughtId": thought_id, "result": result}

    async def stream_analysis(
        self, user_id: str, text: str, source_type: str = "text"
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield progress events for one pipeline run.

        The last event is always terminal: ``complete`` with the thought id
        and result, or ``error`` with the error payload. Closing the iterator
        early cancels the pipeline.
        """
        log = get_request_logger(__name__, user_id, stream=True)
        queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue()
        task = asyncio.create_task(self._run_pipeline(text, queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(None))

        yield {"status": "initialized", "message": "Starting 3-agent synthesis..."}
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event

            result = self._successful_result(task.result())
            yield {"stage": "saving", "status": "processing", "message": "Saving your insight..."}
            thought_id = await self._save_thought(user_id, text, source_type, result)
            log.info("Saved streamed thought %s", thought_id)
            yield {
                "stage": "complete",
                "status": "success",
                "thoughtId": thought_id,
                "result": result,
            }
        except ScatterbrainError as e:
            log.warning("Streamed analysis failed: %s", e, extra={"kind": e.kind.value})
            yield {"stage": "error", "status": "failed", **e.to_dict()}
        finally:
            if not task.done():
                task.cancel()

    # Research-augmented generation

    async def generate(self, user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Generate platform content for {topic, userProfile?} without voice data.

        Nothing is persisted. A cache hit returns the earlier result.

        Raises:
            ValidationError: If topic is missing or userProfile is malformed.
            UpstreamTimeoutError: If generation exceeds the request budget.
            UpstreamError: If a provider call fails.
        """
        log = get_request_logger(__name__, user_id)
        topic = body.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise ValidationError("Topic is required")
        profile = _optional_profile(body) or GENERATE_DEFAULT_PROFILE

        log.info("Generation requested (%d chars)", len(topic))
        result = await self._within_budget(
            self._voice_engine.generator.generate(topic, profile)
        )
        return result.to_wire()

    # Voice-aware generation

    async def voice_analyze(self, user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Generate voice-aware content and save it as a thought.

        Raises:
            ValidationError: If content is missing.
            UpstreamTimeoutError: If generation exceeds the request budget.
            UpstreamError: If a provider call fails.
            PersistenceError: If the thought cannot be saved; carries the result.
        """
        log = get_request_logger(__name__, user_id)
        text = _require_text(body)

        voice_result = await self._within_budget(
            self._voice_engine.generate_voice_aware_content(text, user_id)
        )
        analysis = voice_result.to_wire()
        metadata = voice_result.voice_metadata
        domain = voice_result.research_context.domain

        record: dict[str, Any] = {
            "user_id": user_id,
            "brain_id": body.get("brainId"),
            "title": domain or "New Insight",
            "content": text[:THOUGHT_CONTENT_CHARS],
            "source_type": "text",
            "source_data": text,
            "analysis": {
                "content": analysis["content"],
                "explorationPaths": analysis["explorationPaths"],
                "voiceMetadata": analysis["voiceMetadata"],
            },
            "generated_content": normalize_platform_content(voice_result.content),
            "tags": [domain] if domain else [],
        }
        if not voice_result.needs_voice_onboarding:
            record["voice_archetype"] = metadata.archetype.value
            record["authenticity_score"] = metadata.authenticity_score

        try:
            thought = await self._store.insert(THOUGHTS, record)
        except PersistenceError as e:
            raise PersistenceError(f"Failed to store analysis: {e}", result=analysis)

        log.info(
            "Saved voice-aware thought %s (archetype=%s)",
            thought["id"],
            metadata.archetype.value,
        )
        return {"success": True, "thoughtId": thought["id"], "analysis": analysis}

    # Voice discovery

    def discovery_questions(self) -> dict[str, Any]:
        questions = [q.to_wire() for q in DISCOVERY_QUESTIONS]
        return {"questions": questions, "totalQuestions": len(questions)}

    async def submit_discovery(self, user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Score questionnaire answers and create or replace the user's profile.

        Replacing an existing profile appends an archetype_change record to
        the learning history.
        """
        log = get_request_logger(__name__, user_id)
        raw = body.get("responses")
        if not isinstance(raw, list) or not raw:
            raise ValidationError("Responses are required")
        try:
            responses = [VoiceDiscoveryResponse.model_validate(r) for r in raw]
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid responses: {e.error_count()} field error(s)")

        result = self._analyzer.analyze_responses(responses)
        profile = self._analyzer.generate_voice_profile(result, responses, user_id=user_id)
        record = profile.to_record()

        existing = await self._store.find_one(VOICE_PROFILES, user_id=user_id)
        if existing:
            updated = await self._store.update(VOICE_PROFILES, {"user_id": user_id}, record)
            saved = updated[0] if updated else {**existing, **record}
            await self._store.insert(
                VOICE_LEARNING_HISTORY,
                {
                    "user_id": user_id,
                    "change_type": "archetype_change",
                    "old_value": {"archetype": existing.get("archetype")},
                    "new_value": {"archetype": profile.archetype.value},
                    "trigger_source": "user_onboarding",
                },
            )
        else:
            saved = await self._store.insert(VOICE_PROFILES, record)

        log.info(
            "Voice discovery complete: %s (confidence %.2f)",
            result.primary.value,
            result.confidence,
        )
        return {
            "archetype": result.to_wire(),
            "profile": VoiceProfile.from_record(saved).to_record(),
            "message": f"Voice profile created! You're a {result.primary.value}.",
        }

    # Feedback

    async def submit_feedback(self, user_id: str, body: dict[str, Any]) -> dict[str, Any]:
        """Validate feedback, record it and return the updated profile snapshot."""
        if not body.get("contentId") or body.get("rating") is None or not body.get("feedbackType"):
            raise ValidationError("Content ID, rating, and feedback type are required")
        try:
            feedback = VoiceFeedback.model_validate(body)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid feedback: {e.error_count()} field error(s)")
        if not RATING_MIN <= feedback.rating <= RATING_MAX:
            raise ValidationError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")

        profile = await self._voice_engine.process_voice_feedback(
            user_id, feedback.content_id, feedback
        )
        return {
            "success": True,
            "message": "Feedback processed successfully",
            "updatedProfile": profile.to_record() if profile else None,
        }

    async def feedback_history(
        self, user_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT, offset: int = 0
    ) -> dict[str, Any]:
        """Return one page of the user's feedback, newest first."""
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")
        limit = min(limit, MAX_HISTORY_LIMIT)
        filters = {"user_id": user_id}
        rows = await self._store.find(
            CONTENT_FEEDBACK,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        total = await self._store.count(CONTENT_FEEDBACK, filters)
        return {"feedback": rows, "total": total, "limit": limit, "offset": offset}
