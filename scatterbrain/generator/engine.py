"""Research-augmented content generator.

Three prompted calls in a fixed order: deep research on the topic, content
authoring for four platforms grounded in that research, then exploration
paths. Each phase substitutes a fallback built from the topic when the model
returns no usable JSON, so parse failures never fail a request. Transport
errors propagate.

Results are cached by normalized topic plus profile. A cache hit skips all
three calls and returns the stored result object.
"""

import logging
import time
from typing import Optional

from scatterbrain.core.exceptions import ValidationError
from scatterbrain.core.prompted_call import ModelParams, PromptedCall
from scatterbrain.core.ttl_cache import BoundedTTLCache
from scatterbrain.generator.models import (
    PLATFORMS,
    EnhancedContentResult,
    ExplorationPaths,
    PlatformContent,
    ResearchContext,
    UserProfile,
    normalize_platform_content,
)
from scatterbrain.generator.prompts import (
    CONTENT_SYSTEM_PROMPT,
    EXPLORATION_SYSTEM_PROMPT,
    RESEARCH_SYSTEM_PROMPT,
    build_content_prompt,
    build_exploration_prompt,
    build_research_prompt,
)

logger = logging.getLogger(__name__)

RESEARCH_MAX_TOKENS = 2500
CONTENT_MAX_TOKENS = 6000
EXPLORATION_MAX_TOKENS = 1500

# Topic text is truncated when reused inside fallback strings
_FALLBACK_TOPIC_CHARS = 120


def cache_key(topic: str, profile: UserProfile) -> str:
    return f"{topic.lower().strip()}-{profile.cache_fragment()}"


def _short(topic: str) -> str:
    topic = " ".join(topic.split())
    if len(topic) <= _FALLBACK_TOPIC_CHARS:
        return topic
    return topic[: _FALLBACK_TOPIC_CHARS - 3].rstrip() + "..."


def fallback_research(topic: str) -> ResearchContext:
    return ResearchContext(
        domain=_short(topic),
        key_dimensions=["foundational concepts", "practical applications", "current trends"],
        expert_perspectives=["leading researchers in the field"],
        counterintuitive_findings=["challenging conventional wisdom"],
        cross_disciplinary_connections=["psychology", "technology"],
        current_developments=["emerging trends and innovations"],
        authority_figures=["key thought leaders"],
    )


def fallback_content(topic: str) -> PlatformContent:
    subject = _short(topic)
    return PlatformContent(
        twitter=(
            f"1/ Thinking about {subject}.\n\n"
            "2/ The interesting part is rarely the headline; it is the assumptions underneath.\n\n"
            "3/ What would change your mind about it? Replies welcome."
        ),
        linkedin=(
            f"I've been thinking about {subject}.\n\n"
            "The more I dig in, the more it seems the real questions sit below the surface: "
            "what we assume, what we measure, and what we ignore.\n\n"
            "What has your experience been?"
        ),
        reddit=(
            f"Let's talk about {subject}\n\n"
            "I'm trying to understand this better and would love to hear different perspectives. "
            "What do people usually get wrong about it, and what evidence changed your view?\n\n"
            f"TL;DR: looking for thoughtful takes on {subject}."
        ),
        youtube=(
            f"Title: Rethinking {subject}\n"
            f"Description: A closer look at {subject}, the common assumptions around it, "
            "and what they leave out.\n"
            "Main Points:\n- Where the idea comes from\n- What the evidence says\n- What to try next"
        ),
    )


def fallback_exploration(topic: str, research: ResearchContext) -> ExplorationPaths:
    subject = _short(topic)
    domain = research.domain or subject
    return ExplorationPaths(
        podcasts=[f"Search for podcasts about {subject} on Apple Podcasts or Spotify"],
        researchers=[f"Look up leading researchers in {domain}"],
        related_topics=[f"Related topics in {domain}"],
        practical_applications=[f"Try applying {subject} concepts in your daily work"],
    )


class ResearchAugmentedGenerator:
    """Generates research-grounded posts for four platforms.

    Usage:
        generator = ResearchAugmentedGenerator(PromptedCall(provider))
        result = await generator.generate("electric vehicles", UserProfile())
    """

    def __init__(
        self,
        prompted_call: PromptedCall,
        *,
        cache: Optional[BoundedTTLCache[EnhancedContentResult]] = None,
        model: Optional[str] = None,
    ):
        self._call = prompted_call
        self._cache = cache if cache is not None else BoundedTTLCache()
        self._model = model

    @property
    def cache(self) -> BoundedTTLCache[EnhancedContentResult]:
        return self._cache

    def _params(self, max_tokens: int) -> ModelParams:
        return ModelParams(max_tokens=max_tokens, model=self._model)

    async def generate(self, topic: str, profile: UserProfile) -> EnhancedContentResult:
        """Research a topic and author platform content for it.

        Raises:
            ValidationError: If topic is empty.
            UpstreamError: If a provider call fails.
        """
        if not topic or not topic.strip():
            raise ValidationError("Content is required")

        key = cache_key(topic, profile)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("Generator cache hit (%d chars)", len(topic))
            return cached

        start = time.perf_counter()
        research = await self.research(topic)
        content = await self.author_content(topic, research, profile)
        exploration = await self.exploration_paths(topic, research)

        result = EnhancedContentResult(
            research_context=research,
            content=content,
            exploration_paths=exploration,
        )
        self._cache.set(key, result)
        logger.info(
            "Generated content for %d-char topic in %dms",
            len(topic),
            int((time.perf_counter() - start) * 1000),
        )
        return result

    async def research(self, topic: str) -> ResearchContext:
        result = await self._call.invoke(
            RESEARCH_SYSTEM_PROMPT,
            build_research_prompt(topic),
            self._params(RESEARCH_MAX_TOKENS),
        )
        parsed = result.parse_as(ResearchContext)
        if parsed is None:
            logger.warning("Research phase fell back to generic context")
            return fallback_research(topic)
        return parsed

    async def author_content(
        self, topic: str, research: ResearchContext, profile: UserProfile
    ) -> PlatformContent:
        result = await self._call.invoke(
            CONTENT_SYSTEM_PROMPT,
            build_content_prompt(topic, research, profile),
            self._params(CONTENT_MAX_TOKENS),
        )
        templated = fallback_content(topic)
        if result.is_fallback:
            logger.warning("Content phase fell back to templated posts")
            return templated

        posts = normalize_platform_content(result.data)
        missing = [p for p in PLATFORMS if not posts.get(p)]
        if missing:
            logger.warning("Content phase missing platforms: %s", ", ".join(missing))
            for platform in missing:
                posts[platform] = getattr(templated, platform)
        return PlatformContent(**posts)

    async def exploration_paths(self, topic: str, research: ResearchContext) -> ExplorationPaths:
        result = await self._call.invoke(
            EXPLORATION_SYSTEM_PROMPT,
            build_exploration_prompt(topic, research),
            self._params(EXPLORATION_MAX_TOKENS),
        )
        parsed = result.parse_as(ExplorationPaths)
        if parsed is None:
            logger.warning("Exploration phase fell back to generic paths")
            return fallback_exploration(topic, research)
        return parsed
