"""Prompted Call Unit: one system+user prompt in, one parsed JSON object out.

Every stage of the pipeline and the generator goes through PromptedCall.invoke.
The unit sends exactly one request, waits for the complete text, and pulls the
first balanced ``{...}`` object out of it. Unparseable text never raises; it
yields a fallback payload so the caller decides how to degrade.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from scatterbrain.core.exceptions import ValidationError
from scatterbrain.core.llm_factory import LLMProvider

logger = logging.getLogger(__name__)

PARSE_FAILURE = "parse failure"

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ModelParams:
    """Per-call model settings, always chosen by the calling stage.

    A temperature of None leaves sampling to the provider default.
    """

    max_tokens: int
    temperature: Optional[float] = None
    model: Optional[str] = None


def fallback_payload(raw_text: str) -> dict[str, Any]:
    return {"error": PARSE_FAILURE, "rawText": raw_text}


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of text, or None.

    Braces inside JSON string literals (including escaped quotes) are ignored
    when balancing.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse the first balanced JSON object in text, None on any failure."""
    candidate = find_json_object(text)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug("JSON candidate rejected: %s", e.msg)
        return None
    return parsed if isinstance(parsed, dict) else None


class PromptResult(BaseModel):
    """Outcome of one prompted call: the raw text and what was parsed from it."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return self.data.get("error") == PARSE_FAILURE and "rawText" in self.data

    def parse_as(self, model: type[M]) -> M | None:
        """Validate the parsed object into model, None when the text had no JSON.

        Missing fields take the model's defaults. Models built on
        LenientWireModel also absorb mistyped fields, so valid JSON is never
        discarded.
        """
        if self.is_fallback:
            return None
        return model.model_validate(self.data)


class PromptedCall:
    """Sends one prompt to an LLMProvider and parses the reply.

    Transport failures raised by the provider are not retried here and
    propagate unchanged to the caller.
    """

    def __init__(self, provider: LLMProvider):
        self._provider = provider

    async def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        params: ModelParams,
    ) -> PromptResult:
        if not user_prompt or not user_prompt.strip():
            raise ValidationError("user prompt must be non-empty")

        response = await self._provider.generate(
            user_prompt,
            system_prompt,
            model=params.model,
            max_tokens=params.max_tokens,
            temperature=params.temperature,
        )
        text = response.content

        data = parse_json_object(text)
        if data is None:
            logger.warning(
                "No JSON object found in model response (%d chars)", len(text)
            )
            return PromptResult(raw_text=text, data=fallback_payload(text))
        return PromptResult(raw_text=text, data=data)
