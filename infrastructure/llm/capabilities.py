"""LLM-backed preference extraction, clarification and reply generation."""
from __future__ import annotations

import logging
import re
from typing import Sequence

from pydantic import BaseModel, Field, ValidationError

from domain.entities import ChatMessage, unique
from domain.errors import ExternalCapabilityFailure
from domain.interfaces import ClarificationGenerator, PreferenceExtractor, ReplyGenerator
from infrastructure.llm.chat_client import ChatClient
from infrastructure.llm.prompts import (
    CLARIFIER_SYSTEM_PROMPT,
    PREFERENCE_SYSTEM_PROMPT,
    REPLIER_SYSTEM_PROMPT,
    clarifier_prompt,
    preference_prompt,
    replier_prompt,
)

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class PreferenceMatch(BaseModel):
    """Shape of the extraction model's JSON answer."""

    preferences: list[str] = Field(default_factory=list)


class LLMPreferenceExtractor(PreferenceExtractor):
    """Asks the model which offered tags the conversation expresses.

    Answers are mapped case-insensitively onto ``options``; tags outside the
    list are passed through and retrieval simply finds nothing for them.
    """

    def __init__(self, client: ChatClient) -> None:
        self._client = client

    def extract(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> list[str]:
        raw = self._client.complete(
            PREFERENCE_SYSTEM_PROMPT,
            preference_prompt(messages, options),
            json_output=True,
        )
        cleaned = _CODE_FENCE.sub("", raw.strip())
        try:
            match = PreferenceMatch.model_validate_json(cleaned)
        except ValidationError as exc:
            logger.warning("Could not parse preferences from model output: %r", raw)
            raise ExternalCapabilityFailure(f"Invalid preference JSON: {exc}") from exc
        by_lower = {option.lower(): option for option in options}
        preferences = list(
            unique(by_lower.get(tag.strip().lower(), tag.strip()) for tag in match.preferences if tag.strip())
        )
        logger.debug("Extracted preferences: %s", preferences)
        return preferences


class LLMClarifier(ClarificationGenerator):
    def __init__(self, client: ChatClient) -> None:
        self._client = client

    def clarify(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> str:
        return self._client.complete(CLARIFIER_SYSTEM_PROMPT, clarifier_prompt(messages, options))


class LLMReplier(ReplyGenerator):
    def __init__(self, client: ChatClient) -> None:
        self._client = client

    def reply(self, messages: Sequence[ChatMessage], groups: Sequence[tuple[str, str]]) -> str:
        return self._client.complete(REPLIER_SYSTEM_PROMPT, replier_prompt(messages, groups))


__all__ = ["PreferenceMatch", "LLMPreferenceExtractor", "LLMClarifier", "LLMReplier"]
