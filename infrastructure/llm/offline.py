"""Deterministic stand-ins for the LLM capabilities.

Handy for demos and local runs without a model server: preferences are found
by keyword matching over the user's messages, questions and replies come from
templates.
"""
from __future__ import annotations

import re
from typing import Sequence

from domain.entities import ChatMessage
from domain.interfaces import ClarificationGenerator, PreferenceExtractor, ReplyGenerator


def _stem(tag: str) -> str:
    word = tag.lower()
    if word.endswith("ing") and len(word) > 5:
        word = word[:-3]
        if len(word) > 2 and word[-1] == word[-2]:
            word = word[:-1]
    elif word.endswith("s") and len(word) > 3:
        word = word[:-1]
    return word


class KeywordPreferenceExtractor(PreferenceExtractor):
    """Picks every offered tag whose stem appears in a user message."""

    def extract(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> list[str]:
        text = " ".join(message.content.lower() for message in messages if message.role == "user")
        found: list[str] = []
        for option in options:
            pattern = r"\b" + re.escape(_stem(option)) + r"\w*"
            if re.search(pattern, text) and option not in found:
                found.append(option)
        return found


class TemplateClarifier(ClarificationGenerator):
    def __init__(self, examples: int = 5) -> None:
        self._examples = examples

    def clarify(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> str:
        sample = list(options[: self._examples])
        if not sample:
            return "What kinds of activities do you enjoy?"
        if len(sample) == 1:
            listed = sample[0]
        else:
            listed = ", ".join(sample[:-1]) + f" or {sample[-1]}"
        return f"What kinds of activities do you enjoy? For example: {listed}."


class TemplateReplier(ReplyGenerator):
    def reply(self, messages: Sequence[ChatMessage], groups: Sequence[tuple[str, str]]) -> str:
        if not groups:
            return "I couldn't find any groups for that yet. Would you like to try a different activity?"
        lines = [f"- {name}: {description}" for name, description in groups]
        return "Here are some groups you might like:\n" + "\n".join(lines)


__all__ = ["KeywordPreferenceExtractor", "TemplateClarifier", "TemplateReplier"]
