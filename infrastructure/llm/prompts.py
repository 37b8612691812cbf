"""Prompt templates for the group-finding assistant."""
from __future__ import annotations

from typing import Sequence

from domain.entities import ChatMessage

PREFERENCE_SYSTEM_PROMPT = (
    "You match what a person says they enjoy to a fixed list of activity tags. "
    "Only use tags from the list. If the person has not said enough to pick any "
    "tag with confidence, return an empty list. "
    'Answer with JSON only, in the form {"preferences": ["tag", ...]}.'
)

CLARIFIER_SYSTEM_PROMPT = (
    "You help people find local community groups. The person has not yet said "
    "what kind of activities they like. Ask one short, friendly question that "
    "helps them pick from the available activity tags. Mention a few example tags."
)

REPLIER_SYSTEM_PROMPT = (
    "You help people find local community groups. Recommend the matching groups "
    "below in a warm, concise reply, one line per group with a short reason. "
    "If no groups matched, say so and suggest trying different activities. "
    "Never invent groups that are not listed."
)


def format_history(messages: Sequence[ChatMessage]) -> str:
    if not messages:
        return "(no messages yet)"
    return "\n".join(f"{message.role}: {message.content}" for message in messages)


def preference_prompt(messages: Sequence[ChatMessage], options: Sequence[str]) -> str:
    return (
        f"Available tags: {', '.join(options) or '(none)'}\n\n"
        f"Conversation:\n{format_history(messages)}\n\n"
        "Which tags does the person want?"
    )


def clarifier_prompt(messages: Sequence[ChatMessage], options: Sequence[str]) -> str:
    return (
        f"Available tags: {', '.join(options) or '(none)'}\n\n"
        f"Conversation:\n{format_history(messages)}\n\n"
        "Your question:"
    )


def replier_prompt(messages: Sequence[ChatMessage], groups: Sequence[tuple[str, str]]) -> str:
    if groups:
        listed = "\n".join(f"- {name}: {description}" for name, description in groups)
    else:
        listed = "(no matching groups)"
    return (
        f"Matching groups:\n{listed}\n\n"
        f"Conversation:\n{format_history(messages)}\n\n"
        "Your reply:"
    )


__all__ = [
    "PREFERENCE_SYSTEM_PROMPT",
    "CLARIFIER_SYSTEM_PROMPT",
    "REPLIER_SYSTEM_PROMPT",
    "format_history",
    "preference_prompt",
    "clarifier_prompt",
    "replier_prompt",
]
