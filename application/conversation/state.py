"""Pure reducers building new conversation snapshots from old ones."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from domain.entities import MAX_MESSAGES, ChatMessage, GroupCatalogEntry, PreferenceState, unique


@dataclass(frozen=True, slots=True)
class StateUpdate:
    """Partial update returned by a conversation node.

    ``None`` leaves the field alone; otherwise each field is folded in with
    its own reducer (preferences replace, messages and groups append).
    """

    preferences: tuple[str, ...] | None = None
    messages: tuple[ChatMessage, ...] = ()
    groups: tuple[GroupCatalogEntry, ...] = ()


def initial_state(tag_universe: Sequence[str]) -> PreferenceState:
    """Start a conversation offering every tag of the catalog."""
    return PreferenceState(available_preference_options=tuple(tag_universe))


def replace_preferences(state: PreferenceState, preferences: Iterable[str]) -> PreferenceState:
    return replace(state, current_preferences=unique(p for p in preferences if p))


def append_messages(state: PreferenceState, *messages: ChatMessage) -> PreferenceState:
    """Append ``messages`` and keep only the newest ``MAX_MESSAGES``."""
    combined = state.messages + tuple(messages)
    return replace(state, messages=combined[-MAX_MESSAGES:])


def append_groups(state: PreferenceState, groups: Iterable[GroupCatalogEntry]) -> PreferenceState:
    return replace(state, retrieved_groups=state.retrieved_groups + tuple(groups))


def apply_update(state: PreferenceState, update: StateUpdate) -> PreferenceState:
    if update.preferences is not None:
        state = replace_preferences(state, update.preferences)
    if update.messages:
        state = append_messages(state, *update.messages)
    if update.groups:
        state = append_groups(state, update.groups)
    return state


__all__ = [
    "StateUpdate",
    "initial_state",
    "replace_preferences",
    "append_messages",
    "append_groups",
    "apply_update",
]
