"""Domain entities for the groupfinder system."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal, Mapping

from domain.errors import CatalogError

MAX_MESSAGES = 10

Role = Literal["user", "assistant"]


def unique(values: Iterable[str]) -> tuple[str, ...]:
    """Drop duplicates while keeping first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class GroupCatalogEntry:
    """A community group that can be recommended."""

    id: str
    name: str
    description: str
    tags: tuple[str, ...] = ()
    cadence: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", unique(self.tags))

    def matches_any(self, tags: Iterable[str]) -> bool:
        return not set(self.tags).isdisjoint(tags)

    def embedding_text(self) -> str:
        """Canonical text representation the catalog is embedded from."""
        parts = [self.name, self.description, *self.tags, self.cadence or ""]
        return " ".join(part for part in parts if part)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "cadence": self.cadence,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GroupCatalogEntry":
        try:
            group_id = payload["id"]
            name = payload["name"]
        except KeyError as exc:
            raise CatalogError(f"Group payload is missing field {exc.args[0]!r}") from exc
        return cls(
            id=str(group_id),
            name=str(name),
            description=str(payload.get("description") or ""),
            tags=tuple(str(tag) for tag in payload.get("tags") or ()),
            cadence=payload.get("cadence") or None,
        )


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One conversation turn."""

    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class PreferenceState:
    """Immutable snapshot of one conversation.

    Snapshots are only ever replaced, never mutated; see
    ``application.conversation.state`` for the reducers that build new ones.
    """

    available_preference_options: tuple[str, ...] = ()
    current_preferences: tuple[str, ...] = ()
    retrieved_groups: tuple[GroupCatalogEntry, ...] = ()
    messages: tuple[ChatMessage, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "available_preference_options": list(self.available_preference_options),
            "current_preferences": list(self.current_preferences),
            "retrieved_groups": [group.to_payload() for group in self.retrieved_groups],
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PreferenceState":
        messages = tuple(
            ChatMessage(role=item["role"], content=item["content"])
            for item in data.get("messages") or ()
        )
        return cls(
            available_preference_options=tuple(data.get("available_preference_options") or ()),
            current_preferences=unique(data.get("current_preferences") or ()),
            retrieved_groups=tuple(
                GroupCatalogEntry.from_payload(item) for item in data.get("retrieved_groups") or ()
            ),
            messages=messages[-MAX_MESSAGES:],
        )


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """Retrieval request; a tag-only query when ``text`` is empty."""

    tags: tuple[str, ...] = ()
    text: str | None = None
    limit: int = 10
    score_threshold: float = 0.5


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A group matched by similarity together with its score."""

    group: GroupCatalogEntry
    score: float


class FlowStep(Enum):
    """Nodes of the per-turn conversation graph."""

    EXTRACTING_PREFERENCES = "extracting_preferences"
    CLARIFYING = "clarifying"
    REPLYING = "replying"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class TurnResult:
    """Outcome of one processed turn."""

    state: PreferenceState
    reply: str
    route: FlowStep


__all__ = [
    "MAX_MESSAGES",
    "Role",
    "unique",
    "GroupCatalogEntry",
    "ChatMessage",
    "PreferenceState",
    "SearchQuery",
    "SearchResult",
    "FlowStep",
    "TurnResult",
]
