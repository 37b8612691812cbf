"""Abstract interfaces for the groupfinder system."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from domain.entities import ChatMessage, GroupCatalogEntry, PreferenceState


class Embedder(ABC):
    """Turns text (catalog entries or queries) into vector embeddings."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Return the stable identifier for this embedding model."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension for this model."""

    @abstractmethod
    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed a sequence of texts into dense vectors."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed a free-text query for retrieval."""


class GroupIndex(ABC):
    """Catalog store supporting vector search and categorical scans.

    Implementations raise ``BackendUnavailable`` when the backend cannot be
    reached; an empty result is never used to signal a failure.
    """

    @abstractmethod
    def recreate(self, dimension: int) -> None:
        """Drop the whole collection and create an empty one."""

    @abstractmethod
    def upsert(self, entries: Sequence[GroupCatalogEntry], vectors: Sequence[Sequence[float]]) -> None:
        """Store entries with their vectors, after any previously stored ones."""

    @abstractmethod
    def search(
        self,
        vector: Sequence[float],
        *,
        tags: Sequence[str] = (),
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[tuple[GroupCatalogEntry, float]]:
        """Return entries ranked by similarity, optionally pre-filtered by tags (OR)."""

    @abstractmethod
    def scroll(self, tags: Sequence[str], limit: int = 100) -> list[GroupCatalogEntry]:
        """Return entries carrying any of ``tags`` in insertion order."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored entries."""


class PreferenceExtractor(ABC):
    """Derives the user's wanted tags from the conversation so far."""

    @abstractmethod
    def extract(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> list[str]:
        """Return the preferences expressed in ``messages``; may be empty."""


class ClarificationGenerator(ABC):
    """Asks the user to narrow down what they are looking for."""

    @abstractmethod
    def clarify(self, messages: Sequence[ChatMessage], options: Sequence[str]) -> str:
        """Return a clarifying question."""


class ReplyGenerator(ABC):
    """Writes the recommendation reply for matched groups."""

    @abstractmethod
    def reply(self, messages: Sequence[ChatMessage], groups: Sequence[tuple[str, str]]) -> str:
        """Return a reply presenting the ``(name, description)`` pairs."""


class SessionRepository(ABC):
    """Keeps conversation snapshots between turns."""

    @abstractmethod
    def get(self, session_id: str) -> PreferenceState | None:
        """Return the stored snapshot, if any."""

    @abstractmethod
    def save(self, session_id: str, state: PreferenceState) -> None:
        """Store ``state`` as the latest snapshot for ``session_id``."""


__all__ = [
    "Embedder",
    "GroupIndex",
    "PreferenceExtractor",
    "ClarificationGenerator",
    "ReplyGenerator",
    "SessionRepository",
]
