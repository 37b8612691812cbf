"""Hybrid retrieval: tag matching plus embedding similarity over the catalog."""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Sequence, TypeVar

from domain.entities import GroupCatalogEntry, SearchQuery, SearchResult, unique
from domain.errors import BackendUnavailable, EmbeddingFailure, GroupFinderError, InvalidQuery
from domain.interfaces import Embedder, GroupIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TAG_LIMIT = 100
DEFAULT_TEXT_LIMIT = 10
DEFAULT_SCORE_THRESHOLD = 0.5


class RetrievalEngine:
    """Finds catalog groups for tags and/or free text.

    Tag filtering and vector similarity are two separate primitives: a
    tag-only lookup never calls the embedder, and the similarity threshold
    only applies to text queries. Note the empty-tags asymmetry: for
    ``match_by_tags`` no tags means no results, for ``match_combined`` it
    means no tag restriction.
    """

    def __init__(self, embedder: Embedder, index: GroupIndex) -> None:
        self._embedder = embedder
        self._index = index

    def match_by_tags(self, tags: Sequence[str], limit: int = DEFAULT_TAG_LIMIT) -> list[GroupCatalogEntry]:
        _check_limit(limit)
        tags = _clean_tags(tags)
        if not tags:
            return []
        groups = self._call_index(self._index.scroll, tags, limit=limit)
        matched = [group for group in groups if group.matches_any(tags)]
        logger.debug("Tag match for %s returned %d groups", list(tags), len(matched))
        return matched[:limit]

    def match_by_text(
        self,
        text: str,
        limit: int = DEFAULT_TEXT_LIMIT,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
    ) -> list[SearchResult]:
        return self.match_combined((), text, limit=limit, score_threshold=score_threshold)

    def match_combined(
        self,
        tags: Sequence[str],
        text: str,
        limit: int = DEFAULT_TEXT_LIMIT,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
    ) -> list[SearchResult]:
        if not isinstance(text, str) or not text.strip():
            raise InvalidQuery("Text query must be a non-empty string")
        _check_limit(limit)
        if not 0.0 <= score_threshold <= 1.0:
            raise InvalidQuery(f"Score threshold must lie in [0, 1], got {score_threshold}")
        tags = _clean_tags(tags)

        vector = self._embed(text)
        hits = self._call_index(
            self._index.search, vector, tags=tags, limit=limit, score_threshold=score_threshold
        )

        results = [
            SearchResult(group=group, score=score)
            for group, score in hits
            if score >= score_threshold and (not tags or group.matches_any(tags))
        ]
        # stable: equal scores keep the index's catalog order
        results.sort(key=lambda result: result.score, reverse=True)
        logger.debug("Combined match for tags=%s returned %d groups", list(tags), len(results))
        return results[:limit]

    def search(self, query: SearchQuery) -> list[SearchResult] | list[GroupCatalogEntry]:
        """Run ``query`` as a combined search when it has text, else as a tag match."""
        if query.text is not None and query.text.strip():
            return self.match_combined(
                query.tags, query.text, limit=query.limit, score_threshold=query.score_threshold
            )
        return self.match_by_tags(query.tags, limit=query.limit)

    @staticmethod
    def _call_index(operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return operation(*args, **kwargs)
        except GroupFinderError:
            raise
        except Exception as exc:
            logger.exception("Group index call %s failed", getattr(operation, "__name__", operation))
            raise BackendUnavailable(f"Failed to search groups: {exc}") from exc

    def _embed(self, text: str) -> list[float]:
        try:
            vector = self._embedder.embed_query(text)
        except GroupFinderError:
            raise
        except Exception as exc:
            logger.exception("Embedding generation failed for query %r", text)
            raise EmbeddingFailure(f"Failed to generate embedding: {exc}") from exc

        if not isinstance(vector, (list, tuple)) or not vector:
            raise EmbeddingFailure("Invalid embedding format: expected non-empty array")
        if len(vector) != self._embedder.dimension:
            raise EmbeddingFailure(
                f"Embedding has {len(vector)} dimensions, expected {self._embedder.dimension}"
            )
        try:
            values = [float(value) for value in vector]
        except (TypeError, ValueError) as exc:
            raise EmbeddingFailure(f"Embedding contains non-numeric values: {exc}") from exc
        if not all(math.isfinite(value) for value in values):
            raise EmbeddingFailure("Embedding contains non-finite values")
        return values


def _check_limit(limit: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidQuery(f"Limit must be a positive integer, got {limit!r}")


def _clean_tags(tags: Sequence[str]) -> tuple[str, ...]:
    if isinstance(tags, str):
        tags = (tags,)
    return unique(tag for tag in tags if tag)


__all__ = [
    "RetrievalEngine",
    "DEFAULT_TAG_LIMIT",
    "DEFAULT_TEXT_LIMIT",
    "DEFAULT_SCORE_THRESHOLD",
]
