"""Group index kept in process memory, searched by brute force."""
from __future__ import annotations

import heapq
import math
import threading
from typing import Sequence

from domain.entities import GroupCatalogEntry
from domain.interfaces import GroupIndex


class InMemoryGroupIndex(GroupIndex):
    """Stores catalog entries and vectors in Python tuples.

    Readers work on an immutable snapshot, so concurrent searches from many
    conversations never observe a half-applied upsert.
    """

    def __init__(self) -> None:
        self._points: tuple[tuple[GroupCatalogEntry, tuple[float, ...]], ...] = ()
        self._dimension: int | None = None
        self._write_lock = threading.Lock()

    def recreate(self, dimension: int) -> None:
        with self._write_lock:
            self._points = ()
            self._dimension = dimension

    def upsert(self, entries: Sequence[GroupCatalogEntry], vectors: Sequence[Sequence[float]]) -> None:
        if len(entries) != len(vectors):
            raise ValueError(f"Got {len(entries)} entries but {len(vectors)} vectors.")
        with self._write_lock:
            points = {entry.id: (entry, vector) for entry, vector in self._points}
            for entry, vector in zip(entries, vectors):
                if self._dimension is not None and len(vector) != self._dimension:
                    raise ValueError(
                        f"Wrong vector size for group {entry.id}: expected {self._dimension}, got {len(vector)}."
                    )
                points[entry.id] = (entry, tuple(float(value) for value in vector))
            self._points = tuple(points.values())

    def search(
        self,
        vector: Sequence[float],
        *,
        tags: Sequence[str] = (),
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[tuple[GroupCatalogEntry, float]]:
        scored: list[tuple[float, int, GroupCatalogEntry]] = []
        for position, (entry, stored) in enumerate(self._points):
            if tags and not entry.matches_any(tags):
                continue
            score = self._cosine_similarity(vector, stored)
            if score < score_threshold:
                continue
            # negated position: among equal scores the earliest entry wins
            heapq.heappush(scored, (score, -position, entry))
            if len(scored) > limit:
                heapq.heappop(scored)

        ranked = sorted(scored, key=lambda item: (item[0], item[1]), reverse=True)
        return [(entry, score) for score, _position, entry in ranked]

    def scroll(self, tags: Sequence[str], limit: int = 100) -> list[GroupCatalogEntry]:
        matches = (entry for entry, _vector in self._points if entry.matches_any(tags))
        return [entry for _, entry in zip(range(limit), matches)]

    def count(self) -> int:
        return len(self._points)

    @staticmethod
    def _cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        numerator = sum(x * y for x, y in zip(a, b))
        denom_a = math.sqrt(sum(x * x for x in a)) or 1.0
        denom_b = math.sqrt(sum(x * x for x in b)) or 1.0
        return numerator / (denom_a * denom_b)


__all__ = ["InMemoryGroupIndex"]
