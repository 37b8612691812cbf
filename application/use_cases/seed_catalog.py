"""Use case that (re)builds the group index from the catalog."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from domain.entities import GroupCatalogEntry
from domain.errors import EmbeddingFailure
from domain.interfaces import Embedder, GroupIndex

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SeedReport:
    total: int
    indexed: int
    dimension: int


def seed_catalog(
    entries: Sequence[GroupCatalogEntry],
    *,
    embedder: Embedder,
    index: GroupIndex,
    batch_size: int = 50,
) -> SeedReport:
    """Embed every entry and replace the index contents with them.

    All embeddings are computed before the collection is dropped, so a failing
    embedder leaves the previous catalog in place.
    """

    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if not entries:
        index.recreate(embedder.dimension)
        return SeedReport(total=0, indexed=0, dimension=embedder.dimension)

    texts = [entry.embedding_text() for entry in entries]
    logger.info("Generating embeddings for %d groups with %s", len(texts), embedder.model_id)
    vectors: list[list[float]] = []
    for start in range(0, len(texts), batch_size):
        batch = texts[start : start + batch_size]
        try:
            embedded = embedder.embed_texts(batch)
        except Exception as exc:
            raise EmbeddingFailure(f"Failed to embed catalog batch at {start}: {exc}") from exc
        for offset, vector in enumerate(embedded):
            _check_vector(vector, start + offset)
        vectors.extend(embedded)
        logger.debug("Processed batch %d (%d/%d embeddings)", start // batch_size + 1, len(vectors), len(texts))

    dimension = len(vectors[0])
    if any(len(vector) != dimension for vector in vectors):
        raise EmbeddingFailure("Catalog embeddings have inconsistent dimensions")

    index.recreate(dimension)
    for start in range(0, len(entries), batch_size):
        index.upsert(entries[start : start + batch_size], vectors[start : start + batch_size])
    indexed = index.count()
    logger.info("Seeding complete: %d groups indexed (dimension=%d)", indexed, dimension)
    return SeedReport(total=len(entries), indexed=indexed, dimension=dimension)


def _check_vector(vector: Sequence[float], position: int) -> None:
    if not vector:
        raise EmbeddingFailure(f"Invalid embedding for text at index {position}")
    if not all(math.isfinite(float(value)) for value in vector):
        raise EmbeddingFailure(f"Non-finite embedding for text at index {position}")


__all__ = ["SeedReport", "seed_catalog"]
