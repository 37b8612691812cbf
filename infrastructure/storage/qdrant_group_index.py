"""Group index backed by a Qdrant collection, spoken to over its REST API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import requests

from domain.entities import GroupCatalogEntry
from domain.errors import BackendUnavailable, CatalogError
from domain.interfaces import GroupIndex

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QdrantConfig:
    url: str = "http://localhost:6333"
    collection: str = "groups"
    api_key: str | None = None
    timeout: float = 10.0
    upsert_batch_size: int = 50


class QdrantGroupIndex(GroupIndex):
    """Keeps catalog entries as Qdrant points with the entry as payload.

    Point ids are 1-based catalog positions, so ordering by id reproduces
    catalog insertion order. Qdrant applies ``limit`` before the results are
    re-sorted by ``(-score, id)``, so among equal scores straddling the limit the
    server decides which points are returned; insertion order only orders the
    returned window.
    """

    def __init__(self, config: QdrantConfig | None = None, session: requests.Session | None = None) -> None:
        self._config = config or QdrantConfig()
        self._session = session or requests.Session()
        if self._config.api_key:
            self._session.headers["api-key"] = self._config.api_key
        self._next_id: int | None = None

    @property
    def collection_url(self) -> str:
        return f"{self._config.url.rstrip('/')}/collections/{self._config.collection}"

    def recreate(self, dimension: int) -> None:
        logger.info("Recreating Qdrant collection %s (dimension=%d)", self._config.collection, dimension)
        self._request("DELETE", self.collection_url, allow_missing=True)
        self._request(
            "PUT",
            self.collection_url,
            json={"vectors": {"size": dimension, "distance": "Cosine"}},
        )
        self._next_id = 1

    def upsert(self, entries: Sequence[GroupCatalogEntry], vectors: Sequence[Sequence[float]]) -> None:
        if len(entries) != len(vectors):
            raise ValueError(f"Got {len(entries)} entries but {len(vectors)} vectors.")
        if self._next_id is None:
            self._next_id = self.count() + 1
        batch_size = self._config.upsert_batch_size
        for start in range(0, len(entries), batch_size):
            points = [
                {
                    "id": self._next_id + offset,
                    "vector": [float(value) for value in vector],
                    "payload": {**entry.to_payload(), "text": entry.embedding_text()},
                }
                for offset, (entry, vector) in enumerate(
                    zip(entries[start : start + batch_size], vectors[start : start + batch_size])
                )
            ]
            self._request("PUT", f"{self.collection_url}/points", params={"wait": "true"}, json={"points": points})
            self._next_id += len(points)
            logger.debug("Stored %d points in %s", len(points), self._config.collection)

    def search(
        self,
        vector: Sequence[float],
        *,
        tags: Sequence[str] = (),
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[tuple[GroupCatalogEntry, float]]:
        body: dict[str, Any] = {
            "vector": list(vector),
            "limit": limit,
            "score_threshold": score_threshold,
            "with_payload": True,
        }
        tag_filter = self._tag_filter(tags)
        if tag_filter is not None:
            body["filter"] = tag_filter
        data = self._request("POST", f"{self.collection_url}/points/search", json=body)
        try:
            hits = sorted(data["result"], key=lambda hit: (-float(hit["score"]), hit["id"]))
            return [(GroupCatalogEntry.from_payload(hit["payload"]), float(hit["score"])) for hit in hits]
        except (KeyError, TypeError, ValueError, CatalogError) as exc:
            raise BackendUnavailable(f"Malformed Qdrant search response: {exc}") from exc

    def scroll(self, tags: Sequence[str], limit: int = 100) -> list[GroupCatalogEntry]:
        body: dict[str, Any] = {"limit": limit, "with_payload": True, "with_vector": False}
        tag_filter = self._tag_filter(tags)
        if tag_filter is not None:
            body["filter"] = tag_filter
        data = self._request("POST", f"{self.collection_url}/points/scroll", json=body)
        try:
            points = data["result"]["points"] or []
            return [GroupCatalogEntry.from_payload(point["payload"]) for point in points]
        except (KeyError, TypeError, CatalogError) as exc:
            raise BackendUnavailable(f"Malformed Qdrant scroll response: {exc}") from exc

    def count(self) -> int:
        data = self._request("POST", f"{self.collection_url}/points/count", json={"exact": True})
        try:
            return int(data["result"]["count"])
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailable(f"Malformed Qdrant count response: {exc}") from exc

    @staticmethod
    def _tag_filter(tags: Sequence[str]) -> dict[str, Any] | None:
        if not tags:
            return None
        return {"should": [{"key": "tags", "match": {"value": tag}} for tag in tags]}

    def _request(
        self,
        method: str,
        url: str,
        *,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = self._session.request(method, url, timeout=self._config.timeout, **kwargs)
            if allow_missing and response.status_code == 404:
                return {}
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.warning("Qdrant %s %s failed: %s", method, url, exc)
            raise BackendUnavailable(f"Qdrant request failed: {exc}") from exc
        except ValueError as exc:
            raise BackendUnavailable(f"Qdrant returned a non-JSON response: {exc}") from exc


__all__ = ["QdrantConfig", "QdrantGroupIndex"]
