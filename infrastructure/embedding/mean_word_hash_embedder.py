"""Embedder that averages hashed word vectors (GloVe-like toy model)."""
from __future__ import annotations

import hashlib
import math
import re
from collections import Counter
from typing import Sequence

from domain.interfaces import Embedder

_WORD = re.compile(r"[\w'-]+")


class MeanWordHashEmbedder(Embedder):
    """Produces deterministic vectors by hashing individual words.

    Needs no model download, which makes it the embedder for offline runs.
    """

    def __init__(self, dimension: int = 64) -> None:
        self._dimension = dimension
        self._model_id = f"mean-word-hash-{dimension}"

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def dimension(self) -> int:
        return self._dimension

    def _word_vector(self, word: str) -> list[float]:
        digest = hashlib.shake_128(word.encode("utf-8")).digest(self._dimension)
        # centred around zero so unrelated words stay close to orthogonal
        return [byte / 127.5 - 1.0 for byte in digest]

    def _combine(self, words: Sequence[str]) -> list[float]:
        counts = Counter(word.lower() for word in words if word.strip())
        vector = [0.0] * self._dimension
        total = sum(counts.values()) or 1
        for word, count in counts.items():
            word_vec = self._word_vector(word)
            for idx, value in enumerate(word_vec):
                vector[idx] += value * count / total
        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._combine(_WORD.findall(text)) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._combine(_WORD.findall(text))


__all__ = ["MeanWordHashEmbedder"]
