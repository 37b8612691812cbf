"""In-process store of conversation snapshots keyed by session id."""
from __future__ import annotations

import threading

from domain.entities import PreferenceState
from domain.interfaces import SessionRepository


class InMemorySessionRepository(SessionRepository):
    """Keeps the latest snapshot per session; concurrent saves are last-write-wins."""

    def __init__(self) -> None:
        self._states: dict[str, PreferenceState] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> PreferenceState | None:
        with self._lock:
            return self._states.get(session_id)

    def save(self, session_id: str, state: PreferenceState) -> None:
        with self._lock:
            self._states[session_id] = state

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


__all__ = ["InMemorySessionRepository"]
