"""Use case that processes one user message of a conversation."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Sequence

from application.conversation.flow import ConversationFlow
from application.conversation.state import initial_state
from domain.entities import PreferenceState, TurnResult
from domain.errors import InvalidMessage, TurnTimeout

logger = logging.getLogger(__name__)


def process_turn(
    state: PreferenceState | None,
    message: str,
    *,
    flow: ConversationFlow,
    tag_universe: Sequence[str] = (),
    timeout: float | None = None,
) -> TurnResult:
    """Run one turn and return the new snapshot plus the assistant reply.

    ``state=None`` starts a new conversation offering ``tag_universe``. The
    given snapshot is never modified: on any error, including ``TurnTimeout``,
    the caller simply keeps the state it already has.
    """

    text = message.strip() if isinstance(message, str) else ""
    if not text:
        raise InvalidMessage("Missing `message` (string) in request body.")
    current = state if state is not None else initial_state(tag_universe)

    if timeout is None:
        return flow.run_turn(current, text)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="turn")
    try:
        future = executor.submit(flow.run_turn, current, text)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout as exc:
            future.cancel()
            logger.warning("Turn did not finish within %.1fs; result will be discarded", timeout)
            raise TurnTimeout(f"Turn exceeded {timeout}s") from exc
    finally:
        executor.shutdown(wait=False)


__all__ = ["process_turn"]
