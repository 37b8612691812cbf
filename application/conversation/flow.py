"""Per-turn conversation state machine.

One turn walks the graph

    EXTRACTING_PREFERENCES -> (CLARIFYING | REPLYING) -> DONE

and the only branch predicate is whether the freshly extracted preference
set is empty. Nodes return ``StateUpdate`` objects that are folded into a
new snapshot, so the caller's snapshot is untouched until the whole turn has
succeeded.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from application.conversation.state import StateUpdate, append_messages, apply_update
from application.services.retrieval_engine import RetrievalEngine
from domain.entities import ChatMessage, FlowStep, PreferenceState, TurnResult
from domain.errors import ExternalCapabilityFailure, GroupFinderError
from domain.interfaces import ClarificationGenerator, PreferenceExtractor, ReplyGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def next_step(step: FlowStep, state: PreferenceState) -> FlowStep:
    """Transition function of the turn graph."""
    if step is FlowStep.EXTRACTING_PREFERENCES:
        return FlowStep.REPLYING if state.current_preferences else FlowStep.CLARIFYING
    if step in (FlowStep.CLARIFYING, FlowStep.REPLYING):
        return FlowStep.DONE
    raise ValueError(f"No transition out of {step}")


class ConversationFlow:
    """Runs single turns of the group-finding conversation."""

    def __init__(
        self,
        *,
        extractor: PreferenceExtractor,
        clarifier: ClarificationGenerator,
        replier: ReplyGenerator,
        retrieval_engine: RetrievalEngine,
    ) -> None:
        self._extractor = extractor
        self._clarifier = clarifier
        self._replier = replier
        self._retrieval_engine = retrieval_engine

    def run_turn(self, state: PreferenceState, user_message: str) -> TurnResult:
        working = append_messages(state, ChatMessage(role="user", content=user_message))
        step = FlowStep.EXTRACTING_PREFERENCES
        route = step
        while step is not FlowStep.DONE:
            working = apply_update(working, self._run_node(step, working))
            step = next_step(step, working)
            if step is not FlowStep.DONE:
                route = step

        reply = working.messages[-1].content
        return TurnResult(state=working, reply=reply, route=route)

    def _run_node(self, step: FlowStep, state: PreferenceState) -> StateUpdate:
        match step:
            case FlowStep.EXTRACTING_PREFERENCES:
                return self._extract_preferences(state)
            case FlowStep.CLARIFYING:
                return self._clarify(state)
            case FlowStep.REPLYING:
                return self._reply(state)
            case _:
                raise ValueError(f"{step} is not a runnable node")

    def _extract_preferences(self, state: PreferenceState) -> StateUpdate:
        logger.info("In node: PreferenceExtractor (messages=%d)", len(state.messages))
        preferences = _call_capability(
            "preference extraction",
            self._extractor.extract,
            state.messages,
            state.available_preference_options,
        )
        if not isinstance(preferences, (list, tuple, set, frozenset)):
            raise ExternalCapabilityFailure(
                f"preference extraction returned {type(preferences).__name__}, expected a list of tags"
            )
        return StateUpdate(preferences=tuple(str(tag).strip() for tag in preferences))

    def _clarify(self, state: PreferenceState) -> StateUpdate:
        logger.info("In node: Clarifier (messages=%d)", len(state.messages))
        question = _call_capability(
            "clarification",
            self._clarifier.clarify,
            state.messages,
            state.available_preference_options,
        )
        question = _require_text("clarification", question)
        return StateUpdate(messages=(ChatMessage(role="assistant", content=question),))

    def _reply(self, state: PreferenceState) -> StateUpdate:
        logger.info("In node: Replier (preferences=%s)", list(state.current_preferences))
        groups = self._retrieval_engine.match_by_tags(state.current_preferences)
        answer = _call_capability(
            "reply generation",
            self._replier.reply,
            state.messages,
            [(group.name, group.description) for group in groups],
        )
        answer = _require_text("reply generation", answer)
        return StateUpdate(
            messages=(ChatMessage(role="assistant", content=answer),),
            groups=tuple(groups),
        )


def _call_capability(name: str, capability: Callable[..., T], *args: object) -> T:
    try:
        return capability(*args)
    except GroupFinderError:
        raise
    except Exception as exc:
        logger.exception("External %s failed", name)
        raise ExternalCapabilityFailure(f"{name} failed: {exc}") from exc


def _require_text(name: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ExternalCapabilityFailure(f"{name} returned no text")
    return value.strip()


__all__ = ["ConversationFlow", "next_step"]
