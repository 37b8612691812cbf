"""FastAPI layer that exposes conversation turns and group search."""
from __future__ import annotations

import logging
from functools import lru_cache
from uuid import uuid4

from fastapi import Depends, FastAPI, Query as FastAPIQuery, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from application.use_cases.process_turn import process_turn
from domain.entities import SearchQuery, SearchResult
from domain.errors import (
    BackendUnavailable,
    EmbeddingFailure,
    ExternalCapabilityFailure,
    GroupFinderError,
    InvalidMessage,
    InvalidQuery,
    TurnTimeout,
)
from infrastructure.config import Container, ContainerConfig, build_default_container
from ui.logging_utils import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(title="groupfinder API")


@lru_cache(maxsize=1)
def get_container() -> Container:
    setup_logging()
    return build_default_container(ContainerConfig.from_env())


class GroupPayload(BaseModel):
    id: str
    name: str
    description: str
    tags: list[str]
    cadence: str | None = None
    score: float | None = None


class ChatRequest(BaseModel):
    message: str | None = None
    session_id: str | None = None


class ChatResponse(BaseModel):
    session_id: str
    reply: str
    route: str
    preferences: list[str]
    groups: list[GroupPayload]


class SearchResponse(BaseModel):
    tags: list[str]
    query: str | None
    results: list[GroupPayload]


_STATUS_CODES: list[tuple[type[GroupFinderError], int]] = [
    (InvalidMessage, 400),
    (InvalidQuery, 400),
    (TurnTimeout, 504),
    (ExternalCapabilityFailure, 502),
    (EmbeddingFailure, 503),
    (BackendUnavailable, 503),
]


@app.exception_handler(GroupFinderError)
async def handle_groupfinder_error(_request: Request, exc: GroupFinderError) -> JSONResponse:
    status = next((code for kind, code in _STATUS_CODES if isinstance(exc, kind)), 500)
    if status >= 500:
        logger.error("Request failed with %s: %s", type(exc).__name__, exc)
    return JSONResponse({"error": str(exc)}, status_code=status)


@app.post("/chat", response_model=ChatResponse)
def chat_endpoint(payload: ChatRequest, container: Container = Depends(get_container)) -> ChatResponse:
    session_id = payload.session_id or str(uuid4())
    previous = container.session_repository.get(session_id)
    result = process_turn(
        previous,
        payload.message or "",
        flow=container.flow,
        tag_universe=container.tag_universe,
        timeout=container.turn_timeout,
    )
    # only a completed turn replaces the stored snapshot
    container.session_repository.save(session_id, result.state)
    groups_before = len(previous.retrieved_groups) if previous else 0
    return ChatResponse(
        session_id=session_id,
        reply=result.reply,
        route=result.route.value,
        preferences=list(result.state.current_preferences),
        groups=[GroupPayload(**group.to_payload()) for group in result.state.retrieved_groups[groups_before:]],
    )


@app.get("/groups/search", response_model=SearchResponse)
def search_endpoint(
    tags: list[str] | None = FastAPIQuery(None, description="Tags; any match qualifies"),
    q: str | None = FastAPIQuery(None, description="Free-text query"),
    limit: int = FastAPIQuery(10, ge=1),
    score_threshold: float = FastAPIQuery(0.5, ge=0.0, le=1.0),
    container: Container = Depends(get_container),
) -> SearchResponse:
    tags = tags or []
    query = SearchQuery(tags=tuple(tags), text=q, limit=limit, score_threshold=score_threshold)
    results = container.retrieval_engine.search(query)
    serialized = [
        GroupPayload(**item.group.to_payload(), score=item.score)
        if isinstance(item, SearchResult)
        else GroupPayload(**item.to_payload())
        for item in results
    ]
    return SearchResponse(tags=list(tags), query=q, results=serialized)


@app.get("/health")
def health_endpoint(container: Container = Depends(get_container)) -> dict[str, object]:
    return {"status": "ok", "groups": container.index.count()}
