"""Dependency wiring for the groupfinder application."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Literal

from application.conversation.flow import ConversationFlow
from application.services.retrieval_engine import RetrievalEngine
from application.use_cases.seed_catalog import seed_catalog
from domain.entities import GroupCatalogEntry
from domain.errors import ConfigurationError
from domain.interfaces import (
    ClarificationGenerator,
    Embedder,
    GroupIndex,
    PreferenceExtractor,
    ReplyGenerator,
    SessionRepository,
)
from infrastructure.catalog.json_catalog import load_catalog, unique_tags
from infrastructure.embedding.mean_word_hash_embedder import MeanWordHashEmbedder
from infrastructure.llm.capabilities import LLMClarifier, LLMPreferenceExtractor, LLMReplier
from infrastructure.llm.chat_client import ChatClient, ChatClientConfig
from infrastructure.llm.offline import KeywordPreferenceExtractor, TemplateClarifier, TemplateReplier
from infrastructure.repositories.in_memory_session_repository import InMemorySessionRepository
from infrastructure.storage.in_memory_group_index import InMemoryGroupIndex
from infrastructure.storage.qdrant_group_index import QdrantConfig, QdrantGroupIndex

if TYPE_CHECKING:
    from infrastructure.embedding.sentence_transformers_embedder import SentenceTransformersConfig

logger = logging.getLogger(__name__)

EmbedderName = Literal["sentence-transformers", "mean_word"]
IndexName = Literal["memory", "qdrant"]
LLMProviderName = Literal["ollama", "openai", "offline"]

ENV_PREFIX = "GROUPFINDER_"


@dataclass(slots=True)
class Container:
    """Simple container bundling concrete infrastructure implementations."""

    catalog: list[GroupCatalogEntry]
    tag_universe: tuple[str, ...]
    embedder: Embedder
    index: GroupIndex
    retrieval_engine: RetrievalEngine
    flow: ConversationFlow
    session_repository: SessionRepository
    turn_timeout: float | None = None


@dataclass(slots=True)
class ContainerConfig:
    """Configuration for selecting embedder, index and language model."""

    embedder: EmbedderName = "sentence-transformers"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    # instruction prefixes for models such as E5 ("query: " / "passage: ")
    embedding_query_prefix: str | None = None
    embedding_passage_prefix: str | None = None
    models_dir: str | None = None
    index: IndexName = "memory"
    qdrant_url: str = "http://localhost:6333"
    qdrant_collection: str = "groups"
    qdrant_api_key: str | None = None
    llm_provider: LLMProviderName = "offline"
    llm_model: str = "llama3.1"
    ollama_url: str = "http://localhost:11434"
    openai_api_key: str | None = None
    catalog_path: str | None = None
    # the in-memory index is always seeded; Qdrant only when asked to
    seed_on_start: bool = False
    turn_timeout: float | None = 60.0

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ContainerConfig":
        """Build a config from ``GROUPFINDER_*`` variables.

        ``QDRANT_URL`` and ``OPENAI_API_KEY`` are honoured without the prefix.
        """
        env = dict(os.environ if environ is None else environ)
        values: dict[str, object] = {}
        for item in fields(cls):
            raw = env.get(ENV_PREFIX + item.name.upper())
            if raw is None:
                continue
            values[item.name] = _coerce(item.name, raw, getattr(cls(), item.name))
        if "qdrant_url" not in values and env.get("QDRANT_URL"):
            values["qdrant_url"] = env["QDRANT_URL"]
        if "openai_api_key" not in values and env.get("OPENAI_API_KEY"):
            values["openai_api_key"] = env["OPENAI_API_KEY"]
        return cls(**values)


def _coerce(name: str, raw: str, default: object) -> object:
    if isinstance(default, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if name == "turn_timeout":
        return float(raw) if raw.strip() and raw.strip().lower() != "none" else None
    return raw


def _resolve_model_reference(model_ref: str, config: ContainerConfig) -> str:
    """Prefer a locally prefetched copy of ``model_ref`` when one exists."""
    if not config.models_dir:
        return model_ref
    local_path = Path(config.models_dir) / model_ref
    if local_path.is_dir():
        logger.info("Using local model directory %s", local_path)
        return str(local_path)
    return model_ref


def _build_sentence_transformers(config: ContainerConfig) -> Embedder:
    from infrastructure.embedding.sentence_transformers_embedder import SentenceTransformersEmbedder  # noqa: PLC0415

    return SentenceTransformersEmbedder(_sentence_transformers_config(config))


def _sentence_transformers_config(config: ContainerConfig) -> SentenceTransformersConfig:
    from infrastructure.embedding.sentence_transformers_embedder import SentenceTransformersConfig  # noqa: PLC0415

    return SentenceTransformersConfig(
        model_name=_resolve_model_reference(config.embedding_model, config),
        query_prefix=config.embedding_query_prefix or None,
        passage_prefix=config.embedding_passage_prefix or None,
    )


_EMBEDDER_FACTORIES: dict[str, Callable[[ContainerConfig], Embedder]] = {
    "sentence-transformers": _build_sentence_transformers,
    "mean_word": lambda _config: MeanWordHashEmbedder(),
}

_INDEX_FACTORIES: dict[str, Callable[[ContainerConfig], GroupIndex]] = {
    "memory": lambda _config: InMemoryGroupIndex(),
    "qdrant": lambda config: QdrantGroupIndex(
        QdrantConfig(
            url=config.qdrant_url,
            collection=config.qdrant_collection,
            api_key=config.qdrant_api_key,
        )
    ),
}


def build_embedder(config: ContainerConfig) -> Embedder:
    try:
        factory = _EMBEDDER_FACTORIES[config.embedder]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown embedder '{config.embedder}'") from exc
    return factory(config)


def build_index(config: ContainerConfig) -> GroupIndex:
    try:
        factory = _INDEX_FACTORIES[config.index]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown index '{config.index}'") from exc
    return factory(config)


def build_capabilities(
    config: ContainerConfig,
) -> tuple[PreferenceExtractor, ClarificationGenerator, ReplyGenerator]:
    if config.llm_provider == "offline":
        return KeywordPreferenceExtractor(), TemplateClarifier(), TemplateReplier()
    if config.llm_provider not in ("ollama", "openai"):
        raise ConfigurationError(f"Unknown LLM provider '{config.llm_provider}'")
    client = ChatClient(
        ChatClientConfig(
            provider=config.llm_provider,
            model=config.llm_model,
            ollama_url=config.ollama_url,
            openai_api_key=config.openai_api_key,
        )
    )
    return LLMPreferenceExtractor(client), LLMClarifier(client), LLMReplier(client)


def build_default_container(config: ContainerConfig | None = None) -> Container:
    """Instantiate the default infrastructure stack."""

    cfg = config or ContainerConfig()
    embedder = build_embedder(cfg)
    index = build_index(cfg)

    catalog = load_catalog(cfg.catalog_path)
    # computed once; every new conversation is offered the same options
    tag_universe = unique_tags(catalog)
    if cfg.seed_on_start or isinstance(index, InMemoryGroupIndex):
        seed_catalog(catalog, embedder=embedder, index=index)

    retrieval_engine = RetrievalEngine(embedder, index)
    extractor, clarifier, replier = build_capabilities(cfg)
    flow = ConversationFlow(
        extractor=extractor,
        clarifier=clarifier,
        replier=replier,
        retrieval_engine=retrieval_engine,
    )
    logger.info(
        "Container ready: embedder=%s index=%s llm=%s groups=%d tags=%d",
        embedder.model_id,
        cfg.index,
        cfg.llm_provider,
        len(catalog),
        len(tag_universe),
    )
    return Container(
        catalog=catalog,
        tag_universe=tag_universe,
        embedder=embedder,
        index=index,
        retrieval_engine=retrieval_engine,
        flow=flow,
        session_repository=InMemorySessionRepository(),
        turn_timeout=cfg.turn_timeout,
    )


__all__ = [
    "Container",
    "ContainerConfig",
    "build_embedder",
    "build_index",
    "build_capabilities",
    "build_default_container",
]
