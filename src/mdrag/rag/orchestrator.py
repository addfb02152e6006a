"""Question answering: query expansion, retrieval and the final completion."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from mdrag.errors import ProviderError
from mdrag.index.search import DEFAULT_PER_QUERY_K, Searcher
from mdrag.llm.chat import ChatMessage, ChatModel
from mdrag.models import Chunk

LOGGER = logging.getLogger(__name__)

MAX_QUERIES = 4

QUERY_SYSTEM_PROMPT = (
    "You are an assistant that suggests concise search queries (2-4) users might run "
    "in a vector search over company documentation. Return ONLY a JSON list of strings."
)

ANSWER_SYSTEM_PROMPT = (
    "Answer the question strictly based on the provided context. "
    "If the answer is not contained, say you don't know."
)


def _fallback_queries(question: str, max_queries: int) -> List[str]:
    tokens = question.split()[:max_queries]
    return tokens or [question]


def _parse_queries(raw: str, max_queries: int) -> List[str]:
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    queries = [str(item).strip() for item in parsed if item is not None and str(item).strip()]
    return queries[:max_queries]


def propose_search_queries(question: str, chat: ChatModel, *, max_queries: int = MAX_QUERIES) -> List[str]:
    """Ask the chat model for search queries, falling back to the question's words."""
    try:
        raw = chat.complete(
            [
                ChatMessage("system", QUERY_SYSTEM_PROMPT),
                ChatMessage("user", question),
            ]
        )
    except ProviderError as exc:
        LOGGER.warning("Query proposal failed, using question tokens: %s", exc)
        return _fallback_queries(question, max_queries)

    queries = _parse_queries(raw, max_queries)
    if not queries:
        LOGGER.debug("Unusable query proposal %r, using question tokens", raw)
        return _fallback_queries(question, max_queries)
    return queries


def build_context(chunks: Sequence[Chunk]) -> str:
    return "\n".join(f"### Source: {chunk.source}\n{chunk.content}" for chunk in chunks)


@dataclass(slots=True)
class RetrievedContext:
    queries: List[str]
    chunks: List[Chunk] = field(default_factory=list)

    @property
    def context(self) -> str:
        return build_context(self.chunks)


class RetrievalOrchestrator:
    """Answers questions from the cached documents through a chat model."""

    def __init__(
        self,
        searcher: Searcher,
        chat: ChatModel,
        *,
        per_query_k: int = DEFAULT_PER_QUERY_K,
        max_queries: int = MAX_QUERIES,
        temperature: float = 0.2,
    ) -> None:
        self.searcher = searcher
        self.chat = chat
        self.per_query_k = per_query_k
        self.max_queries = max_queries
        self.temperature = temperature

    def retrieve(self, question: str) -> RetrievedContext:
        queries = propose_search_queries(question, self.chat, max_queries=self.max_queries)
        chunks = self.searcher.search_many(queries, top_k=self.per_query_k)
        LOGGER.info("Retrieved %d chunks for %d queries", len(chunks), len(queries))
        return RetrievedContext(queries=queries, chunks=chunks)

    def answer(self, question: str) -> str:
        if not question or not question.strip():
            raise ValueError("Question must not be empty")

        retrieved = self.retrieve(question)
        return self.chat.complete(
            [
                ChatMessage("system", ANSWER_SYSTEM_PROMPT),
                ChatMessage("system", f"Context:\n{retrieved.context}"),
                ChatMessage("user", question),
            ],
            temperature=self.temperature,
        )
