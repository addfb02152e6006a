"""Semantic search over the embedding cache."""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from mdrag.embedding.encoder import Embedder
from mdrag.errors import IncompatibleCacheError
from mdrag.index.similarity import DEFAULT_TOP_K, rank
from mdrag.index.storage import EmbeddingCache
from mdrag.models import Chunk, SearchResult

LOGGER = logging.getLogger(__name__)

DEFAULT_PER_QUERY_K = 3


def _check_dimension(vectors, matrix) -> None:
    query_dim = int(np.shape(vectors)[-1])
    cache_dim = int(np.shape(matrix)[1])
    if query_dim != cache_dim:
        raise IncompatibleCacheError(query_dim, cache_dim)


class Searcher:
    """High-level API to query the embedding cache."""

    def __init__(self, embedder: Embedder, cache: EmbeddingCache) -> None:
        self.embedder = embedder
        self.cache = cache

    def search(self, query: str, *, top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        if not query or not query.strip():
            raise ValueError("Query must not be empty")

        chunks = self.cache.chunks
        if not chunks:
            return []

        embedding = self.embedder.embed_query(query)
        _check_dimension(embedding, self.cache.embeddings)
        return [
            SearchResult(index=idx, score=score, chunk=chunks[idx])
            for idx, score in rank(embedding, self.cache.embeddings, k=top_k)
        ]

    def search_indices(self, queries: Sequence[str], *, top_k: int = DEFAULT_PER_QUERY_K) -> List[int]:
        """Union of the top ``top_k`` indices per query, in first-seen order."""
        matrix = self.cache.embeddings
        queries = [query for query in queries if query and query.strip()]
        if not queries or len(matrix) == 0:
            return []

        embeddings = self.embedder.embed(queries)
        _check_dimension(embeddings, matrix)

        seen: dict[int, None] = {}
        for query, embedding in zip(queries, embeddings):
            hits = rank(embedding, matrix, k=top_k)
            LOGGER.debug("Query %r matched %s", query, [idx for idx, _ in hits])
            for idx, _ in hits:
                seen.setdefault(idx, None)
        return list(seen)

    def search_many(self, queries: Sequence[str], *, top_k: int = DEFAULT_PER_QUERY_K) -> List[Chunk]:
        """Deduplicated chunks retrieved by any of ``queries``."""
        chunks = self.cache.chunks
        return [chunks[idx] for idx in self.search_indices(queries, top_k=top_k)]
