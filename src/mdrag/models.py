"""Core mdrag data models."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(slots=True, frozen=True)
class Chunk:
    """Segment of a markdown document tagged with its source path."""

    source: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "content": self.content}


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """A chunk together with its embedding vector."""

    chunk: Chunk
    embedding: np.ndarray


@dataclass(slots=True)
class SearchResult:
    index: int
    score: float
    chunk: Chunk


@dataclass(slots=True)
class CacheStats:
    chunk_count: int = 0
    embedding_dim: int = 0
