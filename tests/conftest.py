"""Shared fixtures: deterministic embedders and document trees."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import numpy as np
import pytest

from mdrag.embedding.encoder import HashEmbedder
from mdrag.index.storage import EmbeddingCache


class KeywordEmbedder:
    """Embeds text as counts of a fixed keyword vocabulary."""

    def __init__(self, vocabulary: Sequence[str]) -> None:
        self.vocabulary = [word.lower() for word in vocabulary]
        self.dimension = len(self.vocabulary)
        self.calls: List[List[str]] = []

    def embed(self, texts: Iterable[str]) -> np.ndarray:
        batch = list(texts)
        self.calls.append(batch)
        rows = [[text.lower().count(word) for word in self.vocabulary] for text in batch]
        return np.asarray(rows, dtype="float32").reshape(len(batch), self.dimension)

    def embed_query(self, text: str) -> np.ndarray:
        return self.embed([text])[0]


class FailingEmbedder:
    dimension = 4

    def __init__(self, error: Exception) -> None:
        self.error = error

    def embed(self, texts: Iterable[str]) -> np.ndarray:
        raise self.error

    def embed_query(self, text: str) -> np.ndarray:
        raise self.error


def write_docs(root: Path, files: Dict[str, str]) -> Path:
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    return write_docs(
        tmp_path / "docs",
        {
            "vacation.md": "Vacation policy: employees get 20 days of paid vacation.",
            "handbook/remote.md": "Remote work is allowed on Fridays.",
            "handbook/expenses.md": "Expenses above 100 euro need approval.",
            "notes.txt": "vacation notes that must not be indexed",
        },
    )


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder(["vacation", "remote", "expenses", "fridays", "approval"])


@pytest.fixture
def cache(tmp_path: Path, docs_dir: Path, keyword_embedder: KeywordEmbedder) -> EmbeddingCache:
    store = EmbeddingCache(
        keyword_embedder,
        docs_dir,
        tmp_path / ".cache" / "embeddings.json",
        base_dir=tmp_path,
    )
    store.initialize()
    return store


@pytest.fixture
def hash_embedder() -> HashEmbedder:
    return HashEmbedder(dimension=32)
