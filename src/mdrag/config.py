"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from mdrag.embedding.encoder import DEFAULT_DIMENSION, ProviderName
from mdrag.index.search import DEFAULT_PER_QUERY_K
from mdrag.index.similarity import DEFAULT_TOP_K
from mdrag.index.storage import DEFAULT_BATCH_SIZE
from mdrag.rag.orchestrator import MAX_QUERIES
from mdrag.utils.text import CHUNK_SIZE

DEFAULT_DOCS_DIR = Path("data/company-data")
DEFAULT_CACHE_PATH = Path(".cache/embeddings.json")
PROVIDERS = ("auto", "openai", "local", "hash")


def _resolve(path: Path, base_dir: Path | None) -> Path:
    if path.is_absolute() or base_dir is None:
        return path
    return base_dir / path


@dataclass(slots=True)
class AppConfig:
    docs_dir: Path = DEFAULT_DOCS_DIR
    cache_path: Path = DEFAULT_CACHE_PATH
    provider: ProviderName = "auto"
    embedding_model: str | None = None
    chat_model: str | None = None
    embedding_dimension: int = DEFAULT_DIMENSION
    chunk_size: int = CHUNK_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE
    top_k: int = DEFAULT_TOP_K
    per_query_k: int = DEFAULT_PER_QUERY_K
    max_queries: int = MAX_QUERIES

    def __post_init__(self) -> None:
        self.docs_dir = Path(self.docs_dir)
        self.cache_path = Path(self.cache_path)
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown provider {self.provider!r}; expected one of {', '.join(PROVIDERS)}")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")

    @classmethod
    def from_env(cls, **overrides) -> "AppConfig":
        """Build a config from ``MDRAG_*`` environment variables.

        Keyword overrides that are not ``None`` win over the environment.
        """
        env = {
            "docs_dir": os.environ.get("MDRAG_DOCS_DIR"),
            "cache_path": os.environ.get("MDRAG_CACHE_PATH"),
            "provider": os.environ.get("MDRAG_PROVIDER"),
            "embedding_model": os.environ.get("MDRAG_EMBEDDING_MODEL"),
            "chat_model": os.environ.get("MDRAG_CHAT_MODEL"),
        }
        env.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**{key: value for key, value in env.items() if value is not None})

    def resolve_docs_dir(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.docs_dir, base_dir)

    def resolve_cache_path(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.cache_path, base_dir)
