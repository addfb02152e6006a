"""Exception hierarchy shared across mdrag."""

from __future__ import annotations

from pathlib import Path


class MdragError(Exception):
    """Base class for all mdrag failures."""


class NotInitializedError(MdragError):
    """Raised when the embedding cache is used before it has been loaded."""

    def __init__(self, message: str = "Cache not initialized. Call initialize() first.") -> None:
        super().__init__(message)


class CorruptCacheError(MdragError):
    """Raised when the persisted cache cannot be parsed or validated."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Corrupt embeddings cache at {self.path}: {reason}")


class IncompatibleCacheError(MdragError):
    """Raised when query vectors do not match the dimension of the cached vectors."""

    def __init__(self, query_dim: int, cache_dim: int) -> None:
        self.query_dim = query_dim
        self.cache_dim = cache_dim
        super().__init__(
            f"Embedding dimension {query_dim} does not match the cache ({cache_dim}). "
            "The cache was built with a different embedder; run `mdrag train` to rebuild it."
        )


class ProviderError(MdragError):
    """Raised when an embedding or chat provider call fails."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} provider failed: {message}")
