"""Embedding providers.

Every provider exposes ``embed(texts)`` returning a float32 matrix with one
row per input text (same order) and ``embed_query(text)`` for a single row.
"""

from __future__ import annotations

import hashlib
import logging
import math
import os
from dataclasses import dataclass
from typing import Iterable, Literal, Protocol, Sequence

import numpy as np
from openai import OpenAI, OpenAIError
from sentence_transformers import SentenceTransformer

from mdrag.errors import ProviderError

DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"
DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_DIMENSION = 1536

ProviderName = Literal["auto", "openai", "local", "hash"]

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    dimension: int

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray: ...

    def embed_query(self, text: str) -> np.ndarray: ...


def _empty(dimension: int) -> np.ndarray:
    return np.zeros((0, dimension), dtype="float32")


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for local embeddings."""

    name = "sentence-transformers"

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        try:
            self._model = SentenceTransformer(
                self.config.model_name,
                backend=self.config.backend,
                device=self.config.device,
            )
        except Exception as exc:
            raise ProviderError(self.name, f"could not load {self.config.model_name}: {exc}") from exc
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info("Loaded %s (backend: %s, dim: %d)", self.config.model_name, self.config.backend, self.dimension)

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        if not sentences:
            return _empty(self.dimension)
        try:
            embeddings = self._model.encode(
                sentences,
                batch_size=self.config.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.config.normalize,
            )
        except Exception as exc:
            raise ProviderError(self.name, str(exc)) from exc
        return embeddings.astype("float32", copy=False)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0]


class OpenAIEmbedder:
    """Embeddings from the OpenAI API, one request per call to ``embed``."""

    name = "openai"

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str = DEFAULT_OPENAI_MODEL,
        dimension: int = DEFAULT_DIMENSION,
    ) -> None:
        self.client = client
        self.model = model
        self.dimension = dimension

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        inputs = list(texts)
        if not inputs:
            return _empty(self.dimension)
        try:
            response = self.client.embeddings.create(model=self.model, input=inputs)
        except OpenAIError as exc:
            raise ProviderError(self.name, str(exc)) from exc

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(inputs):
            raise ProviderError(self.name, f"expected {len(inputs)} embeddings, got {len(data)}")
        matrix = np.asarray([item.embedding for item in data], dtype="float32")
        self.dimension = int(matrix.shape[1])
        logger.debug("Embedded %d texts with %s", len(inputs), self.model)
        return matrix

    def embed_query(self, text: str) -> np.ndarray:
        return self.embed([text])[0]


class HashEmbedder:
    """Deterministic offline embedder derived from SHA-256 digests.

    Identical texts map to identical vectors, which is all the tests and the
    keyless mode need. It carries no semantic signal.
    """

    name = "hash"

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension < 1:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def _vector(self, text: str) -> np.ndarray:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeats = math.ceil(self.dimension * 4 / len(digest))
        raw = np.frombuffer(digest * repeats, dtype=np.uint8)
        return raw[: self.dimension * 4 : 4].astype("float32") / 255.0

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        inputs = list(texts)
        if not inputs:
            return _empty(self.dimension)
        return np.vstack([self._vector(text) for text in inputs])

    def embed_query(self, text: str) -> np.ndarray:
        return self._vector(text)


def openai_available() -> bool:
    return bool(os.environ.get("OPENAI_API_KEY"))


def build_embedder(
    provider: ProviderName = "auto",
    *,
    model_name: str | None = None,
    dimension: int = DEFAULT_DIMENSION,
    client: OpenAI | None = None,
) -> Embedder:
    """Create the embedder selected by ``provider``.

    ``auto`` uses OpenAI when ``OPENAI_API_KEY`` is set and the hash embedder
    otherwise.
    """
    if provider == "auto":
        provider = "openai" if client is not None or openai_available() else "hash"

    if provider == "openai":
        return OpenAIEmbedder(
            client or OpenAI(),
            model=model_name or DEFAULT_OPENAI_MODEL,
            dimension=dimension,
        )
    if provider == "local":
        return EmbeddingModel(EmbeddingConfig(model_name=model_name or DEFAULT_MODEL))
    if provider == "hash":
        return HashEmbedder(dimension)
    raise ValueError(f"Unknown embedding provider: {provider}")
