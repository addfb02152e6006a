"""JSON-backed embedding cache."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Annotated, Any, List, Sequence

import numpy as np
from pydantic import BaseModel, Field, ValidationError, model_validator

from mdrag.embedding.encoder import Embedder
from mdrag.errors import CorruptCacheError, NotInitializedError
from mdrag.ingestion.markdown_loader import load_markdown_chunks
from mdrag.models import CacheEntry, CacheStats, Chunk
from mdrag.utils.text import CHUNK_SIZE

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 256
FLOAT32_MAX = float(np.finfo("float32").max)

Component = Annotated[float, Field(strict=True, allow_inf_nan=False, ge=-FLOAT32_MAX, le=FLOAT32_MAX)]
Vector = Annotated[List[Component], Field(min_length=1)]


class ChunkModel(BaseModel):
    source: str = Field(strict=True)
    content: str = Field(strict=True)


class CacheFile(BaseModel):
    """On-disk layout: parallel ``chunks`` and ``embeddings`` lists."""

    chunks: List[ChunkModel]
    embeddings: List[Vector]

    @model_validator(mode="after")
    def check_alignment(self) -> "CacheFile":
        if len(self.chunks) != len(self.embeddings):
            raise ValueError(f"{len(self.chunks)} chunks but {len(self.embeddings)} embeddings")
        if self.embeddings:
            dimension = len(self.embeddings[0])
            for position, vector in enumerate(self.embeddings):
                if len(vector) != dimension:
                    raise ValueError(
                        f"embedding {position} has dimension {len(vector)}, expected {dimension}"
                    )
        return self

    def to_entries(self) -> List[CacheEntry]:
        return [
            CacheEntry(
                chunk=Chunk(source=chunk.source, content=chunk.content),
                embedding=np.asarray(vector, dtype="float32"),
            )
            for chunk, vector in zip(self.chunks, self.embeddings)
        ]


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()[:3]
    )


def serialize_entries(entries: Sequence[CacheEntry]) -> dict[str, Any]:
    """Build the on-disk document with parallel ``chunks`` and ``embeddings`` lists."""
    return {
        "chunks": [entry.chunk.to_dict() for entry in entries],
        "embeddings": [np.asarray(entry.embedding, dtype="float64").tolist() for entry in entries],
    }


def parse_entries(payload: Any, path: Path) -> List[CacheEntry]:
    """Validate a decoded cache document and pair chunks with their vectors."""
    try:
        return CacheFile.model_validate(payload).to_entries()
    except ValidationError as exc:
        raise CorruptCacheError(path, _describe(exc)) from exc
    except (ValueError, OverflowError) as exc:
        raise CorruptCacheError(path, str(exc)) from exc


def parse_cache_json(data: str | bytes, path: Path) -> List[CacheEntry]:
    """Parse and validate the raw text of a cache file."""
    try:
        return CacheFile.model_validate_json(data).to_entries()
    except ValidationError as exc:
        raise CorruptCacheError(path, _describe(exc)) from exc
    except (ValueError, OverflowError) as exc:
        raise CorruptCacheError(path, str(exc)) from exc


def write_atomic(path: Path, data: str) -> None:
    """Replace ``path`` with ``data`` in one step; the old file survives failures."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class EmbeddingCache:
    """Whole-corpus cache of chunk embeddings persisted as a single JSON file.

    The in-memory entries are only replaced once a rebuild has been written
    to disk, and searches never reload the file implicitly; call
    :meth:`refresh` to pick up external changes.
    """

    def __init__(
        self,
        embedder: Embedder,
        docs_dir: Path,
        cache_path: Path,
        *,
        chunk_size: int = CHUNK_SIZE,
        base_dir: Path | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.embedder = embedder
        self.docs_dir = Path(docs_dir)
        self.cache_path = Path(cache_path)
        self.chunk_size = chunk_size
        self.base_dir = base_dir
        self.batch_size = batch_size
        self._entries: List[CacheEntry] | None = None
        self._matrix: np.ndarray | None = None

    @property
    def is_initialized(self) -> bool:
        return self._entries is not None

    def initialize(self) -> None:
        """Load the persisted cache, or build and persist it when absent."""
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        if self.cache_path.exists():
            self.load()
        else:
            LOGGER.info("No cache at %s, building from %s", self.cache_path, self.docs_dir)
            self.rebuild()

    def load(self) -> None:
        """Read and validate the cache file, replacing the in-memory state."""
        try:
            data = self.cache_path.read_bytes()
        except FileNotFoundError as exc:
            raise CorruptCacheError(self.cache_path, "file not found") from exc

        self._set_entries(parse_cache_json(data, self.cache_path))
        LOGGER.info("Loaded %d cached chunks from %s", len(self), self.cache_path)

    refresh = load

    def save(self) -> None:
        """Write the current entries to disk, replacing any previous file."""
        self._write(self._require())

    def rebuild(self) -> None:
        """Re-chunk and re-embed the whole document root, then persist it."""
        chunks = load_markdown_chunks(self.docs_dir, base_dir=self.base_dir, chunk_size=self.chunk_size)
        vectors = self._embed_all([chunk.content for chunk in chunks])
        entries = [CacheEntry(chunk=chunk, embedding=vector) for chunk, vector in zip(chunks, vectors)]
        self._write(entries)
        self._set_entries(entries)
        LOGGER.info("Rebuilt cache with %d chunks", len(entries))

    def _embed_all(self, texts: Sequence[str]) -> List[np.ndarray]:
        vectors: List[np.ndarray] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            embedded = self.embedder.embed(batch)
            if len(embedded) != len(batch):
                raise ValueError(f"Embedder returned {len(embedded)} vectors for {len(batch)} texts")
            vectors.extend(np.asarray(row, dtype="float32") for row in embedded)
        return vectors

    def _write(self, entries: Sequence[CacheEntry]) -> None:
        write_atomic(self.cache_path, json.dumps(serialize_entries(entries)))

    def _set_entries(self, entries: List[CacheEntry]) -> None:
        self._entries = entries
        if entries:
            self._matrix = np.vstack([entry.embedding for entry in entries]).astype("float32", copy=False)
        else:
            self._matrix = np.zeros((0, 0), dtype="float32")

    def _require(self) -> List[CacheEntry]:
        if self._entries is None:
            raise NotInitializedError()
        return self._entries

    @property
    def entries(self) -> List[CacheEntry]:
        return list(self._require())

    @property
    def chunks(self) -> List[Chunk]:
        return [entry.chunk for entry in self._require()]

    @property
    def embeddings(self) -> np.ndarray:
        """Embedding matrix with one row per chunk."""
        self._require()
        return self._matrix

    def stats(self) -> CacheStats:
        if not self._entries:
            return CacheStats()
        return CacheStats(chunk_count=len(self._entries), embedding_dim=int(self._matrix.shape[1]))

    def __len__(self) -> int:
        return len(self._require())
