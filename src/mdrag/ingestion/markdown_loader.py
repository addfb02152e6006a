"""Markdown loading and chunking utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List

from mdrag.models import Chunk
from mdrag.utils.files import MARKDOWN_SUFFIX, iter_markdown_paths, relative_source
from mdrag.utils.text import CHUNK_SIZE, chunk_text

LOGGER = logging.getLogger(__name__)


def build_chunks(path: Path, *, source: str, max_chars: int = CHUNK_SIZE) -> Iterator[Chunk]:
    """Produce chunks for a single markdown file."""
    text = path.read_text(encoding="utf-8")
    if not text:
        LOGGER.debug("Skipping empty file %s", path)
        return
    for content in chunk_text(text, max_chars=max_chars):
        yield Chunk(source=source, content=content)


def load_markdown_chunks(
    root: Path,
    *,
    base_dir: Path | None = None,
    chunk_size: int = CHUNK_SIZE,
    suffix: str = MARKDOWN_SUFFIX,
) -> List[Chunk]:
    """Chunk every markdown file found under ``root``.

    A missing root yields no chunks. Sources are recorded relative to
    ``base_dir`` (the working directory by default).
    """
    root = Path(root)
    if not root.exists():
        LOGGER.warning("Document root %s does not exist", root)
        return []

    base = Path(base_dir) if base_dir is not None else Path.cwd()
    chunks: List[Chunk] = []
    files = 0
    for path in iter_markdown_paths([root], suffix=suffix):
        files += 1
        chunks.extend(build_chunks(path, source=relative_source(path, base), max_chars=chunk_size))

    LOGGER.info("Loaded %d chunks from %d files under %s", len(chunks), files, root)
    return chunks
