"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

MARKDOWN_SUFFIX = ".md"


def iter_markdown_paths(inputs: Iterable[Path], *, suffix: str = MARKDOWN_SUFFIX) -> Iterator[Path]:
    """Yield files matching ``suffix`` from input paths, descending into directories."""
    suffix = suffix.lower()
    for item in inputs:
        if item.is_dir():
            children = sorted(child for child in item.rglob("*") if child.is_file())
            yield from iter_markdown_paths(children, suffix=suffix)
        elif item.is_file() and item.suffix.lower() == suffix:
            yield item


def relative_source(path: Path, base_dir: Path) -> str:
    """Return ``path`` relative to ``base_dir`` with forward slashes.

    Files outside ``base_dir`` keep their absolute path.
    """
    resolved = path.resolve()
    try:
        relative = resolved.relative_to(base_dir.resolve())
    except ValueError:
        relative = resolved
    return relative.as_posix()
