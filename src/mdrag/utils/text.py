"""Text helpers: fixed-size chunking and terminal wrapping."""

from __future__ import annotations

from typing import Iterator

CHUNK_SIZE = 400


def chunk_text(text: str, *, max_chars: int = CHUNK_SIZE) -> Iterator[str]:
    """Split text into consecutive, non-overlapping character chunks.

    The final chunk may be shorter than ``max_chars``.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be positive")
    for start in range(0, len(text), max_chars):
        yield text[start : start + max_chars]


def wrap_text(text: str, width: int = 80) -> str:
    """Greedy word wrap; words longer than ``width`` get a line of their own."""
    lines: list[str] = []
    for word in text.split():
        if not lines or len(lines[-1]) + len(word) + 1 > width:
            lines.append(word)
        else:
            lines[-1] = f"{lines[-1]} {word}"
    return "\n".join(lines)
