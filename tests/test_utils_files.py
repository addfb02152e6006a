"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

from mdrag.utils.files import iter_markdown_paths, relative_source


class TestIterMarkdownPaths:
    """Test iter_markdown_paths function."""

    def test_single_file(self, tmp_path: Path) -> None:
        doc = tmp_path / "doc.md"
        doc.write_text("hello")

        assert list(iter_markdown_paths([doc])) == [doc]

    def test_non_markdown_file_ignored(self, tmp_path: Path) -> None:
        other = tmp_path / "image.png"
        other.write_bytes(b"\x89PNG")

        assert list(iter_markdown_paths([other])) == []

    def test_directory_is_sorted_and_recursive(self, tmp_path: Path) -> None:
        (tmp_path / "b").mkdir()
        (tmp_path / "a").mkdir()
        for rel in ["z.md", "b/one.md", "a/two.md", "a/skip.txt"]:
            (tmp_path / rel).write_text(rel)

        results = list(iter_markdown_paths([tmp_path]))

        assert results == [tmp_path / "a/two.md", tmp_path / "b/one.md", tmp_path / "z.md"]

    def test_uppercase_suffix(self, tmp_path: Path) -> None:
        doc = tmp_path / "README.MD"
        doc.write_text("hello")

        assert list(iter_markdown_paths([tmp_path])) == [doc]

    def test_missing_path(self, tmp_path: Path) -> None:
        assert list(iter_markdown_paths([tmp_path / "missing"])) == []


class TestRelativeSource:
    """Test relative_source function."""

    def test_inside_base(self, tmp_path: Path) -> None:
        path = tmp_path / "docs" / "sub" / "a.md"

        assert relative_source(path, tmp_path) == "docs/sub/a.md"

    def test_outside_base_keeps_absolute(self, tmp_path: Path) -> None:
        base = tmp_path / "base"
        path = tmp_path / "elsewhere" / "a.md"

        assert relative_source(path, base) == path.resolve().as_posix()
