"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

import pytest

from treefind.utils.files import iter_files, iter_lines, iter_subdirectories, modified_time


class TestIterFiles:
    """Test iter_files function."""

    def test_lists_only_immediate_files(self, tmp_path: Path) -> None:
        """Should yield files directly inside the directory only."""
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "b.config").write_text("b")
        nested = tmp_path / "sub"
        nested.mkdir()
        (nested / "c.txt").write_text("c")

        found = dict(iter_files(str(tmp_path)))

        assert set(found) == {"a.txt", "b.config"}
        assert found["a.txt"] == str(tmp_path / "a.txt")

    def test_empty_directory(self, tmp_path: Path) -> None:
        """Should handle empty directory."""
        assert list(iter_files(str(tmp_path))) == []

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        """Opening a missing directory surfaces OSError."""
        with pytest.raises(OSError):
            list(iter_files(str(tmp_path / "missing")))


class TestIterSubdirectories:
    """Test iter_subdirectories function."""

    def test_lists_only_directories(self, tmp_path: Path) -> None:
        """Should yield immediate subdirectories, not files or grandchildren."""
        (tmp_path / "one").mkdir()
        (tmp_path / "two" / "deep").mkdir(parents=True)
        (tmp_path / "file.txt").write_text("x")

        found = sorted(iter_subdirectories(str(tmp_path)))

        assert found == [str(tmp_path / "one"), str(tmp_path / "two")]

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        """Opening a missing directory surfaces OSError."""
        with pytest.raises(OSError):
            list(iter_subdirectories(str(tmp_path / "missing")))


class TestIterLines:
    """Test iter_lines function."""

    def test_numbers_lines_from_one(self, tmp_path: Path) -> None:
        """Line numbers start at one and increase strictly."""
        target = tmp_path / "x.txt"
        target.write_text("first\nsecond\n\nfourth")

        assert list(iter_lines(str(target))) == [(1, "first"), (2, "second"), (3, ""), (4, "fourth")]

    def test_empty_file(self, tmp_path: Path) -> None:
        """Empty file yields nothing."""
        target = tmp_path / "empty.txt"
        target.write_text("")

        assert list(iter_lines(str(target))) == []


class TestModifiedTime:
    """Test modified_time function."""

    def test_matches_stat(self, tmp_path: Path) -> None:
        """Returns the file's mtime."""
        target = tmp_path / "x.txt"
        target.write_text("x")

        assert modified_time(str(target)) == target.stat().st_mtime
