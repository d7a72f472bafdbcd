"""Unit tests for the data_files.py utility module."""

import pathlib

import pytest

from sitefinder.exceptions import WordListError
from sitefinder.utils.data_files import PACKAGE_ROOT, read_lines, resolve_data_path


def test_resolve_relative_path() -> None:
    """Test that relative paths are taken from the package root."""
    assert resolve_data_path("data/words.txt") == PACKAGE_ROOT / "data" / "words.txt"


def test_resolve_absolute_path(tmp_path: pathlib.Path) -> None:
    """Test that absolute paths are kept."""
    assert resolve_data_path(tmp_path / "words.txt") == tmp_path / "words.txt"


def test_read_lines(tmp_path: pathlib.Path) -> None:
    """Test that blank lines are dropped and the others stripped."""
    path = tmp_path / "list.txt"
    path.write_text("  alpha\n\n beta \n   \ngamma", encoding="utf-8")

    assert read_lines(path) == ["alpha", "beta", "gamma"]


def test_read_lines_missing_file(tmp_path: pathlib.Path) -> None:
    """Test that an unreadable file raises a WordListError."""
    with pytest.raises(WordListError, match="Could not read data file"):
        read_lines(tmp_path / "missing.txt")
