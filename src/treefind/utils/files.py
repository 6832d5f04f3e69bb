"""Utility helpers for working with files."""

from __future__ import annotations

import logging
import os
from typing import Iterator, Tuple

LOGGER = logging.getLogger(__name__)


def iter_files(directory: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(name, path)`` for the regular files directly inside ``directory``.

    Opening the directory may raise :class:`OSError`; entries that cannot be
    inspected are skipped.
    """
    with os.scandir(directory) as entries:
        for entry in entries:
            try:
                if entry.is_file():
                    yield entry.name, entry.path
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", entry.path, exc)


def iter_subdirectories(directory: str) -> Iterator[str]:
    """Yield the immediate subdirectories of ``directory``.

    Symlinked directories are not followed so that link cycles cannot make the
    traversal endless.
    """
    with os.scandir(directory) as entries:
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    yield entry.path
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", entry.path, exc)


def iter_lines(path: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, line)`` pairs, 1-based, without line terminators."""
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as handle:
        for number, line in enumerate(handle, start=1):
            yield number, line.rstrip("\r\n")


def modified_time(path: str) -> float:
    return os.stat(path).st_mtime
