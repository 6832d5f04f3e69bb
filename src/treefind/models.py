"""Core treefind data models."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, NamedTuple, Tuple, Union

DEFAULT_PATTERN = "*.config"
DEFAULT_WORKERS = 4
DEFAULT_REQUIRED_FRACTION = 0.8
MIN_REQUIRED_FRACTION = 0.1
MAX_REQUIRED_FRACTION = 1.0


def clamp_fraction(value: float) -> float:
    """Clamp a required-match fraction into ``[0.1, 1.0]``.

    Zero or negative fractions would let every line match, so they collapse to
    the lower bound instead.
    """
    if math.isnan(value):
        return DEFAULT_REQUIRED_FRACTION
    return min(max(value, MIN_REQUIRED_FRACTION), MAX_REQUIRED_FRACTION)


def normalize_path(path: Union[str, "os.PathLike[str]"]) -> str:
    """Absolute, case-normalised form used to compare file locations."""
    return os.path.normcase(os.path.abspath(os.fspath(path)))


def normalize_paths(paths) -> FrozenSet[str]:
    """Normalise paths, adding the symlink-resolved form of each as well."""
    normalized = set()
    for path in paths:
        normalized.add(normalize_path(path))
        normalized.add(os.path.normcase(os.path.realpath(os.fspath(path))))
    return frozenset(normalized)


class SearchMode(str, Enum):
    LOCATE = "locate"
    CONTENT = "content"


@dataclass(frozen=True, slots=True)
class DirectoryTask:
    """A directory waiting to be listed."""

    path: str


@dataclass(frozen=True, slots=True)
class FileMatch:
    """A file found in locate mode."""

    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True, slots=True)
class LineMatch:
    """First line of a file satisfying the content criteria."""

    path: Path
    line_number: int
    line: str

    def __str__(self) -> str:
        return f"{self.path}\t[Line {self.line_number}]\t{self.line}"


MatchRecord = Union[FileMatch, LineMatch]


@dataclass(frozen=True, slots=True)
class DirectoryMetric:
    """Time spent listing one directory and enqueuing its children."""

    path: str
    elapsed: float


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    active_workers: int
    queued_directories: int
    results: int


@dataclass(frozen=True, slots=True)
class SearchConfiguration:
    """Immutable description of one search run.

    Values are normalised once on construction and never change afterwards, so
    workers read them without any synchronisation.
    """

    pattern: str = DEFAULT_PATTERN
    months: int = 0
    keyword: str | None = None
    terms: Tuple[str, ...] = field(default_factory=tuple)
    required_fraction: float = DEFAULT_REQUIRED_FRACTION
    workers: int = DEFAULT_WORKERS
    mode: SearchMode = SearchMode.LOCATE
    startup_stagger: float = 0.5
    rearm_idle_workers: bool = False
    idle_poll_interval: float = 0.05
    excluded_paths: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", self.pattern or DEFAULT_PATTERN)
        object.__setattr__(self, "workers", max(int(self.workers), 1))
        object.__setattr__(self, "months", max(int(self.months), 0))
        object.__setattr__(self, "required_fraction", clamp_fraction(float(self.required_fraction)))
        object.__setattr__(self, "terms", tuple(term for term in self.terms if term and term.strip()))
        object.__setattr__(self, "keyword", self.keyword or None)
        object.__setattr__(self, "startup_stagger", max(float(self.startup_stagger), 0.0))
        object.__setattr__(self, "mode", SearchMode(self.mode))
        object.__setattr__(self, "excluded_paths", normalize_paths(self.excluded_paths))

    @property
    def is_content_search(self) -> bool:
        return self.mode is SearchMode.CONTENT


class SearchOutcome(NamedTuple):
    results: List[MatchRecord]
    metrics: List[DirectoryMetric]
