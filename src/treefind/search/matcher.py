"""Match policies deciding which files and lines are reported."""

from __future__ import annotations

import calendar
import fnmatch
import os
from datetime import datetime
from typing import AbstractSet, Callable, Optional, Sequence

from treefind.models import SearchConfiguration, clamp_fraction, normalize_path
from treefind.utils.files import modified_time

RESULT_LOG_NAME = "Results.log"
ROTATED_LOG_SUFFIX = ".previous"

LinePredicate = Callable[[str], bool]


def subtract_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` back by calendar months, clamping the day of month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def is_self_reference(name: str, path: Optional[str] = None, excluded: AbstractSet[str] = frozenset()) -> bool:
    """True for the tool's own run log, current or rotated, which must never be reported.

    Files named like the default log are always skipped. ``excluded`` holds
    normalised paths of a log written elsewhere, see :func:`normalize_path`.
    """
    lowered = name.lower()
    if lowered.endswith(RESULT_LOG_NAME.lower()) or lowered.endswith((RESULT_LOG_NAME + ROTATED_LOG_SUFFIX).lower()):
        return True
    if path is None or not excluded:
        return False
    return normalize_path(path) in excluded or os.path.normcase(os.path.realpath(path)) in excluded


class NameMatcher:
    """Matches file names against a glob pattern and an optional age cutoff."""

    def __init__(self, pattern: str, *, months: int = 0, now: Optional[datetime] = None) -> None:
        self.pattern = pattern
        self.months = max(months, 0)
        self.cutoff: Optional[float] = None
        if self.months > 0:
            reference = now or datetime.now()
            self.cutoff = subtract_months(reference, self.months).timestamp()

    @classmethod
    def from_configuration(cls, config: SearchConfiguration, *, now: Optional[datetime] = None) -> "NameMatcher":
        return cls(config.pattern, months=config.months, now=now)

    def matches_name(self, name: str) -> bool:
        return fnmatch.fnmatch(name, self.pattern)

    def is_recent(self, path: str) -> bool:
        if self.cutoff is None:
            return True
        return modified_time(path) >= self.cutoff

    def evaluate(self, path: str, name: str) -> bool:
        """Return True when the file passes both the name and the age test.

        Raises :class:`OSError` if the file's timestamp cannot be read.
        """
        return self.matches_name(name) and self.is_recent(path)


class ContentMatcher:
    """Decides whether a single line of text satisfies the content criteria.

    With a non-empty term list the line matches when the share of terms it
    contains (case-insensitive) reaches ``required_fraction``. Without terms a
    plain keyword containment test is used. A custom ``line_predicate``
    overrides both.
    """

    def __init__(
        self,
        *,
        terms: Sequence[str] = (),
        keyword: Optional[str] = None,
        required_fraction: float = 0.8,
        line_predicate: Optional[LinePredicate] = None,
    ) -> None:
        self.terms = [term.lower() for term in terms if term]
        self.keyword = keyword.lower() if keyword else None
        self.required_fraction = clamp_fraction(required_fraction)
        self.line_predicate = line_predicate

    @classmethod
    def from_configuration(
        cls, config: SearchConfiguration, *, line_predicate: Optional[LinePredicate] = None
    ) -> "ContentMatcher":
        return cls(
            terms=config.terms,
            keyword=config.keyword,
            required_fraction=config.required_fraction,
            line_predicate=line_predicate,
        )

    @property
    def is_active(self) -> bool:
        return bool(self.line_predicate or self.terms or self.keyword)

    def term_ratio(self, line: str) -> float:
        if not self.terms:
            return 0.0
        lowered = line.lower()
        found = sum(1 for term in self.terms if term in lowered)
        return found / len(self.terms)

    def evaluate(self, line: str) -> bool:
        if self.line_predicate is not None:
            return bool(self.line_predicate(line))
        if self.terms:
            return self.term_ratio(line) >= self.required_fraction
        if self.keyword:
            return self.keyword in line.lower()
        return False
