"""Tests for core data models."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

import pytest

from treefind.models import (
    DirectoryMetric,
    FileMatch,
    LineMatch,
    SearchConfiguration,
    SearchMode,
    SearchOutcome,
    clamp_fraction,
    normalize_path,
)


class TestClampFraction:
    """Test required-fraction clamping."""

    def test_above_one_collapses_to_one(self) -> None:
        """Values above 1.0 require a perfect match."""
        assert clamp_fraction(1.5) == 1.0

    def test_negative_collapses_to_lower_bound(self) -> None:
        """Negative values never become zero."""
        assert clamp_fraction(-0.2) == 0.1

    def test_zero_collapses_to_lower_bound(self) -> None:
        """Zero would match every line, so it is raised to the lower bound."""
        assert clamp_fraction(0.0) == 0.1

    def test_value_in_range_is_kept(self) -> None:
        """Values inside the range are untouched."""
        assert clamp_fraction(0.5) == 0.5

    def test_nan_uses_default(self) -> None:
        """A malformed value falls back to the default fraction."""
        assert clamp_fraction(float("nan")) == 0.8


class TestSearchConfiguration:
    """Test SearchConfiguration normalisation."""

    def test_defaults(self) -> None:
        """Should create configuration with default values."""
        config = SearchConfiguration()

        assert config.pattern == "*.config"
        assert config.months == 0
        assert config.keyword is None
        assert config.terms == ()
        assert config.required_fraction == 0.8
        assert config.workers == 4
        assert config.mode is SearchMode.LOCATE
        assert config.rearm_idle_workers is False

    def test_worker_count_clamped(self) -> None:
        """Worker counts below one are raised to one."""
        assert SearchConfiguration(workers=0).workers == 1
        assert SearchConfiguration(workers=-3).workers == 1

    def test_months_clamped(self) -> None:
        """Negative month counts disable the cutoff."""
        assert SearchConfiguration(months=-2).months == 0

    def test_fraction_clamped(self) -> None:
        """Required fraction is clamped on construction."""
        assert SearchConfiguration(required_fraction=1.5).required_fraction == 1.0
        assert SearchConfiguration(required_fraction=-0.2).required_fraction == 0.1

    def test_blank_terms_removed(self) -> None:
        """Empty and whitespace-only terms are dropped."""
        config = SearchConfiguration(terms=("foo", "", "  ", "bar"))

        assert config.terms == ("foo", "bar")

    def test_mode_from_string(self) -> None:
        """Mode accepts its string value."""
        config = SearchConfiguration(mode="content")

        assert config.mode is SearchMode.CONTENT
        assert config.is_content_search

    def test_excluded_paths_normalised(self, tmp_path: Path) -> None:
        """Excluded paths are stored absolute, alongside their resolved form."""
        config = SearchConfiguration(excluded_paths=(tmp_path / "run.log",))

        assert normalize_path(tmp_path / "run.log") in config.excluded_paths
        assert os.path.normcase(os.path.realpath(tmp_path / "run.log")) in config.excluded_paths

    def test_is_frozen(self) -> None:
        """Configuration cannot be changed once created."""
        config = SearchConfiguration()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.pattern = "*.txt"  # type: ignore[misc]


class TestMatchRecords:
    """Test match record types."""

    def test_line_match_str(self) -> None:
        """LineMatch renders path, line number and text."""
        match = LineMatch(path=Path("/logs/x.log"), line_number=2, line="foo bar baz")

        assert str(match) == f"{Path('/logs/x.log')}\t[Line 2]\tfoo bar baz"

    def test_file_match_equality(self) -> None:
        """Records compare by value so result sets can be compared."""
        assert FileMatch(Path("/a/1.config")) == FileMatch(Path("/a/1.config"))
        assert len({FileMatch(Path("/a")), FileMatch(Path("/a"))}) == 1

    def test_outcome_unpacks(self) -> None:
        """SearchOutcome unpacks as (results, metrics)."""
        outcome = SearchOutcome(results=[], metrics=[DirectoryMetric("/a", 0.1)])
        results, metrics = outcome

        assert results == []
        assert metrics[0].path == "/a"
        assert metrics[0].elapsed == 0.1
