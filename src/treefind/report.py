"""Console and log reporting of search results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from treefind.models import DirectoryMetric, FileMatch, LineMatch, ProgressSnapshot
from treefind.utils.text import readable_duration, truncate_middle

MATCH = 25
logging.addLevelName(MATCH, "MATCH")

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class MetricsSummary:
    count: int
    shortest: float
    longest: float
    average: float


def summarize_metrics(metrics: Sequence[DirectoryMetric]) -> Optional[MetricsSummary]:
    if not metrics:
        return None
    elapsed = [metric.elapsed for metric in metrics]
    return MetricsSummary(
        count=len(elapsed),
        shortest=min(elapsed),
        longest=max(elapsed),
        average=sum(elapsed) / len(elapsed),
    )


def format_progress(snapshot: ProgressSnapshot) -> str:
    return (
        f"ActiveWorkers… {snapshot.active_workers:<4} "
        f"QueuedDirectories… {snapshot.queued_directories:<8} "
        f"Matches… {snapshot.results:<8}"
    )


class ResultReporter:
    """Prints matches to the console and records them in the run log."""

    def __init__(self, console: Console, *, truncate_length: int = 100) -> None:
        self.console = console
        self.truncate_length = truncate_length

    def render_progress(self, snapshot: ProgressSnapshot) -> None:
        self.console.print(f"  {format_progress(snapshot)}", end="\r", highlight=False)

    def report_files(self, matches: Sequence[FileMatch]) -> int:
        if matches:
            noun = "result" if len(matches) == 1 else "results"
            self.console.print(f"Analyzing {len(matches)} {noun}…")
        for match in matches:
            self.console.print("[green]\\[MATCH][/green]")
            self.console.print(
                f"  [dim]▷ {escape(truncate_middle(str(match.path), self.truncate_length))}[/dim]",
                soft_wrap=True,
            )
            LOGGER.log(MATCH, 'Found "%s"', match.path)
        return len(matches)

    def report_lines(self, matches: Sequence[LineMatch]) -> int:
        for match in matches:
            LOGGER.log(MATCH, "%s", match)
            self.console.print(f"[green]\\[MATCH][/green] {escape(str(match.path))}", soft_wrap=True)
            line = truncate_middle(match.line.strip(), self.truncate_length)
            self.console.print(f"  [dim]▷ Line #{match.line_number} ▷ {escape(line)}[/dim]", soft_wrap=True)
        if matches:
            self.console.print(
                f"Line details in the console are truncated to {self.truncate_length} characters. "
                "Full lines are saved in the log file."
            )
        return len(matches)

    def report_summary(self, metrics: Sequence[DirectoryMetric], *, verbose: bool = False) -> Optional[MetricsSummary]:
        summary = summarize_metrics(metrics)
        if summary is None:
            LOGGER.info("No directories were traversed")
            return None
        if verbose:
            LOGGER.info("Shortest traverse was %s", readable_duration(summary.shortest, report_milliseconds=True))
        LOGGER.info(
            "Longest traverse was %s (average was %s) across %s directories",
            readable_duration(summary.longest, report_milliseconds=True),
            readable_duration(summary.average, report_milliseconds=True),
            summary.count,
        )
        return summary
