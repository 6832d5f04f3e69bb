"""End-to-end orchestration of a single search run."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional

from treefind.models import (
    DirectoryMetric,
    DirectoryTask,
    MatchRecord,
    ProgressSnapshot,
    SearchConfiguration,
    SearchOutcome,
)
from treefind.search.engine import WorkerPool
from treefind.search.matcher import ContentMatcher, LinePredicate
from treefind.search.progress import ProgressMonitor, SnapshotCallback
from treefind.search.structures import DirectoryQueue, ResultSink

LOGGER = logging.getLogger(__name__)


class RootNotFoundError(FileNotFoundError):
    """Raised before a run starts when the root directory does not exist."""

    def __init__(self, root: Path) -> None:
        super().__init__(f"Root directory not found: {root}")
        self.root = root


class SearchSession:
    """Runs one traversal of a directory tree and collects what it finds."""

    def __init__(
        self,
        config: SearchConfiguration,
        *,
        progress_callback: Optional[SnapshotCallback] = None,
        progress_delay: float = 2.0,
        progress_interval: float = 5.0,
        line_predicate: Optional[LinePredicate] = None,
    ) -> None:
        self.config = config
        self.progress_callback = progress_callback
        self.progress_delay = progress_delay
        self.progress_interval = progress_interval
        self.line_predicate = line_predicate
        self.queue = DirectoryQueue()
        self.results: ResultSink[MatchRecord] = ResultSink()
        self.metrics: ResultSink[DirectoryMetric] = ResultSink()
        self.pool: Optional[WorkerPool] = None
        self.cancelled = False

    @property
    def directories_seen(self) -> int:
        """Directories discovered so far, the root included."""
        if self.pool is None:
            return 0
        return self.pool.directories_seen.value + 1

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            active_workers=self.pool.active_workers if self.pool else 0,
            queued_directories=len(self.queue),
            results=len(self.results),
        )

    def run(self, root: Path | str, cancel: Optional[threading.Event] = None) -> SearchOutcome:
        """Search ``root`` and return every match plus per-directory timings.

        A set ``cancel`` event stops the workers early; whatever was found up
        to that point is returned. Each call starts from an empty queue and
        empty sinks.
        """
        root_path = Path(root).expanduser()
        if not root_path.is_dir():
            raise RootNotFoundError(root_path)
        cancel = cancel if cancel is not None else threading.Event()
        self.queue = DirectoryQueue()
        self.results = ResultSink()
        self.metrics = ResultSink()
        self.cancelled = False

        content_matcher = None
        if self.config.is_content_search or self.line_predicate is not None:
            content_matcher = ContentMatcher.from_configuration(self.config, line_predicate=self.line_predicate)

        self.pool = WorkerPool(
            self.config,
            self.queue,
            self.results,
            self.metrics,
            cancel,
            content_matcher=content_matcher,
        )
        self.queue.enqueue(DirectoryTask(os.fspath(root_path.absolute())))

        monitor = None
        if self.progress_callback is not None:
            monitor = ProgressMonitor(
                self.snapshot,
                self.progress_callback,
                delay=self.progress_delay,
                interval=self.progress_interval,
            )
            monitor.start()

        LOGGER.debug("Searching %s with %s workers", root_path, self.config.workers)
        try:
            self.pool.start()
            self.pool.join()
        finally:
            if monitor is not None:
                monitor.stop()

        self.cancelled = cancel.is_set()
        if self.cancelled:
            LOGGER.debug("Search of %s was cancelled, returning partial results", root_path)
        return SearchOutcome(results=self.results.drain(), metrics=self.metrics.drain())
