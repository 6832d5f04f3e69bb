"""Parallel directory traversal."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

from treefind.models import DirectoryMetric, DirectoryTask, FileMatch, LineMatch, MatchRecord, SearchConfiguration
from treefind.search.matcher import ContentMatcher, NameMatcher, is_self_reference
from treefind.search.structures import AtomicCounter, DirectoryQueue, ResultSink
from treefind.utils.files import iter_files, iter_lines, iter_subdirectories

LOGGER = logging.getLogger(__name__)


class WorkerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    DRAINING = "draining"
    STOPPED = "stopped"


def scan_file(path: str, matcher: ContentMatcher, cancel: threading.Event) -> Optional[LineMatch]:
    """Return the first line of ``path`` accepted by ``matcher``.

    Stops reading as soon as a line matches or cancellation is requested.
    Raises :class:`OSError` when the file cannot be read.
    """
    for number, line in iter_lines(path):
        if cancel.is_set():
            return None
        if matcher.evaluate(line):
            return LineMatch(path=Path(path), line_number=number, line=line)
    return None


class SearchWorker(threading.Thread):
    """Drains the shared queue until it looks empty, then stops for good."""

    def __init__(self, pool: "WorkerPool", index: int) -> None:
        super().__init__(name=f"Searcher_{index}", daemon=True)
        self.pool = pool
        self.state = WorkerState.IDLE
        self.directories_processed = 0

    def run(self) -> None:
        pool = self.pool
        self.state = WorkerState.ACTIVE
        pool.active.increment()
        try:
            while not pool.cancel.is_set():
                # Counted as busy before dequeuing so a polling peer never sees
                # an empty queue and zero busy workers while a task is in hand.
                pool.busy.increment()
                task = pool.queue.try_dequeue()
                if task is None:
                    pool.busy.decrement()
                    if pool.should_wait_for_work():
                        pool.cancel.wait(pool.config.idle_poll_interval)
                        continue
                    break
                self.state = WorkerState.DRAINING
                try:
                    pool.process_directory(task)
                except Exception:
                    LOGGER.exception("Unexpected failure while processing %s", task.path)
                finally:
                    pool.busy.decrement()
                    self.directories_processed += 1
                    self.state = WorkerState.ACTIVE
        finally:
            self.state = WorkerState.STOPPED
            pool.active.decrement()


class WorkerPool:
    """Fixed set of threads sharing one directory queue and one result sink.

    Workers leave as soon as they find the queue empty and never come back, so
    parallelism can only shrink during a run. ``rearm_idle_workers`` keeps
    idle workers polling while any peer may still enqueue subdirectories.
    """

    def __init__(
        self,
        config: SearchConfiguration,
        queue: DirectoryQueue,
        results: ResultSink[MatchRecord],
        metrics: ResultSink[DirectoryMetric],
        cancel: threading.Event,
        *,
        name_matcher: Optional[NameMatcher] = None,
        content_matcher: Optional[ContentMatcher] = None,
    ) -> None:
        self.config = config
        self.queue = queue
        self.results = results
        self.metrics = metrics
        self.cancel = cancel
        self.name_matcher = name_matcher or NameMatcher.from_configuration(config)
        self.content_matcher = content_matcher
        if self.content_matcher is None and config.is_content_search:
            self.content_matcher = ContentMatcher.from_configuration(config)
        self.active = AtomicCounter()
        self.busy = AtomicCounter()
        self.directories_seen = AtomicCounter()
        self.workers: List[SearchWorker] = []

    @property
    def active_workers(self) -> int:
        return self.active.value

    def should_wait_for_work(self) -> bool:
        return self.config.rearm_idle_workers and self.busy.value > 0

    def start(self) -> None:
        for index in range(1, self.config.workers + 1):
            if self.cancel.is_set():
                break
            LOGGER.debug("Starting worker %s of %s", index, self.config.workers)
            worker = SearchWorker(self, index)
            worker.start()
            self.workers.append(worker)
            if index < self.config.workers and self.config.startup_stagger > 0:
                self.cancel.wait(self.config.startup_stagger)

    def join(self) -> None:
        for worker in self.workers:
            worker.join()

    def process_directory(self, task: DirectoryTask) -> None:
        if self.cancel.is_set():
            return

        directory = task.path
        started = time.perf_counter()
        try:
            self._collect_matches(directory)
        except OSError as exc:
            LOGGER.debug("Cannot list files in %s: %s", directory, exc)

        try:
            self._enqueue_subdirectories(directory)
        except OSError as exc:
            LOGGER.debug("Cannot list subdirectories of %s: %s", directory, exc)

        self.metrics.add(DirectoryMetric(path=directory, elapsed=time.perf_counter() - started))

    def _collect_matches(self, directory: str) -> None:
        for name, path in iter_files(directory):
            if self.cancel.is_set():
                return
            if not self.name_matcher.matches_name(name) or is_self_reference(name, path, self.config.excluded_paths):
                continue
            try:
                record = self._evaluate_file(path)
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", path, exc)
                continue
            if record is not None:
                self.results.add(record)

    def _evaluate_file(self, path: str) -> Optional[MatchRecord]:
        if not self.name_matcher.is_recent(path):
            return None
        if self.content_matcher is None:
            return FileMatch(path=Path(path))
        if not self.content_matcher.is_active:
            return None
        return scan_file(path, self.content_matcher, self.cancel)

    def _enqueue_subdirectories(self, directory: str) -> None:
        for subdirectory in iter_subdirectories(directory):
            if self.cancel.is_set():
                return
            self.directories_seen.increment()
            self.queue.enqueue(DirectoryTask(subdirectory))
