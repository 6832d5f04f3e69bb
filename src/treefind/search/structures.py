"""Thread-safe containers shared by the search workers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from treefind.models import DirectoryTask

T = TypeVar("T")


class AtomicCounter:
    """Integer counter with atomic increment and decrement.

    Reads go through ``value`` without taking the lock; they are approximate
    by nature and only used for diagnostics.
    """

    def __init__(self, initial: int = 0) -> None:
        self._value = initial
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        with self._lock:
            self._value -= amount
            return self._value


class DirectoryQueue:
    """Unbounded FIFO of directories still to be listed.

    Backed by :class:`collections.deque`, whose ``append`` and ``popleft`` are
    atomic, so producers and consumers never wait on each other.
    """

    def __init__(self) -> None:
        self._items: Deque[DirectoryTask] = deque()

    def enqueue(self, task: DirectoryTask) -> None:
        self._items.append(task)

    def try_dequeue(self) -> Optional[DirectoryTask]:
        """Return the next pending directory, or ``None`` if none is visible."""
        try:
            return self._items.popleft()
        except IndexError:
            return None

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


class ResultSink(Generic[T]):
    """Collects records from any number of workers."""

    def __init__(self) -> None:
        self._records: List[T] = []
        self._lock = threading.Lock()

    def add(self, record: T) -> None:
        with self._lock:
            self._records.append(record)

    def drain(self) -> List[T]:
        """Return every accumulated record and empty the sink."""
        with self._lock:
            records, self._records = self._records, []
        return records

    def __len__(self) -> int:
        return len(self._records)
