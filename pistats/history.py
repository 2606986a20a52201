"""Fixed-capacity history of snapshots and the lock-guarded handle readers use.

The buffer itself is a plain ring buffer backed by a deque. ``SharedHistory``
puts a reader/writer lock in front of it: any number of readers may copy the
history at once, while the updater takes exclusive access only to swap in a
new entry.
"""
import threading
from collections import deque
from contextlib import contextmanager
from typing import Iterator, List

from .models import Snapshot


class HistoryPoisonedError(RuntimeError):
    """Raised when a previous write to the history failed midway."""


class HistoryBuffer:
    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be a positive integer")
        self.capacity = int(capacity)
        self._dq = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._dq)

    def push(self, entry: Snapshot) -> None:
        """Insert ``entry`` as the newest item, evicting the oldest when full."""
        self._dq.append(entry)

    def replace_newest(self, entry: Snapshot) -> None:
        """Overwrite the newest item in place; length is unchanged."""
        if not self._dq:
            raise IndexError("replace_newest on an empty history")
        self._dq[-1] = entry

    def snapshot(self) -> List[Snapshot]:
        """Return a copy of the entries, oldest first."""
        return list(self._dq)


class RWLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SharedHistory:
    """Synchronized view of a HistoryBuffer.

    Only ``get_history`` is meant for readers. The updater mutates the buffer
    inside ``update()``; if that block raises, the handle is poisoned and
    every later read or write raises ``HistoryPoisonedError``, since the
    buffer may have been left half updated.
    """

    def __init__(self, buffer: HistoryBuffer):
        self._buffer = buffer
        self._lock = RWLock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def get_history(self) -> List[Snapshot]:
        with self._lock.read():
            self._check()
            return self._buffer.snapshot()

    @contextmanager
    def update(self) -> Iterator[HistoryBuffer]:
        with self._lock.write():
            self._check()
            try:
                yield self._buffer
            except BaseException:
                self._poisoned = True
                raise

    def _check(self) -> None:
        if self._poisoned:
            raise HistoryPoisonedError("history was left inconsistent by a failed update")
