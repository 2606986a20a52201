"""Background loop that samples the host and maintains the stats history.

Each period the updater collects one snapshot and adds it to the current
batch. Until the batch is full the snapshot only replaces the live (newest)
history entry. When the batch fills up it is averaged into one entry, which
is persisted (best-effort) and written over the live entry; the snapshot that
completed the batch then becomes the next live entry.

Sampling and disk writes happen outside the history lock; only the entry
swap is done under exclusive access.
"""
import logging
import threading
from typing import Callable, List, Optional

from .config import UpdaterConfig
from .consolidate import consolidate
from .collector import collect_snapshot
from .history import HistoryBuffer, SharedHistory
from .models import Snapshot
from .persistence import persist, load_history

logger = logging.getLogger(__name__)

Collector = Callable[[float], Snapshot]


class StatsUpdater:
    def __init__(self, config: UpdaterConfig, collector: Collector = collect_snapshot):
        config.validate()
        self.config = config
        self._collect = collector
        self._batch: List[Snapshot] = []
        self._has_live = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        buffer = HistoryBuffer(config.history_capacity)
        for entry in self._restore():
            buffer.push(entry)
        self.history = SharedHistory(buffer)

    def _restore(self) -> List[Snapshot]:
        if self.config.persistence is None:
            return []
        directory = self.config.persistence.directory
        try:
            entries = load_history(directory, self.config.history_capacity)
        except OSError as e:
            logger.error(f"Could not restore stats history from {directory}: {e}")
            return []
        if entries:
            logger.info(f"Restored {len(entries)} history entries from {directory}")
        return entries

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def get_history(self) -> List[Snapshot]:
        """Return the history, oldest first."""
        return self.history.get_history()

    def run_cycle(self) -> None:
        """Run one sampling period, without the trailing sleep."""
        snapshot = self._collect(self.config.cpu_sample_duration)
        self._batch.append(snapshot)

        if len(self._batch) < self.config.consolidation_limit:
            with self.history.update() as buffer:
                if self._has_live:
                    buffer.replace_newest(snapshot)
                else:
                    buffer.push(snapshot)
            self._has_live = True
            return

        entry = consolidate(self._batch)
        self._persist(entry)
        with self.history.update() as buffer:
            if self._has_live:
                buffer.replace_newest(entry)
            else:
                buffer.push(entry)
            buffer.push(snapshot)
        self._has_live = True
        self._batch = []

    def _persist(self, entry: Snapshot) -> None:
        persistence = self.config.persistence
        if persistence is None:
            return
        try:
            persist(entry, persistence.directory, persistence.size_limit_bytes)
        except OSError as e:
            logger.error(f"Failed to persist stats entry to {persistence.directory}: {e}")

    def _run(self) -> None:
        delay = self.config.update_period - self.config.cpu_sample_duration
        try:
            while not self._stop.is_set():
                self.run_cycle()
                self._stop.wait(delay)
        except Exception:
            logger.exception("Stats updater crashed")
            raise

    def start(self) -> None:
        if self.running:
            raise RuntimeError("stats updater is already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="pistats-updater")
        self._thread.start()
        logger.info(
            f"Stats updater started: period={self.config.update_period}s, "
            f"sample={self.config.cpu_sample_duration}s, "
            f"capacity={self.config.history_capacity}, batch={self.config.consolidation_limit}"
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to stop and wait for the current cycle to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None
