"""Append consolidated entries to a two-file rotating log on disk.

Entries are written one JSON object per line to ``current.jsonl``. Once that
file reaches half of the size limit it is renamed to ``old.jsonl``, replacing
whatever was there, and a fresh ``current.jsonl`` is started. Each rotation
therefore drops the previous ``old.jsonl``: at most ``size_limit`` bytes (plus
one entry) are kept on disk, at the cost of losing up to half of the stored
history at every rotation.

Writes are flushed but not fsync'ed; persistence is best-effort.
"""
import json
import logging
import os
from typing import List

from .models import Snapshot, snapshot_to_dict, snapshot_from_dict

CURRENT_FILE = "current.jsonl"
OLD_FILE = "old.jsonl"

logger = logging.getLogger(__name__)


def persist(entry: Snapshot, directory: str, size_limit_bytes: int) -> None:
    """Append ``entry`` to the log in ``directory``.

    Any OSError (directory creation, rename, write) propagates unchanged and
    leaves the files as they are.
    """
    os.makedirs(directory, exist_ok=True)

    current = os.path.join(directory, CURRENT_FILE)
    if os.path.exists(current) and os.path.getsize(current) >= size_limit_bytes / 2:
        old = os.path.join(directory, OLD_FILE)
        os.replace(current, old)
        logger.debug(f"Rotated {current} to {old}")

    line = json.dumps(snapshot_to_dict(entry), separators=(",", ":"))
    with open(current, "a", encoding="utf-8") as fh:
        fh.write(line + "\n")
        fh.flush()


def _read_entries(path: str) -> List[Snapshot]:
    entries = []
    with open(path, "r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(snapshot_from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable entry {path}:{lineno}: {e}")
    return entries


def load_history(directory: str, capacity: int) -> List[Snapshot]:
    """Return up to ``capacity`` persisted entries, oldest first.

    Missing files yield an empty history; unreadable lines are skipped.
    """
    entries: List[Snapshot] = []
    for name in (OLD_FILE, CURRENT_FILE):
        path = os.path.join(directory, name)
        if os.path.exists(path):
            entries.extend(_read_entries(path))
    if capacity <= 0:
        return []
    return entries[-capacity:]
