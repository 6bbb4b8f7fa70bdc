"""
Query cache for the back-office views.

Entries are keyed by query identity, a tuple whose first element names the
query family: ("devis", search, statut). The store stays the source of truth;
an entry only mirrors the last fetch plus whatever optimistic merges were
applied since.

Two separate operations keep the pages honest:

- patch(prefix, merge): immediate feedback after a mutation (prepend a created
  record, replace an updated one, drop a deleted one).
- invalidate(prefix): mark matching entries stale and signal listeners so a
  fresh fetch reconciles what the merge could not know (store-assigned
  numbers, trigger-updated columns, other clients' writes).
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence

logger = logging.getLogger(__name__)

QueryKey = tuple


@dataclass
class CacheEntry:
    data: list
    stale: bool = False


def _matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[:len(prefix)] == prefix


def _record_id(record: Any):
    if isinstance(record, dict):
        return record.get("id")
    return getattr(record, "id", None)


def prepend_record(rows: Sequence | None, record: Any) -> list:
    """Merge for a create: the new record goes first."""
    return [record, *(rows or [])]


def replace_record(rows: Sequence | None, record: Any) -> list:
    """Merge for an update: swap the row with the same id."""
    if not rows:
        return [record]
    record_id = _record_id(record)
    return [record if _record_id(row) == record_id else row for row in rows]


def remove_record(rows: Sequence | None, record_id: Any) -> list:
    """Merge for a delete."""
    return [row for row in (rows or []) if _record_id(row) != record_id]


class QueryCache:
    """Thread-safe: realtime callbacks invalidate from the pub/sub worker thread."""

    def __init__(self):
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._listeners: list[Callable[[QueryKey], None]] = []
        self._lock = threading.RLock()

    def get(self, key: QueryKey) -> list | None:
        with self._lock:
            entry = self._entries.get(key)
            return list(entry.data) if entry is not None else None

    def is_stale(self, key: QueryKey) -> bool:
        """Missing entries count as stale."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or entry.stale

    def keys(self) -> list[QueryKey]:
        with self._lock:
            return list(self._entries)

    def set(self, key: QueryKey, data: list) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data=list(data))

    def fetch(self, key: QueryKey, loader: Callable[[], list]) -> list:
        """
        Cached rows for `key`, loading them when missing or stale.

        Loader errors propagate and leave the previous entry untouched.
        """
        if not self.is_stale(key):
            return self.get(key)
        data = list(loader())
        self.set(key, data)
        return list(data)

    def patch(self, prefix: QueryKey, merge: Callable[[list | None], list]) -> int:
        """
        Apply `merge` to every entry under `prefix`. An exact `prefix` entry
        is created when nothing matches. Returns how many entries changed.
        """
        with self._lock:
            matching = [key for key in self._entries if _matches(key, prefix)]
            if not matching:
                self._entries[prefix] = CacheEntry(data=merge(None))
                return 1
            for key in matching:
                entry = self._entries[key]
                entry.data = merge(list(entry.data))
            return len(matching)

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark entries under `prefix` stale and notify listeners."""
        with self._lock:
            matching = [key for key in self._entries if _matches(key, prefix)]
            for key in matching:
                self._entries[key].stale = True
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(prefix)
            except Exception:
                logger.exception("Cache listener failed for %s", prefix)
        return len(matching)

    def remove(self, prefix: QueryKey) -> None:
        with self._lock:
            for key in [k for k in self._entries if _matches(k, prefix)]:
                del self._entries[key]

    def add_listener(self, listener: Callable[[QueryKey], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[QueryKey], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
