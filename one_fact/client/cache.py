"""Fact caches for FactClient.

FactClient only depends on the FactCache protocol, so callers can inject an
in-memory table, a persistent store or a no-op cache in tests.
"""

import logging
import threading
from typing import Protocol

from one_fact.models.schemas import CachedFact

logger = logging.getLogger(__name__)


class FactCache(Protocol):
    """Keyed store of cached facts."""

    def get(self, key: str) -> CachedFact | None: ...

    def set(self, key: str, entry: CachedFact) -> None: ...

    def clear(self) -> None: ...


class InMemoryFactCache:
    """Thread-safe dictionary-backed cache.

    Every read, write and clear runs under one lock so concurrent fetches
    for the same key cannot corrupt the table.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CachedFact] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CachedFact | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: CachedFact) -> None:
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Cleared {count} cached facts")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullFactCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> CachedFact | None:
        return None

    def set(self, key: str, entry: CachedFact) -> None:
        pass

    def clear(self) -> None:
        pass
