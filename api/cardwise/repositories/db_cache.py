"""In-memory cache used by CachedCardRepository."""

import threading
from typing import Any, Dict, Hashable, List, Optional


class DbCache:
    """Thread-safe key/value cache with whole-cache invalidation.

    Every ``clear`` advances a generation counter. A reader that captured the
    generation before loading a value can store it with ``set_if_generation``,
    which refuses the write if the cache was cleared in between.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Any] = {}
        self._generation = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Cached value for key, or None."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def generation(self) -> int:
        """Number of invalidations so far."""
        with self._lock:
            return self._generation

    def set_if_generation(self, key: Hashable, value: Any, generation: int) -> bool:
        """
        Store value only if the cache has not been cleared since generation was read.

        Args:
            key: Cache key
            value: Value to store
            generation: Result of ``generation()`` taken before value was loaded

        Returns:
            True if the value was stored
        """
        with self._lock:
            if self._generation != generation:
                return False
            self._entries[key] = value
            return True

    def has(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Invalidate every entry."""
        with self._lock:
            self._entries.clear()
            self._generation += 1

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._entries.keys())

    def size(self) -> int:
        with self._lock:
            return len(self._entries)
