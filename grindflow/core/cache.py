"""Small in-process TTL cache.

Used for advisory lookups that are expensive to repeat on every request,
such as whether a storage bucket is public. Races between concurrent
writers are harmless: the last write wins and the value is only a hint.
"""

import time
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

ValueType = TypeVar("ValueType")


class TTLCache(Generic[ValueType]):
    """Key/value cache whose entries expire after ``ttl`` seconds."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            ttl: Entry time-to-live in seconds
            clock: Monotonic clock, injectable for tests
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[ValueType, float]] = {}

    def get(self, key: Hashable) -> Optional[ValueType]:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            LOGGER.debug(f"Cache entry expired: {key}")
            return None
        return value

    def set(self, key: Hashable, value: ValueType) -> None:
        self._entries[key] = (value, self._clock() + self.ttl)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None
