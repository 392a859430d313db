"""Bounded in-memory cache with per-entry expiry."""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Size-bounded cache whose entries expire after a time-to-live.

    Instances are passed explicitly to the collaborators that use them;
    inserting into a full cache evicts the oldest entry.
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default

        value, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            logger.debug("Cache miss (expired): %s", key)
            return default

        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = self._clock() + (self.ttl if ttl is None else ttl)

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug("Cache eviction: %s", oldest)

        self._entries[key] = (value, expires_at)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache cleanup: removed %d expired entries", len(expired))
        return len(expired)
