"""TTL-based in-process caching service."""

import logging
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

FilterValue = Optional[str | int | float | bool]


def _escape(value) -> str:
    # quote() leaves "_" alone, but it separates key parts
    return urllib.parse.quote(str(value), safe="").replace("_", "%5F")


@dataclass
class CacheEntry:
    """A single cache entry with TTL."""
    data: Any
    timestamp: float
    ttl: Optional[int] = None  # TTL in seconds, cache default when None


class Cache:
    """Simple in-memory cache with TTL support.

    One instance is created per application and shared by every request
    that application serves. Values are stored as-is; callers keep the
    payload shape consistent per key.
    """

    def __init__(
        self,
        default_ttl: int = 300,
        composite_ttl: int = 120,
        batch_ttl: int = 30,
        message_ttl: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: dict[str, CacheEntry] = {}
        self.default_ttl = default_ttl
        self.composite_ttl = composite_ttl
        self.batch_ttl = batch_ttl
        self.message_ttl = message_ttl
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Get cached data if not expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        ttl = entry.ttl if entry.ttl is not None else self.default_ttl
        if self._clock() - entry.timestamp > ttl:
            # Expired
            del self._cache[key]
            return None

        return entry.data

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Set cache data, with an optional TTL in seconds."""
        self._cache[key] = CacheEntry(
            data=data,
            timestamp=self._clock(),
            ttl=ttl,
        )

    def invalidate(self, key: str) -> None:
        """Invalidate a cache entry."""
        self._cache.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Invalidate every entry whose key starts with prefix."""
        stale = [key for key in self._cache if key.startswith(prefix)]
        for key in stale:
            del self._cache[key]
        if stale:
            logger.debug("Invalidated %d cache entries with prefix %r", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def keys(self) -> list[str]:
        """Snapshot of the stored keys, expired entries included."""
        return list(self._cache.keys())

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._cache)

    # Filtered and paginated views

    @staticmethod
    def composite_key(
        prefix: str,
        page: int,
        sort_by: str,
        filters: dict[str, FilterValue],
    ) -> str:
        """Build a key from page, sort order and the non-empty filters.

        Values are percent-encoded so they cannot contain the separators.
        """
        filter_string = "_".join(
            f"{name}:{_escape(value)}"
            for name, value in sorted(filters.items())
            if value is not None and value != ""
        )
        return f"{prefix}_{page}_{sort_by}_{filter_string}"

    def get_composite(
        self, prefix: str, page: int, sort_by: str, filters: dict[str, FilterValue]
    ) -> Optional[Any]:
        return self.get(self.composite_key(prefix, page, sort_by, filters))

    def set_composite(
        self,
        prefix: str,
        page: int,
        sort_by: str,
        filters: dict[str, FilterValue],
        data: Any,
    ) -> None:
        self.set(self.composite_key(prefix, page, sort_by, filters), data, self.composite_ttl)

    # Per-user lookups over a set of ids

    @staticmethod
    def batch_key(prefix: str, user_id: str, items: Iterable[str]) -> str:
        """Build a key from a user and an unordered set of item ids."""
        return f"{prefix}_{user_id}_{'_'.join(_escape(item) for item in sorted(items))}"

    def get_batch(self, prefix: str, user_id: str, items: Iterable[str]) -> Optional[Any]:
        return self.get(self.batch_key(prefix, user_id, items))

    def set_batch(self, prefix: str, user_id: str, items: Iterable[str], data: Any) -> None:
        self.set(self.batch_key(prefix, user_id, items), data, self.batch_ttl)

    # Conversation message pages

    @staticmethod
    def message_key(conversation_id: str, page: int, limit: int) -> str:
        return f"messages_{conversation_id}_{page}_{limit}"

    def get_messages(self, conversation_id: str, page: int, limit: int) -> Optional[Any]:
        return self.get(self.message_key(conversation_id, page, limit))

    def set_messages(self, conversation_id: str, page: int, limit: int, data: Any) -> None:
        self.set(self.message_key(conversation_id, page, limit), data, self.message_ttl)

    def invalidate_messages(self, conversation_id: str) -> int:
        """Drop every cached message page of one conversation."""
        return self.invalidate_by_prefix(f"messages_{conversation_id}_")


async def read_through(
    cache: Cache,
    key: str,
    loader: Callable[[], Awaitable[Any]],
    ttl: Optional[int] = None,
) -> Any:
    """Return the cached value for key, loading and storing it on a miss.

    A failing cache is treated as a miss and the write is skipped; errors
    from the loader propagate to the caller.
    """
    try:
        cached = cache.get(key)
    except Exception:
        logger.warning("Cache read failed for %r, querying source", key, exc_info=True)
        cached = None

    if cached is not None:
        return cached

    value = await loader()

    try:
        cache.set(key, value, ttl)
    except Exception:
        logger.warning("Cache write failed for %r", key, exc_info=True)

    return value
