"""
Time-windowed memoization of knowledge-source reads.

One entry per key: ("hotel", slug), ("rooms", slug), ("services", slug),
("intents",), ("output_rules",). Entries are only ever overwritten by a
fresh read; staleness is purely a function of age.
"""
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

from olly.config import settings

logger = logging.getLogger(__name__)

_MISSING = object()


class KnowledgeCache:
    def __init__(
        self,
        ttl_seconds: float = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = settings.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value if still fresh, else `default`."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, written_at = entry
        if self._clock() - written_at < self.ttl_seconds:
            return value
        return default

    def put(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """
        Serve `key` from cache, or await `fetch()` and store its result.
        Concurrent misses may both fetch; the last write wins.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        logger.debug(f"Cache miss for {key!r}, fetching")
        value = await fetch()
        self.put(key, value)
        return value
