"""
Suggestion Cache

Keyed store of ranked suggestion lists with a fixed time-to-live:
- Entries stored per user as (value, inserted_at)
- Expiry checked lazily on read; no background sweep
- Per-user invalidation after behavior updates

The clock is injectable so expiry can be tested without sleeping.
"""

import time
from typing import Any, Callable, Dict, Optional, Tuple

from identity_engine.core.logging_config import get_logger, log_cache_access

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0


class SuggestionCache:
    """Interface for suggestion caches. Implementations never raise on lookup."""

    def get(self, user_id: str, context_key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, user_id: str, context_key: str, value: Any) -> None:
        raise NotImplementedError

    def invalidate_user(self, user_id: str) -> int:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemorySuggestionCache(SuggestionCache):
    """
    Dict-backed TTL cache.

    Usage:
        cache = InMemorySuggestionCache(ttl_seconds=300)
        cache.set("u-1", key, suggestions)
        cache.get("u-1", key)   # same object until the entry expires
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, Dict[str, Tuple[Any, float]]] = {}

    def _key(self, user_id: str, context_key: str) -> str:
        return f"{user_id}:{context_key}"

    def get(self, user_id: str, context_key: str) -> Optional[Any]:
        entry = self._entries.get(user_id, {}).get(context_key)
        if entry is None:
            log_cache_access("suggestions", self._key(user_id, context_key), hit=False)
            return None

        value, inserted_at = entry
        if self.clock() - inserted_at >= self.ttl_seconds:
            del self._entries[user_id][context_key]
            log_cache_access("suggestions", self._key(user_id, context_key), hit=False, expired=True)
            return None

        log_cache_access("suggestions", self._key(user_id, context_key), hit=True)
        return value

    def set(self, user_id: str, context_key: str, value: Any) -> None:
        self._entries.setdefault(user_id, {})[context_key] = (value, self.clock())

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry for a user. Returns the number of entries removed."""
        removed = len(self._entries.pop(user_id, {}))
        if removed:
            logger.debug("suggestion_cache_invalidated", user_id=user_id, entries=removed)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
