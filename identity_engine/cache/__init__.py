"""Suggestion caching"""

from identity_engine.cache.suggestion_cache import (
    DEFAULT_TTL_SECONDS,
    InMemorySuggestionCache,
    SuggestionCache,
)

__all__ = [
    'DEFAULT_TTL_SECONDS',
    'InMemorySuggestionCache',
    'SuggestionCache',
]
