"""Read-side cache primitives."""

from moodlog.core.cache.cache_layer import (
    CacheLayer,
    entry_key,
    user_entries_key,
)

__all__ = [
    "CacheLayer",
    "entry_key",
    "user_entries_key",
]
