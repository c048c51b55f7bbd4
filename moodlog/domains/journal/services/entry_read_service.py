"""Read path: cache-aside views of entries.

The cache is consulted first and populated on miss; it is never written on
the write path, only invalidated. Cache outages degrade to store reads inside
:class:`~moodlog.core.cache.CacheLayer`.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from flask import current_app

from moodlog.core.cache import entry_key, user_entries_key
from moodlog.domains.journal.mappers import map_entry
from moodlog.domains.journal.models import JournalEntry
from moodlog.domains.journal.services import journal_service
from moodlog.extensions import cache, db


def _ttl() -> int:
    return int(current_app.config.get("CACHE_TTL_SECONDS", cache.default_ttl))


def get_entry_view(owner_id: str, entry_id: str, roles: Iterable[str] = ()) -> Optional[dict]:
    """Return the entry view if it exists and the caller may see it."""
    key = entry_key(entry_id)
    view = cache.get(key)
    if view is None:
        entry = db.session.get(JournalEntry, entry_id, populate_existing=True)
        if entry is None:
            return None
        view = map_entry(entry)
        cache.set(key, view, ttl=_ttl())
    if view.get("owner_id") != owner_id and "admin" not in set(roles or ()):
        return None
    return view


def list_entry_views(owner_id: str) -> List[dict]:
    key = user_entries_key(owner_id)
    views = cache.get(key)
    if views is None:
        views = [map_entry(entry) for entry in journal_service.list_entries(owner_id)]
        cache.set(key, views, ttl=_ttl())
    return views
