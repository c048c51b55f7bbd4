"""Journal mappers for DTO responses."""

from __future__ import annotations

from moodlog.domains.journal.models import JournalEntry
from moodlog.domains.journal.schemas.journal_schemas import JournalEntryResponse


def map_entry(entry: JournalEntry) -> dict:
    return JournalEntryResponse(
        id=entry.id,
        owner_id=entry.owner_id,
        title=entry.title,
        content=entry.content,
        sentiment=entry.sentiment,
        weather=entry.weather,
        version=entry.version,
        created_at=entry.created_at.isoformat() if entry.created_at else "",
        updated_at=entry.updated_at.isoformat() if entry.updated_at else "",
    ).model_dump()
