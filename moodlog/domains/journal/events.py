"""Journal domain event catalog."""

from __future__ import annotations

JOURNAL_ENTRY_ENRICHMENT_REQUESTED = "journal.entry.enrichment_requested"

EVENT_CATALOG = {
    JOURNAL_ENTRY_ENRICHMENT_REQUESTED: {
        "version": "v1",
        "payload": {
            "entryId": "str",
            "ownerId": "str",
            "version": "int",
            "contentSnapshot": "str",
            "publishedAt": "datetime",
        },
    },
}

__all__ = [
    "EVENT_CATALOG",
    "JOURNAL_ENTRY_ENRICHMENT_REQUESTED",
]
