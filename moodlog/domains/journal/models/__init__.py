from moodlog.domains.journal.models.journal_entry import (
    CLASSIFIED_LABELS,
    JournalEntry,
    Sentiment,
)

__all__ = ["CLASSIFIED_LABELS", "JournalEntry", "Sentiment"]
