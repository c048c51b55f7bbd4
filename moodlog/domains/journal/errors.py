"""Journal domain exceptions."""

from __future__ import annotations


class JournalError(Exception):
    """Base exception for journal operations."""

    code = "journal_error"
    status = 400


class EntryNotFound(JournalError):
    code = "not_found"
    status = 404


class PermissionDenied(JournalError):
    """Raised when an entry does not belong to the requesting owner."""

    code = "forbidden"
    status = 403


class ConcurrentModification(JournalError):
    """Raised when the optimistic version check fails; retry with a fresh read."""

    code = "concurrent_modification"
    status = 409

    def __init__(self, entry_id: str, expected_version: int) -> None:
        super().__init__(f"Entry {entry_id} is no longer at version {expected_version}")
        self.entry_id = entry_id
        self.expected_version = expected_version


class PublishFailure(JournalError):
    """Raised by event channels when an enrichment event cannot be published."""

    code = "publish_failure"
    status = 503


class ClassificationFailure(JournalError):
    """Raised when sentiment classification errors out or times out."""

    code = "classification_failure"
    status = 502
