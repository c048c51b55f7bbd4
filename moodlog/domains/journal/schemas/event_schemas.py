"""Wire schema for enrichment events.

Producers build an :class:`EnrichmentEvent` and emit ``to_payload()``;
consumers validate incoming bytes with ``from_payload()`` rather than handling
ad-hoc dictionaries. The wire form uses camelCase keys:
``{entryId, ownerId, version, contentSnapshot, publishedAt}``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentEvent(BaseModel):
    """Immutable request to classify one version of one entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    entry_id: str = Field(alias="entryId", min_length=1)
    owner_id: str = Field(alias="ownerId", min_length=1)
    version: int = Field(ge=1)
    content_snapshot: str = Field(alias="contentSnapshot")
    published_at: datetime = Field(alias="publishedAt", default_factory=_utcnow)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_payload()).encode("utf-8")

    @classmethod
    def from_payload(cls, payload: Union[Dict[str, Any], bytes, str]) -> "EnrichmentEvent":
        if isinstance(payload, (bytes, str)):
            return cls.model_validate_json(payload)
        return cls.model_validate(payload)
