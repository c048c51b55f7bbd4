"""Journal request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class JournalEntryCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    weather: Optional[Dict[str, Any]] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class JournalEntryUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    expected_version: Optional[int] = Field(default=None, ge=1)


class JournalEntryListFilter(BaseModel):
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1, le=100)


class JournalEntryResponse(BaseModel):
    id: str
    owner_id: str
    title: Optional[str]
    content: str
    sentiment: str
    weather: Optional[Dict[str, Any]]
    version: int
    created_at: str
    updated_at: str


class JournalEntryListResponse(BaseModel):
    items: List[JournalEntryResponse]
    page: int
    pages: int
    total: int
