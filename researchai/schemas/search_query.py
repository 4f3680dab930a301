from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchQueryCreate(BaseModel):
    query_text: str = Field(..., min_length=1)
    namespace: str | None = Field(default=None, max_length=200)
    search_mode: str | None = Field(default=None, max_length=50)
    results_count: int | None = Field(default=None, ge=0)
    filter_year: int | None = Field(default=None, ge=1000, le=9999)
    filter_author: str | None = Field(default=None)
    execution_time_ms: int | None = Field(default=None, ge=0)
    user_id: uuid.UUID | None = Field(default=None)

    @field_validator("query_text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query_text must not be blank")
        return value

    @field_validator("filter_author", mode="before")
    @classmethod
    def _strip_optional(cls, value: object) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None


class SearchQueryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID | None
    namespace: str
    query_text: str
    search_mode: str
    results_count: int | None
    filter_year: int | None
    filter_author: str | None
    execution_time_ms: int | None
    created_at: datetime


class SearchModeStats(BaseModel):
    search_mode: str
    query_count: int
    avg_results_count: float | None
    avg_execution_time_ms: float | None
