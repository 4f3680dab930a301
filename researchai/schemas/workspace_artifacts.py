from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChartType = Literal["bar", "line", "pie", "scatter", "heatmap", "network"]
HumanizerProvider = Literal["cerebras", "huggingface", "openai", "anthropic"]


class ChartExportCreate(BaseModel):
    type: ChartType
    title: str | None = Field(default=None, max_length=300)
    params: dict[str, Any] = Field(default_factory=dict)
    image_url: str | None = Field(default=None)
    user_id: uuid.UUID | None = Field(default=None)


class ChartExportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str | None
    params: dict[str, Any]
    image_url: str | None
    created_at: datetime


class HumanizerLogCreate(BaseModel):
    input_text: str = Field(..., min_length=1)
    output_text: str
    provider: HumanizerProvider
    model: str | None = None
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)
    processing_time_ms: int | None = Field(default=None, ge=0)
    success: bool = True
    error_message: str | None = None
    workspace_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class HumanizerLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    workspace_id: uuid.UUID | None
    input_text: str
    output_text: str
    provider: str
    model: str | None
    input_tokens: int | None
    output_tokens: int | None
    processing_time_ms: int | None
    success: bool
    error_message: str | None
    created_at: datetime
