from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

InvitableRole = Literal["editor", "viewer", "commenter"]


class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def _trim_description(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class WorkspaceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class WorkspaceSummaryOut(WorkspaceOut):
    role: str


class CollaboratorCreate(BaseModel):
    user_id: uuid.UUID
    role: InvitableRole = "viewer"


class CollaboratorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    invited_by: uuid.UUID | None
    joined_at: datetime


class WorkspaceDetailOut(WorkspaceOut):
    role: str
    collaborators: list[CollaboratorOut]
