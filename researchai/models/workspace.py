"""Workspace and collaborator models.

workspace_collaborators is the only membership table. The legacy
workspace_users name is migrated away by revision 20261019_0002 and must not be
referenced from new code.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from researchai.db.base import Base

COLLABORATOR_ROLES = ("owner", "editor", "viewer", "commenter")
WRITER_ROLES = frozenset({"owner", "editor"})


class Workspace(Base):
    __tablename__ = "workspaces"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class WorkspaceCollaborator(Base):
    __tablename__ = "workspace_collaborators"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_collaborators_workspace_user"),
        CheckConstraint(
            "role IN ('owner', 'editor', 'viewer', 'commenter')",
            name="ck_workspace_collaborators_role",
        ),
        Index("idx_collaborators_workspace", "workspace_id"),
        Index("idx_collaborators_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    invited_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
