"""SQLAlchemy model for humanizer_logs.

One row per text humanization request, successful or not. Rows are private to
the requesting user.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Text, Uuid, func, true
from sqlalchemy.orm import Mapped, mapped_column

from researchai.db.base import Base

HUMANIZER_PROVIDERS = ("cerebras", "huggingface", "openai", "anthropic")


class HumanizerLog(Base):
    __tablename__ = "humanizer_logs"
    __table_args__ = (
        CheckConstraint(
            "provider IN ('cerebras', 'huggingface', 'openai', 'anthropic')",
            name="ck_humanizer_logs_provider",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True
    )
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    output_text: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str | None] = mapped_column(Text, nullable=True)
    input_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    output_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processing_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


Index("idx_humanizer_logs_user", HumanizerLog.user_id)
Index("idx_humanizer_logs_workspace", HumanizerLog.workspace_id)
Index("idx_humanizer_logs_created", HumanizerLog.created_at.desc())
Index("idx_humanizer_logs_provider", HumanizerLog.provider)
