from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from researchai.db.base import Base

CHART_TYPES = ("bar", "line", "pie", "scatter", "heatmap", "network")


class ChartExport(Base):
    __tablename__ = "chart_exports"
    __table_args__ = (
        CheckConstraint(
            "type IN ('bar', 'line', 'pie', 'scatter', 'heatmap', 'network')",
            name="ck_chart_exports_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    params: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


Index("idx_chart_exports_workspace", ChartExport.workspace_id)
Index("idx_chart_exports_user", ChartExport.user_id)
Index("idx_chart_exports_created", ChartExport.created_at.desc())
