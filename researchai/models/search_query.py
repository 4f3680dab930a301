"""SQLAlchemy model for search_queries.

Each row is one search event recorded for analytics. Ownership is optional:
anonymous searches are stored with a null user_id.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from researchai.db.base import Base

DEFAULT_NAMESPACE = "default"
DEFAULT_SEARCH_MODE = "semantic"


class SearchQuery(Base):
    __tablename__ = "search_queries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    namespace: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_NAMESPACE, server_default=DEFAULT_NAMESPACE
    )
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    search_mode: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_SEARCH_MODE, server_default=DEFAULT_SEARCH_MODE
    )
    results_count: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0, server_default="0")
    filter_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    filter_author: Mapped[str | None] = mapped_column(Text, nullable=True)
    execution_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


Index("idx_search_queries_user", SearchQuery.user_id)
Index("idx_search_queries_namespace", SearchQuery.namespace)
Index("idx_search_queries_created_at", SearchQuery.created_at.desc())
Index("idx_search_queries_search_mode", SearchQuery.search_mode)
