from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from researchai.models.search_query import SearchQuery


@dataclass
class SearchModeAggregate:
    search_mode: str
    query_count: int
    avg_results_count: float | None
    avg_execution_time_ms: float | None


class SearchQueryRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(
        self,
        *,
        query_text: str,
        namespace: str,
        search_mode: str,
        user_id: Optional[uuid.UUID] = None,
        results_count: Optional[int] = None,
        filter_year: Optional[int] = None,
        filter_author: Optional[str] = None,
        execution_time_ms: Optional[int] = None,
    ) -> SearchQuery:
        row = SearchQuery(
            user_id=user_id,
            namespace=namespace,
            query_text=query_text,
            search_mode=search_mode,
            filter_year=filter_year,
            filter_author=filter_author,
            execution_time_ms=execution_time_ms,
        )
        # Leave the column unset when omitted so the default of 0 applies.
        if results_count is not None:
            row.results_count = results_count

        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def _visible_to(self, user_id: uuid.UUID):
        return or_(SearchQuery.user_id == user_id, SearchQuery.user_id.is_(None))

    def list_visible(
        self,
        user_id: uuid.UUID,
        *,
        namespace: Optional[str] = None,
        search_mode: Optional[str] = None,
        limit: int = 50,
    ) -> list[SearchQuery]:
        stmt = select(SearchQuery).where(self._visible_to(user_id))
        if namespace is not None:
            stmt = stmt.where(SearchQuery.namespace == namespace)
        if search_mode is not None:
            stmt = stmt.where(SearchQuery.search_mode == search_mode)

        stmt = stmt.order_by(SearchQuery.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def mode_aggregates(self, user_id: uuid.UUID, *, namespace: Optional[str] = None) -> list[SearchModeAggregate]:
        stmt = (
            select(
                SearchQuery.search_mode.label("search_mode"),
                func.count().label("query_count"),
                func.avg(SearchQuery.results_count).label("avg_results_count"),
                func.avg(SearchQuery.execution_time_ms).label("avg_execution_time_ms"),
            )
            .where(self._visible_to(user_id))
            .group_by(SearchQuery.search_mode)
            .order_by(func.count().desc(), SearchQuery.search_mode.asc())
        )
        if namespace is not None:
            stmt = stmt.where(SearchQuery.namespace == namespace)

        rows = self.db.execute(stmt).all()
        return [
            SearchModeAggregate(
                search_mode=r.search_mode,
                query_count=int(r.query_count or 0),
                avg_results_count=float(r.avg_results_count) if r.avg_results_count is not None else None,
                avg_execution_time_ms=(
                    float(r.avg_execution_time_ms) if r.avg_execution_time_ms is not None else None
                ),
            )
            for r in rows
        ]

    def clear_owner(self, user_id: uuid.UUID) -> int:
        result = self.db.execute(
            update(SearchQuery).where(SearchQuery.user_id == user_id).values(user_id=None)
        )
        self.db.commit()
        return int(result.rowcount or 0)
