"""Search analytics service.

Records one row per search in search_queries and answers read/aggregate
requests scoped to what the calling principal may see.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from researchai.core.security import Principal
from researchai.models.search_query import DEFAULT_NAMESPACE, DEFAULT_SEARCH_MODE, SearchQuery
from researchai.repositories.search_query_repository import SearchQueryRepository
from researchai.schemas.search_query import SearchModeStats, SearchQueryCreate
from researchai.services.access_policy import (
    ensure_can_insert_search_query,
    ensure_can_read_search_queries,
)
from researchai.services.search_normalization import has_searchable_text, normalize_tag

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


class SearchQueryValidationError(ValueError):
    pass


class SearchQueryService:
    def __init__(self, repository: SearchQueryRepository) -> None:
        self.repository = repository

    def record(self, principal: Principal, payload: SearchQueryCreate) -> SearchQuery:
        if not has_searchable_text(payload.query_text):
            raise SearchQueryValidationError("query_text must not be blank")

        fields = payload.model_fields_set
        owner_id = payload.user_id if "user_id" in fields else principal.user_id
        ensure_can_insert_search_query(principal, owner_id)

        row = self.repository.insert(
            user_id=owner_id,
            query_text=payload.query_text,
            namespace=normalize_tag(payload.namespace, default=DEFAULT_NAMESPACE),
            search_mode=normalize_tag(payload.search_mode, default=DEFAULT_SEARCH_MODE),
            results_count=payload.results_count,
            filter_year=payload.filter_year,
            filter_author=payload.filter_author,
            execution_time_ms=payload.execution_time_ms,
        )
        logger.debug("Recorded search query id=%s mode=%s namespace=%s", row.id, row.search_mode, row.namespace)
        return row

    def list(
        self,
        principal: Principal,
        *,
        namespace: Optional[str] = None,
        search_mode: Optional[str] = None,
        limit: int = 50,
    ) -> list[SearchQuery]:
        ensure_can_read_search_queries(principal)
        if limit < 1 or limit > MAX_LIST_LIMIT:
            raise SearchQueryValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")

        return self.repository.list_visible(
            principal.user_id,
            namespace=normalize_tag(namespace, default=DEFAULT_NAMESPACE) if namespace is not None else None,
            search_mode=normalize_tag(search_mode, default=DEFAULT_SEARCH_MODE) if search_mode is not None else None,
            limit=limit,
        )

    def stats(self, principal: Principal, *, namespace: Optional[str] = None) -> list[SearchModeStats]:
        ensure_can_read_search_queries(principal)
        aggregates = self.repository.mode_aggregates(
            principal.user_id,
            namespace=normalize_tag(namespace, default=DEFAULT_NAMESPACE) if namespace is not None else None,
        )
        return [
            SearchModeStats(
                search_mode=a.search_mode,
                query_count=a.query_count,
                avg_results_count=a.avg_results_count,
                avg_execution_time_ms=a.avg_execution_time_ms,
            )
            for a in aggregates
        ]

    def forget_principal(self, user_id: uuid.UUID) -> int:
        """Detach every search query from *user_id*, as ON DELETE SET NULL does."""
        cleared = self.repository.clear_owner(user_id)
        logger.info("Cleared search query ownership user_id=%s rows=%s", user_id, cleared)
        return cleared
