"""Search analytics router.

Search pages post one event per executed search; the analytics views read them
back. Visibility follows the search_queries row-level-security policies.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from researchai.core.security import Principal, get_principal
from researchai.db.session import get_db
from researchai.repositories.search_query_repository import SearchQueryRepository
from researchai.schemas.search_query import SearchModeStats, SearchQueryCreate, SearchQueryOut
from researchai.services.access_policy import AccessDeniedError
from researchai.services.search_query_service import SearchQueryService, SearchQueryValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search-queries", tags=["search-analytics"])


def _service(db: Session) -> SearchQueryService:
    return SearchQueryService(repository=SearchQueryRepository(db))


@router.post("", response_model=SearchQueryOut, status_code=status.HTTP_201_CREATED)
def record_search_query(
    payload: SearchQueryCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> SearchQueryOut:
    try:
        row = _service(db).record(principal, payload)
    except AccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except SearchQueryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to insert search_queries")
        raise HTTPException(status_code=500, detail="failed to save search query") from exc

    return SearchQueryOut.model_validate(row)


@router.get("", response_model=list[SearchQueryOut])
def list_search_queries(
    namespace: Optional[str] = Query(default=None),
    search_mode: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[SearchQueryOut]:
    try:
        rows = _service(db).list(principal, namespace=namespace, search_mode=search_mode, limit=limit)
    except AccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read search_queries")
        raise HTTPException(status_code=500, detail="failed to fetch search queries") from exc

    return [SearchQueryOut.model_validate(r) for r in rows]


@router.get("/stats", response_model=list[SearchModeStats])
def search_query_stats(
    namespace: Optional[str] = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[SearchModeStats]:
    try:
        return _service(db).stats(principal, namespace=namespace)
    except AccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to aggregate search_queries")
        raise HTTPException(status_code=500, detail="failed to aggregate search queries") from exc
