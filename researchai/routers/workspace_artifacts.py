from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from researchai.core.security import Principal, get_principal
from researchai.db.session import get_db
from researchai.repositories.artifact_repository import ChartExportRepository, HumanizerLogRepository
from researchai.repositories.workspace_repository import WorkspaceRepository
from researchai.schemas.workspace_artifacts import (
    ChartExportCreate,
    ChartExportOut,
    HumanizerLogCreate,
    HumanizerLogOut,
)
from researchai.services.access_policy import AccessDeniedError
from researchai.services.workspace_artifact_service import (
    ChartExportNotFoundError,
    ChartExportService,
    HumanizerLogService,
)
from researchai.services.workspace_service import WorkspaceNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workspace-artifacts"])


def _chart_service(db: Session) -> ChartExportService:
    return ChartExportService(repository=ChartExportRepository(db), workspaces=WorkspaceRepository(db))


def _humanizer_service(db: Session) -> HumanizerLogService:
    return HumanizerLogService(repository=HumanizerLogRepository(db), workspaces=WorkspaceRepository(db))


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, AccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, WorkspaceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"workspace not found: {exc}")
    if isinstance(exc, ChartExportNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"chart export not found: {exc}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="request failed")


_DOMAIN_ERRORS = (AccessDeniedError, WorkspaceNotFoundError, ChartExportNotFoundError)


@router.post(
    "/workspaces/{workspace_id}/chart-exports",
    response_model=ChartExportOut,
    status_code=status.HTTP_201_CREATED,
)
def create_chart_export(
    workspace_id: uuid.UUID,
    payload: ChartExportCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> ChartExportOut:
    try:
        row = _chart_service(db).create(principal, workspace_id, payload)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to insert chart_exports")
        raise _translate(exc) from exc

    return ChartExportOut.model_validate(row)


@router.get("/workspaces/{workspace_id}/chart-exports", response_model=list[ChartExportOut])
def list_chart_exports(
    workspace_id: uuid.UUID,
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[ChartExportOut]:
    try:
        rows = _chart_service(db).list(principal, workspace_id, limit=limit)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read chart_exports workspace_id=%s", workspace_id)
        raise _translate(exc) from exc

    return [ChartExportOut.model_validate(r) for r in rows]


@router.delete("/chart-exports/{export_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_chart_export(
    export_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> Response:
    try:
        _chart_service(db).delete(principal, export_id)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete chart export id=%s", export_id)
        raise _translate(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/humanizer-logs", response_model=HumanizerLogOut, status_code=status.HTTP_201_CREATED)
def record_humanizer_log(
    payload: HumanizerLogCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> HumanizerLogOut:
    try:
        row = _humanizer_service(db).record(principal, payload)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to insert humanizer_logs")
        raise _translate(exc) from exc

    return HumanizerLogOut.model_validate(row)


@router.get("/humanizer-logs", response_model=list[HumanizerLogOut])
def list_humanizer_logs(
    limit: int = Query(default=50, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[HumanizerLogOut]:
    try:
        rows = _humanizer_service(db).list(principal, limit=limit)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read humanizer_logs")
        raise _translate(exc) from exc

    return [HumanizerLogOut.model_validate(r) for r in rows]
