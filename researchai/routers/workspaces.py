from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from researchai.core.security import Principal, get_principal
from researchai.db.session import get_db
from researchai.repositories.workspace_repository import WorkspaceRepository
from researchai.schemas.workspace import (
    CollaboratorCreate,
    CollaboratorOut,
    WorkspaceCreate,
    WorkspaceDetailOut,
    WorkspaceOut,
    WorkspaceSummaryOut,
)
from researchai.services.access_policy import AccessDeniedError
from researchai.services.workspace_service import (
    CollaboratorNotFoundError,
    WorkspaceConflictError,
    WorkspaceNotFoundError,
    WorkspaceService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

_DOMAIN_ERRORS = (AccessDeniedError, WorkspaceNotFoundError, CollaboratorNotFoundError, WorkspaceConflictError)


def _service(db: Session) -> WorkspaceService:
    return WorkspaceService(repository=WorkspaceRepository(db))


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, AccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, WorkspaceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"workspace not found: {exc}")
    if isinstance(exc, CollaboratorNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"collaborator not found: {exc}")
    if isinstance(exc, WorkspaceConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="request failed")


@router.post("", response_model=WorkspaceOut, status_code=status.HTTP_201_CREATED)
def create_workspace(
    payload: WorkspaceCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> WorkspaceOut:
    try:
        workspace = _service(db).create(principal, payload)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create workspace")
        raise _translate(exc) from exc

    return WorkspaceOut.model_validate(workspace)


@router.get("", response_model=list[WorkspaceSummaryOut])
def list_workspaces(
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[WorkspaceSummaryOut]:
    try:
        rows = _service(db).list(principal, limit=limit)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read workspaces")
        raise _translate(exc) from exc

    return [
        WorkspaceSummaryOut(**WorkspaceOut.model_validate(workspace).model_dump(), role=role)
        for workspace, role in rows
    ]


@router.get("/{workspace_id}", response_model=WorkspaceDetailOut)
def get_workspace(
    workspace_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> WorkspaceDetailOut:
    try:
        view = _service(db).get(principal, workspace_id)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to read workspace id=%s", workspace_id)
        raise _translate(exc) from exc

    return WorkspaceDetailOut(
        **WorkspaceOut.model_validate(view.workspace).model_dump(),
        role=view.role,
        collaborators=[CollaboratorOut.model_validate(c) for c in view.collaborators],
    )


@router.post(
    "/{workspace_id}/collaborators",
    response_model=CollaboratorOut,
    status_code=status.HTTP_201_CREATED,
)
def add_collaborator(
    workspace_id: uuid.UUID,
    payload: CollaboratorCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> CollaboratorOut:
    try:
        row = _service(db).add_collaborator(principal, workspace_id, payload)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to add collaborator workspace_id=%s", workspace_id)
        raise _translate(exc) from exc

    return CollaboratorOut.model_validate(row)


@router.delete("/{workspace_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_collaborator(
    workspace_id: uuid.UUID,
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> Response:
    try:
        _service(db).remove_collaborator(principal, workspace_id, user_id)
    except _DOMAIN_ERRORS as exc:
        raise _translate(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to remove collaborator workspace_id=%s user_id=%s", workspace_id, user_id)
        raise _translate(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
