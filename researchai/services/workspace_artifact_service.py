"""Chart exports and humanizer logs.

Both tables hang off workspaces. Chart exports are shared with every
collaborator of the workspace; humanizer logs stay private to their author.
"""

from __future__ import annotations

import logging
import uuid

from researchai.core.security import Principal
from researchai.models.chart_export import ChartExport
from researchai.models.humanizer_log import HumanizerLog
from researchai.repositories.artifact_repository import ChartExportRepository, HumanizerLogRepository
from researchai.repositories.workspace_repository import WorkspaceRepository
from researchai.schemas.workspace_artifacts import ChartExportCreate, HumanizerLogCreate
from researchai.services.access_policy import (
    AccessDeniedError,
    OwnershipMismatchError,
    ensure_authenticated,
    ensure_workspace_member,
    ensure_workspace_writer,
)
from researchai.services.workspace_service import WorkspaceNotFoundError

logger = logging.getLogger(__name__)


class ChartExportNotFoundError(LookupError):
    pass


def _claimed_owner(principal_id: uuid.UUID, claimed: uuid.UUID | None) -> uuid.UUID:
    if claimed is not None and claimed != principal_id:
        raise OwnershipMismatchError("user_id must match the authenticated caller")
    return principal_id


class ChartExportService:
    def __init__(self, repository: ChartExportRepository, workspaces: WorkspaceRepository) -> None:
        self.repository = repository
        self.workspaces = workspaces

    def _role_in(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> str | None:
        if self.workspaces.get(workspace_id) is None:
            raise WorkspaceNotFoundError(str(workspace_id))
        return self.workspaces.get_role(workspace_id, user_id)

    def create(self, principal: Principal, workspace_id: uuid.UUID, payload: ChartExportCreate) -> ChartExport:
        user_id = _claimed_owner(ensure_authenticated(principal), payload.user_id)
        ensure_workspace_writer(self._role_in(workspace_id, user_id))

        return self.repository.insert(
            workspace_id=workspace_id,
            user_id=user_id,
            chart_type=payload.type,
            title=payload.title,
            params=payload.params,
            image_url=payload.image_url,
        )

    def list(self, principal: Principal, workspace_id: uuid.UUID, *, limit: int = 100) -> list[ChartExport]:
        user_id = ensure_authenticated(principal)
        ensure_workspace_member(self._role_in(workspace_id, user_id))
        return self.repository.list_for_workspace(workspace_id, limit=limit)

    def delete(self, principal: Principal, export_id: uuid.UUID) -> None:
        user_id = ensure_authenticated(principal)
        row = self.repository.get(export_id)
        if row is None:
            raise ChartExportNotFoundError(str(export_id))
        if row.user_id != user_id:
            raise AccessDeniedError("only the creator may delete a chart export")

        self.repository.delete(row)
        logger.info("Deleted chart export id=%s workspace_id=%s", export_id, row.workspace_id)


class HumanizerLogService:
    def __init__(self, repository: HumanizerLogRepository, workspaces: WorkspaceRepository) -> None:
        self.repository = repository
        self.workspaces = workspaces

    def record(self, principal: Principal, payload: HumanizerLogCreate) -> HumanizerLog:
        user_id = _claimed_owner(ensure_authenticated(principal), payload.user_id)
        if payload.workspace_id is not None and self.workspaces.get(payload.workspace_id) is None:
            raise WorkspaceNotFoundError(str(payload.workspace_id))

        values = payload.model_dump(exclude={"user_id"})
        return self.repository.insert(user_id=user_id, **values)

    def list(self, principal: Principal, *, limit: int = 50) -> list[HumanizerLog]:
        return self.repository.list_for_user(ensure_authenticated(principal), limit=limit)
