"""Workspaces and their collaborators.

The workspace owner manages membership, mirroring the "Workspace owners can
manage memberships" policy; every collaborator can read the workspace and its
member list.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from researchai.core.security import Principal
from researchai.models.workspace import COLLABORATOR_ROLES, Workspace, WorkspaceCollaborator
from researchai.repositories.workspace_repository import WorkspaceRepository
from researchai.schemas.workspace import CollaboratorCreate, WorkspaceCreate
from researchai.services.access_policy import AccessDeniedError, ensure_authenticated, ensure_workspace_member

logger = logging.getLogger(__name__)


class WorkspaceNotFoundError(LookupError):
    pass


class CollaboratorNotFoundError(LookupError):
    pass


class WorkspaceConflictError(ValueError):
    pass


@dataclass
class WorkspaceView:
    workspace: Workspace
    role: str
    collaborators: list[WorkspaceCollaborator]


class WorkspaceService:
    def __init__(self, repository: WorkspaceRepository) -> None:
        self.repository = repository

    def _require(self, workspace_id: uuid.UUID) -> Workspace:
        workspace = self.repository.get(workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(str(workspace_id))
        return workspace

    def _require_owner(self, principal: Principal, workspace_id: uuid.UUID) -> tuple[Workspace, uuid.UUID]:
        user_id = ensure_authenticated(principal)
        workspace = self._require(workspace_id)
        if workspace.owner_id != user_id:
            raise AccessDeniedError("only the workspace owner can manage collaborators")
        return workspace, user_id

    def create(self, principal: Principal, payload: WorkspaceCreate) -> Workspace:
        owner_id = ensure_authenticated(principal)
        if self.repository.find_owned_by_name(owner_id, payload.name) is not None:
            raise WorkspaceConflictError(f"a workspace named {payload.name!r} already exists")

        workspace = self.repository.create(name=payload.name, owner_id=owner_id, description=payload.description)
        logger.info("Created workspace id=%s owner_id=%s", workspace.id, owner_id)
        return workspace

    def list(self, principal: Principal, *, limit: int = 100) -> list[tuple[Workspace, str]]:
        return self.repository.list_for_member(ensure_authenticated(principal), limit=limit)

    def get(self, principal: Principal, workspace_id: uuid.UUID) -> WorkspaceView:
        user_id = ensure_authenticated(principal)
        workspace = self._require(workspace_id)
        role = self.repository.get_role(workspace_id, user_id)
        ensure_workspace_member(role)
        return WorkspaceView(
            workspace=workspace,
            role=role,
            collaborators=self.repository.list_collaborators(workspace_id),
        )

    def add_collaborator(
        self, principal: Principal, workspace_id: uuid.UUID, payload: CollaboratorCreate
    ) -> WorkspaceCollaborator:
        _, owner_id = self._require_owner(principal, workspace_id)
        if payload.role not in COLLABORATOR_ROLES:
            raise WorkspaceConflictError(f"unknown role: {payload.role}")
        if self.repository.get_role(workspace_id, payload.user_id) is not None:
            raise WorkspaceConflictError("user is already a collaborator")

        row = self.repository.add_collaborator(
            workspace_id,
            payload.user_id,
            role=payload.role,
            invited_by=owner_id,
        )
        logger.info(
            "Added collaborator workspace_id=%s user_id=%s role=%s", workspace_id, payload.user_id, payload.role
        )
        return row

    def remove_collaborator(self, principal: Principal, workspace_id: uuid.UUID, user_id: uuid.UUID) -> None:
        workspace, _ = self._require_owner(principal, workspace_id)
        if user_id == workspace.owner_id:
            raise AccessDeniedError("the workspace owner cannot be removed")

        row = self.repository.get_collaborator(workspace_id, user_id)
        if row is None:
            raise CollaboratorNotFoundError(str(user_id))

        self.repository.remove_collaborator(row)
        logger.info("Removed collaborator workspace_id=%s user_id=%s", workspace_id, user_id)
