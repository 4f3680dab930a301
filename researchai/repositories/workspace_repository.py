from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from researchai.models.workspace import Workspace, WorkspaceCollaborator


class WorkspaceRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, workspace_id: uuid.UUID) -> Optional[Workspace]:
        return self.db.get(Workspace, workspace_id)

    def create(self, *, name: str, owner_id: uuid.UUID, description: Optional[str] = None) -> Workspace:
        workspace = Workspace(name=name, owner_id=owner_id, description=description)
        self.db.add(workspace)
        self.db.flush()
        self.db.add(WorkspaceCollaborator(workspace_id=workspace.id, user_id=owner_id, role="owner"))
        self.db.commit()
        self.db.refresh(workspace)
        return workspace

    def add_collaborator(
        self,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        role: str,
        invited_by: Optional[uuid.UUID] = None,
    ) -> WorkspaceCollaborator:
        row = WorkspaceCollaborator(
            workspace_id=workspace_id,
            user_id=user_id,
            role=role,
            invited_by=invited_by,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def get_role(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> Optional[str]:
        stmt = (
            select(WorkspaceCollaborator.role)
            .where(
                WorkspaceCollaborator.workspace_id == workspace_id,
                WorkspaceCollaborator.user_id == user_id,
            )
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_owned_by_name(self, owner_id: uuid.UUID, name: str) -> Optional[Workspace]:
        stmt = select(Workspace).where(Workspace.owner_id == owner_id, Workspace.name == name).limit(1)
        return self.db.execute(stmt).scalars().first()

    def list_for_member(self, user_id: uuid.UUID, *, limit: int = 100) -> list[tuple[Workspace, str]]:
        stmt = (
            select(Workspace, WorkspaceCollaborator.role)
            .join(WorkspaceCollaborator, WorkspaceCollaborator.workspace_id == Workspace.id)
            .where(WorkspaceCollaborator.user_id == user_id)
            .order_by(Workspace.updated_at.desc(), Workspace.name.asc())
            .limit(limit)
        )
        return [(row.Workspace, row.role) for row in self.db.execute(stmt).all()]

    def list_collaborators(self, workspace_id: uuid.UUID) -> list[WorkspaceCollaborator]:
        stmt = (
            select(WorkspaceCollaborator)
            .where(WorkspaceCollaborator.workspace_id == workspace_id)
            .order_by(WorkspaceCollaborator.joined_at.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_collaborator(self, workspace_id: uuid.UUID, user_id: uuid.UUID) -> Optional[WorkspaceCollaborator]:
        stmt = select(WorkspaceCollaborator).where(
            WorkspaceCollaborator.workspace_id == workspace_id,
            WorkspaceCollaborator.user_id == user_id,
        )
        return self.db.execute(stmt).scalars().first()

    def remove_collaborator(self, row: WorkspaceCollaborator) -> None:
        self.db.delete(row)
        self.db.commit()
