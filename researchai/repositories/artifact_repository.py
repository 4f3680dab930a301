from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from researchai.models.chart_export import ChartExport
from researchai.models.humanizer_log import HumanizerLog


class ChartExportRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(
        self,
        *,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        chart_type: str,
        title: Optional[str],
        params: dict[str, Any],
        image_url: Optional[str],
    ) -> ChartExport:
        row = ChartExport(
            workspace_id=workspace_id,
            user_id=user_id,
            type=chart_type,
            title=title,
            params=params,
            image_url=image_url,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def get(self, export_id: uuid.UUID) -> Optional[ChartExport]:
        return self.db.get(ChartExport, export_id)

    def list_for_workspace(self, workspace_id: uuid.UUID, *, limit: int = 100) -> list[ChartExport]:
        stmt = (
            select(ChartExport)
            .where(ChartExport.workspace_id == workspace_id)
            .order_by(ChartExport.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def delete(self, row: ChartExport) -> None:
        self.db.delete(row)
        self.db.commit()


class HumanizerLogRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, **values: Any) -> HumanizerLog:
        row = HumanizerLog(**values)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def list_for_user(self, user_id: uuid.UUID, *, limit: int = 50) -> list[HumanizerLog]:
        stmt = (
            select(HumanizerLog)
            .where(HumanizerLog.user_id == user_id)
            .order_by(HumanizerLog.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())
