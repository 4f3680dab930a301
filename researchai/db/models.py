from researchai.db.base import Base

# Import all models here
from researchai.models.search_query import SearchQuery
from researchai.models.workspace import Workspace, WorkspaceCollaborator
from researchai.models.chart_export import ChartExport
from researchai.models.humanizer_log import HumanizerLog

__all__ = ["Base", "SearchQuery", "Workspace", "WorkspaceCollaborator", "ChartExport", "HumanizerLog"]
