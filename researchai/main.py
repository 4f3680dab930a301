"""ResearchAI Core FastAPI application.

Serves the persistence side of the research assistant: search analytics,
workspaces with their collaborators, chart exports and humanizer request
logs. Scraping, summarization and embedding live in other services and only
write here through these endpoints.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from researchai.core.config import settings
from researchai.routers import search_queries, workspace_artifacts, workspaces


def create_app() -> FastAPI:
    app = FastAPI(
        title="ResearchAI Core",
        version="0.1.0",
        description="Search analytics and workspace artifact APIs for the ResearchAI assistant.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(search_queries.router)
    app.include_router(workspaces.router)
    app.include_router(workspace_artifacts.router)

    return app


app = create_app()
