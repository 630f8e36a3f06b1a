"""
FastAPI server for Workflow Studio.

Provides REST API endpoints for:
- Node kind catalog and starter templates
- Workflow CRUD and the recency-ordered listing
- Deployment requests and cancellation

Usage:
    uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.ports import DeploymentBackend, WorkflowDocumentStore
from api.workflows.router import router
from shared.database import db_lifespan
from shared.database.stores import TortoiseDeploymentBackend, TortoiseWorkflowStore
from shared.logger import get_logger

logger = get_logger("api.main")

StoreFactory = Callable[[str], WorkflowDocumentStore]
BackendFactory = Callable[[str], DeploymentBackend]


def create_app(
    store_factory: Optional[StoreFactory] = None,
    backend_factory: Optional[BackendFactory] = None,
    *,
    use_database: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Args:
        store_factory: Builds the workflow store for a user id (default: Tortoise)
        backend_factory: Builds the deployment backend for a user id (default: Tortoise)
        use_database: Open Tortoise connections for the app's lifetime
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Workflow Studio API server")
        if use_database:
            async with db_lifespan(app):
                logger.info("Database initialized")
                yield
        else:
            yield
        logger.info("Workflow Studio API server shutting down")

    app = FastAPI(
        title="Workflow Studio API",
        description="Compose, save and deploy workflows",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store_factory = store_factory or TortoiseWorkflowStore
    app.state.backend_factory = backend_factory or TortoiseDeploymentBackend
    app.include_router(router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_logger = get_logger("api.main.errors")
        error_logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "ok", "server": "Workflow Studio API", "version": "1.0.0"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
