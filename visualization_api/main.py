"""
FastAPI application factory + lifespan.

Wires the reconciliation engine to its collaborators:
- SQLAlchemy persistence gateway (MySQL by default).
- Grafana rendering gateway.

Both are built once per process and injected into the engine through a
``ClientContainer``; tests pass their own container to the factory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from visualization_api.api.v1 import api_router
from visualization_api.api.v1.visualizations import error_response
from visualization_api.core.config import Settings, get_settings
from visualization_api.core.database import DatabaseManager
from visualization_api.core.log_config import setup_logging
from visualization_api.services.grafana import GrafanaClient, GrafanaError
from visualization_api.services.reconciliation import (
    ClientContainer,
    VisualizationReconciler,
)
from visualization_api.services.storage import SQLAlchemyPersistenceGateway

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def build_clients(settings: Settings):
    """Create the production gateways; returns ``(clients, db_manager, grafana)``."""
    db_manager = DatabaseManager(settings.database_url, echo=settings.DEBUG)
    grafana = GrafanaClient.from_settings(settings)
    clients = ClientContainer(
        persistence=SQLAlchemyPersistenceGateway(db_manager),
        rendering=grafana,
    )
    return clients, db_manager, grafana


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging, build gateways unless injected, log in to Grafana.
    Shutdown: close DB engine and Grafana session.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})")

    owned = None
    if getattr(app.state, "reconciler", None) is None:
        clients, db_manager, grafana = build_clients(settings)
        try:
            grafana.login()
        except GrafanaError as exc:
            # Requests re-authenticate on 401, so the API can still start
            logger.error(f"Grafana login failed at startup: {exc}")
        app.state.reconciler = VisualizationReconciler(clients)
        owned = (db_manager, grafana)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    if owned is not None:
        db_manager, grafana = owned
        grafana.close()
        db_manager.close()
        app.state.reconciler = None


def create_fastapi_app(
    settings: Optional[Settings] = None,
    clients: Optional[ClientContainer] = None,
) -> FastAPI:
    """Application factory for FastAPI."""
    settings = settings or get_settings()
    app = FastAPI(
        title="Visualization API",
        description="Visualizations kept consistent between the database and Grafana",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.state.settings = settings
    app.state.reconciler = VisualizationReconciler(clients) if clients else None

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return error_response(422, f"request body is not valid, list of errors [{errors}]")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    app.include_router(api_router)

    @app.get("/")
    def root():
        return {
            "app": settings.APP_NAME,
            "version": APP_VERSION,
            "status": "running",
        }

    return app


# Module-level instance for ``uvicorn visualization_api.main:app``
app = create_fastapi_app()
