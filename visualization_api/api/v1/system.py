"""System endpoints — health check."""

from fastapi import APIRouter, Request

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
def health_check(request: Request):
    """Basic liveness probe."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "env": settings.APP_ENV,
    }
