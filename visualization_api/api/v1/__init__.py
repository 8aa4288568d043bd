"""
API v1 — Router aggregation.
"""

from fastapi import APIRouter

from visualization_api.api.v1.system import router as system_router
from visualization_api.api.v1.visualizations import router as visualizations_router

api_router = APIRouter(prefix="/v1")
api_router.include_router(system_router)
api_router.include_router(visualizations_router)
