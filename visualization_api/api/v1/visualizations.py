"""
Visualization API endpoints — Thin HTTP wrapper over the reconciler.

Routes:
  GET    /visualizations                   → query by name + tag filters
  POST   /visualizations                   → create visualization + dashboards
  DELETE /visualization/{visualization_id} → delete visualization + dashboards

Error kinds map to HTTP statuses here and nowhere else:
  USER_DATA       → 422 on create, 404 on delete
  CLIENT          → 500 with the partial aggregate as body
  INFRASTRUCTURE  → 500 with an error body
"""

from __future__ import annotations

import logging
import uuid
from http import HTTPStatus
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from visualization_api.api.v1.dependencies import (
    OrganizationContext,
    get_reconciler,
    require_organization,
)
from visualization_api.services.reconciliation import (
    CreateVisualizationCommand,
    DashboardSpec,
    DeleteVisualizationCommand,
    ErrorKind,
    QueryVisualizationsCommand,
    ReconciliationResult,
    VisualizationReconciler,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["visualizations"])

NAME_PARAM = "name"
INTERNAL_ERROR_DETAILS = "Internal server error occured"

TagValue = Union[bool, int, float, str]


# ── Pydantic request/response models ────────────────────────────

class DashboardPayload(BaseModel):
    """One dashboard of a POST /visualizations body."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    template_body: str = Field(alias="templateBody")
    template_parameters: Dict[str, Any] = Field(alias="templateParameters")


class VisualizationCreateRequest(BaseModel):
    """Body for POST /visualizations."""
    model_config = ConfigDict(extra="forbid")

    name: str
    dashboards: List[DashboardPayload]
    tags: Dict[str, TagValue] = Field(default_factory=dict)


class DashboardResponse(BaseModel):
    id: str
    name: str
    rendered_template: str = Field(alias="renderedTemplate")


class VisualizationResponse(BaseModel):
    id: str
    name: str
    tags: Dict[str, Any]
    dashboards: List[DashboardResponse]


# ── Helpers ──────────────────────────────────────────────────────

def error_response(status_code: int, details: str) -> JSONResponse:
    """``{"code", "message", "details"}`` error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "code": status_code,
            "message": HTTPStatus(status_code).phrase,
            "details": details,
        },
    )


def _to_response(result: ReconciliationResult, user_data_status: int,
                 user_data_details: str) -> Any:
    if result.error is None:
        return result.aggregate.to_dict()

    kind = result.error.kind
    if kind is ErrorKind.USER_DATA:
        return error_response(user_data_status, user_data_details)
    if kind is ErrorKind.CLIENT and result.aggregate is not None:
        # Partially applied: the body is exactly what still exists
        return JSONResponse(status_code=500, content=result.aggregate.to_dict())
    return error_response(500, INTERNAL_ERROR_DETAILS)


def _split_query_params(request: Request) -> tuple[str, Dict[str, str]]:
    """``name`` is the visualization name; every other param is a tag."""
    name = ""
    tags: Dict[str, str] = {}
    for param_name in request.query_params.keys():
        # only one value per parameter is honoured
        value = request.query_params.getlist(param_name)[0]
        if param_name == NAME_PARAM:
            name = value
        else:
            tags[param_name] = value
    return name, tags


# ── Endpoints ────────────────────────────────────────────────────

@router.get("/visualizations", response_model=List[VisualizationResponse])
def list_visualizations(
    request: Request,
    org: OrganizationContext = Depends(require_organization),
    reconciler: VisualizationReconciler = Depends(get_reconciler),
):
    """Visualizations of the caller's organization matching name and tags."""
    name, tags = _split_query_params(request)
    logger.debug(
        f"[VisualizationsAPI] {request.url.path} query: name='{name}', tags={tags}"
    )

    result = reconciler.query(QueryVisualizationsCommand(
        organization_id=org.organization_id, name=name, tags=tags,
    ))
    if result.error is not None:
        logger.error(
            f"[VisualizationsAPI] Error while querying visualizations: {result.error}"
        )
        return error_response(500, INTERNAL_ERROR_DETAILS)
    return [aggregate.to_dict() for aggregate in result.aggregates]


@router.post("/visualizations", response_model=VisualizationResponse)
def create_visualization(
    payload: VisualizationCreateRequest,
    org: OrganizationContext = Depends(require_organization),
    reconciler: VisualizationReconciler = Depends(get_reconciler),
):
    """
    Render, store and upload a visualization with all of its dashboards.

    A 500 response with a visualization body means the creation failed half
    way; the body lists the dashboards left in Grafana.
    """
    command = CreateVisualizationCommand(
        name=payload.name,
        organization_id=org.organization_id,
        tags=dict(payload.tags),
        dashboards=[
            DashboardSpec(
                name=dashboard.name,
                template_body=dashboard.template_body,
                template_parameters=dashboard.template_parameters,
            )
            for dashboard in payload.dashboards
        ],
    )
    result = reconciler.create(command)
    if result.error is not None:
        logger.error(f"[VisualizationsAPI] Create failed: {result.error!r}")
    details = f"Error rendering template '{result.error}'" if result.error else ""
    return _to_response(result, 422, details)


@router.delete("/visualization/{visualization_id}", response_model=VisualizationResponse)
def delete_visualization(
    visualization_id: str,
    org: OrganizationContext = Depends(require_organization),
    reconciler: VisualizationReconciler = Depends(get_reconciler),
):
    """Delete a visualization from Grafana and from the database."""
    try:
        uuid.UUID(visualization_id)
    except ValueError:
        return error_response(
            422,
            f"provided id does not match UUIDv4 format '{visualization_id}'",
        )

    result = reconciler.delete(DeleteVisualizationCommand(
        organization_id=org.organization_id,
        visualization_slug=visualization_id,
    ))
    if result.error is not None:
        logger.error(f"[VisualizationsAPI] Delete failed: {result.error!r}")
    return _to_response(
        result, 404, f"Requested visualization '{visualization_id}' was not found",
    )
