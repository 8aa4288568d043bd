"""
FastAPI dependencies — Organization scope from the JWT and engine lookup.

Usage in endpoints::

    @router.get("/visualizations")
    def list_visualizations(
        org: OrganizationContext = Depends(require_organization),
        reconciler: VisualizationReconciler = Depends(get_reconciler),
    ):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from visualization_api.core.config import Settings
from visualization_api.services.reconciliation import VisualizationReconciler

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized. Token is invalid or expired."

_bearer = HTTPBearer(auto_error=False)


@dataclass
class OrganizationContext:
    """Caller identity extracted from a validated JWT."""
    organization_id: str
    is_admin: bool = False


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_reconciler(request: Request) -> VisualizationReconciler:
    """Dependency: the engine built by the application factory."""
    return request.app.state.reconciler


def require_organization(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_settings_from_app),
) -> OrganizationContext:
    """
    Dependency: validate the bearer token and return its organization.

    Tokens are signed with ``JWT_SECRET_KEY`` and carry ``orgId`` and
    ``isAdmin`` claims; ``exp`` is enforced when present.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_MESSAGE)

    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.PyJWTError as exc:
        logger.info(f"[Auth] Rejected token: {exc}")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_MESSAGE)

    organization_id = claims.get("orgId")
    if not organization_id:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_MESSAGE)

    return OrganizationContext(
        organization_id=str(organization_id),
        is_admin=bool(claims.get("isAdmin", False)),
    )
