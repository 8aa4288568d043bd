"""
GrafanaClient — Rendering gateway backed by Grafana dashboards.

Turns ``GrafanaHTTPClient`` result dicts into return values or
``GrafanaError`` exceptions, and re-authenticates once when Grafana
answers 401 (expired session cookie).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from visualization_api.core.config import Settings
from visualization_api.services.grafana.http_client import GrafanaHTTPClient
from visualization_api.services.reconciliation.errors import RemoteServiceError
from visualization_api.services.reconciliation.gateways import RenderingGateway

logger = logging.getLogger(__name__)

DASHBOARDS_PATH = "/api/dashboards/db"


class GrafanaError(RemoteServiceError):
    """Grafana call failed; ``status_code`` is 0 when nothing was received."""

    def __init__(self, status_code: int, description: str) -> None:
        self.status_code = status_code
        self.description = description
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status_code:
            return f"HTTP {self.status_code}: {self.description}"
        return f"ERROR: {self.description}"


class GrafanaClient(RenderingGateway):
    """
    Uploads and deletes dashboards in Grafana on behalf of organizations.

    Credentials are kept to log in again when the session expires.
    """

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.user = user
        self.password = password
        self._http = GrafanaHTTPClient(url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GrafanaClient":
        return cls(
            settings.GRAFANA_URL,
            settings.GRAFANA_USER,
            settings.GRAFANA_PASSWORD,
            timeout=settings.GRAFANA_TIMEOUT,
        )

    # ─────────────────────────────────────────────────────────
    #  SESSION
    # ─────────────────────────────────────────────────────────

    def login(self) -> None:
        """Open a cookie session with the stored credentials."""
        result = self._http.request(
            "POST", "/login", {"user": self.user, "password": self.password},
        )
        if not result["ok"]:
            raise GrafanaError(result["status"], result["error"])
        logger.debug(f"[GrafanaClient] Logged in as '{self.user}'")

    def close(self) -> None:
        self._http.close()

    # ─────────────────────────────────────────────────────────
    #  DASHBOARDS
    # ─────────────────────────────────────────────────────────

    def upload_dashboard(
        self, rendered_template: str, organization_id: str, overwrite: bool,
    ) -> str:
        try:
            dashboard = json.loads(rendered_template)
        except ValueError as exc:
            raise GrafanaError(0, f"dashboard is not valid JSON: {exc}") from exc

        data = self._call(
            "POST",
            DASHBOARDS_PATH,
            {"dashboard": dashboard, "overwrite": overwrite},
            organization_id,
        )
        slug = data.get("slug") if isinstance(data, dict) else None
        if not slug:
            raise GrafanaError(0, "dashboard upload response carries no slug")
        return slug

    def delete_dashboard(self, slug: str, organization_id: str) -> None:
        self._call("DELETE", f"{DASHBOARDS_PATH}/{slug}", None, organization_id)

    # ─────────────────────────────────────────────────────────
    #  INTERNAL HELPERS
    # ─────────────────────────────────────────────────────────

    def _call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        organization_id: Optional[str],
    ) -> Any:
        result = self._http.request(method, path, body, organization_id)
        if result["status"] == 401 and self._reauth():
            result = self._http.request(method, path, body, organization_id)
        if not result["ok"]:
            raise GrafanaError(result["status"], result["error"])
        return result["data"]

    def _reauth(self) -> bool:
        try:
            self.login()
        except GrafanaError as exc:
            logger.warning(f"[GrafanaClient] Re-authentication failed: {exc}")
            return False
        return True
