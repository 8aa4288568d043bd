"""
GrafanaHTTPClient — Sync HTTP wrapper around the Grafana REST API.

Single Responsibility: execute a single HTTP request against Grafana.
No dashboard semantics, no re-authentication policy.

Handles:
  - Cookie session (kept by the underlying ``httpx.Client``).
  - Organization scoping through the ``X-Grafana-Org-Id`` header.
  - Timeout enforcement.
  - Structured error handling — never raises; returns result dicts.

Usage::

    http = GrafanaHTTPClient("http://grafana:3000", timeout=5)
    result = http.request("DELETE", "/api/dashboards/db/cpu", organization_id="3")
    # result = {"ok": True, "data": {...}, "status": 200}
    # or      {"ok": False, "error": "Dashboard not found", "status": 404}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

GRAFANA_ORG_HEADER = "X-Grafana-Org-Id"

# Reusable result type
APIResult = Dict[str, Any]


class GrafanaHTTPClient:
    """
    Executes HTTP requests against one Grafana instance.

    ``transport`` is forwarded to ``httpx.Client`` (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        organization_id: Optional[str] = None,
    ) -> APIResult:
        """
        Execute one request.

        Returns:
            ``{"ok": True, "data": ..., "status": int}``
            or ``{"ok": False, "error": str, "status": int, "data": None}``
            (``status`` is 0 when no response was received).
        """
        headers = self._build_headers(organization_id)
        try:
            response = self._client.request(
                method, path, json=json_body, headers=headers,
            )
        except httpx.TimeoutException:
            return self._error_result(method, path, f"Timeout after {self.timeout}s", 0)
        except httpx.HTTPError as exc:
            return self._error_result(method, path, f"Connection failed: {exc}", 0)

        if not response.is_success:
            return self._error_result(
                method, path, self._error_message(response), response.status_code,
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            return self._error_result(
                method, path,
                f"Invalid JSON in response: {response.text[:200]}",
                response.status_code,
            )

        return {"ok": True, "data": data, "status": response.status_code}

    def close(self) -> None:
        self._client.close()

    # ─────────────────────────────────────────────────────────
    #  INTERNAL HELPERS
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def _build_headers(organization_id: Optional[str]) -> Dict[str, str]:
        if organization_id:
            return {GRAFANA_ORG_HEADER: str(organization_id)}
        return {}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Grafana error bodies look like ``{"message": "..."}``."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text[:200]

    @staticmethod
    def _error_result(method: str, path: str, error: str, status: int) -> APIResult:
        """Build a standardized error result dict."""
        logger.error(f"[GrafanaHTTP] {method} {path}: {error}")
        return {
            "ok": False,
            "error": error,
            "status": status,
            "data": None,
        }
