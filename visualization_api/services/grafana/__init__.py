"""
Grafana — Rendering gateway over the Grafana HTTP API.

Modules:
  http_client : Sync HTTP wrapper (session, org header, timeout, errors).
  client      : RenderingGateway implementation (upload/delete dashboards).

Public API::

    from visualization_api.services.grafana import GrafanaClient, GrafanaError
"""

from visualization_api.services.grafana.client import GrafanaClient, GrafanaError
from visualization_api.services.grafana.http_client import GrafanaHTTPClient

__all__ = ["GrafanaClient", "GrafanaError", "GrafanaHTTPClient"]
