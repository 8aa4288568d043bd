"""
Gateway contracts consumed by the reconciliation engine.

Concrete implementations:
  PersistenceGateway → ``visualization_api.services.storage.SQLAlchemyPersistenceGateway``
  RenderingGateway   → ``visualization_api.services.grafana.GrafanaClient``

Tests substitute in-memory fakes through ``ClientContainer``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from visualization_api.services.reconciliation.aggregate import (
    Dashboard,
    DashboardDefinition,
    Tags,
    Visualization,
    VisualizationWithDashboards,
)


class PersistenceGateway(ABC):
    """
    Durable record of visualizations and dashboards.

    Every method raises ``PersistenceError`` on failure.
    """

    @abstractmethod
    def query_visualizations_dashboards(
        self, slug: str, name: str, organization_id: str, tags: Tags,
    ) -> List[VisualizationWithDashboards]:
        """Equality-filtered lookup; empty filters match everything."""

    @abstractmethod
    def create_visualization_with_dashboards(
        self,
        name: str,
        organization_id: str,
        tags: Tags,
        definitions: Sequence[DashboardDefinition],
    ) -> Tuple[Visualization, List[Dashboard]]:
        """Insert the visualization and all its dashboards in one transaction."""

    @abstractmethod
    def delete_visualization(self, visualization: Visualization) -> None:
        """Delete the visualization together with its remaining dashboards."""

    @abstractmethod
    def bulk_update_dashboards(self, dashboards: Sequence[Dashboard]) -> None:
        """Persist the given dashboards' fields (slug included) in one write."""

    @abstractmethod
    def bulk_delete_dashboards(self, dashboards: Sequence[Dashboard]) -> None:
        """Delete the given dashboards in one write."""

    @abstractmethod
    def get_visualization_with_dashboards_by_slug(
        self, slug: str, organization_id: str,
    ) -> Optional[VisualizationWithDashboards]:
        """Return the aggregate, or ``None`` when no such visualization exists."""


class RenderingGateway(ABC):
    """
    Remote rendering service holding the dashboard artifacts.

    Every method raises ``RemoteServiceError`` on failure.
    """

    @abstractmethod
    def upload_dashboard(
        self, rendered_template: str, organization_id: str, overwrite: bool,
    ) -> str:
        """Upload a rendered dashboard and return its slug."""

    @abstractmethod
    def delete_dashboard(self, slug: str, organization_id: str) -> None:
        """Delete the dashboard identified by ``slug``."""


@dataclass(frozen=True)
class ClientContainer:
    """Capability set handed to the engine at construction."""
    persistence: PersistenceGateway
    rendering: RenderingGateway
