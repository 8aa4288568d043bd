"""Shared fixtures: in-memory fakes for the persistence and rendering gateways."""

import itertools
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

from visualization_api.services.reconciliation import (
    ClientContainer,
    Dashboard,
    DashboardDefinition,
    DashboardSpec,
    PersistenceError,
    PersistenceGateway,
    RemoteServiceError,
    RenderingGateway,
    Visualization,
    VisualizationReconciler,
    VisualizationWithDashboards,
)

READ_OPERATIONS = {
    "query_visualizations_dashboards",
    "get_visualization_with_dashboards_by_slug",
}


class InMemoryPersistence(PersistenceGateway):
    """Dict-backed store; ``fail_on`` holds operation names that must fail."""

    def __init__(self) -> None:
        self.visualizations: Dict[int, Visualization] = {}
        self.dashboards: Dict[str, Dashboard] = {}
        self.calls: List[str] = []
        self.fail_on: Set[str] = set()
        self._ids = itertools.count(1)

    @property
    def writes(self) -> List[str]:
        return [call for call in self.calls if call not in READ_OPERATIONS]

    def dashboards_of(self, visualization_id: int) -> List[Dashboard]:
        return sorted(
            (d for d in self.dashboards.values() if d.visualization_id == visualization_id),
            key=lambda d: d.position,
        )

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed")

    def _matches(self, visualization, slug, name, organization_id, tags) -> bool:
        if slug and visualization.slug != slug:
            return False
        if name and visualization.name != name:
            return False
        if organization_id and visualization.organization_id != organization_id:
            return False
        return all(visualization.tags.get(k) == v for k, v in tags.items())

    def query_visualizations_dashboards(self, slug, name, organization_id, tags):
        self._record("query_visualizations_dashboards")
        return [
            VisualizationWithDashboards.of(v, self.dashboards_of(v.id))
            for v in self.visualizations.values()
            if self._matches(v, slug, name, organization_id, tags)
        ]

    def create_visualization_with_dashboards(
        self, name, organization_id, tags, definitions: Sequence[DashboardDefinition],
    ):
        self._record("create_visualization_with_dashboards")
        visualization_id = next(self._ids)
        visualization = Visualization(
            id=visualization_id,
            slug=f"00000000-0000-4000-8000-{visualization_id:012d}",
            name=name,
            organization_id=organization_id,
            tags=dict(tags),
        )
        dashboards = [
            Dashboard(
                id=f"dash-{visualization_id}-{position}",
                visualization_id=visualization_id,
                name=definition.name,
                rendered_template=definition.rendered_template,
                position=position,
            )
            for position, definition in enumerate(definitions)
        ]
        self.visualizations[visualization_id] = visualization
        for dashboard in dashboards:
            self.dashboards[dashboard.id] = dashboard
        return visualization, dashboards

    def delete_visualization(self, visualization):
        self._record("delete_visualization")
        self.visualizations.pop(visualization.id, None)
        for dashboard in self.dashboards_of(visualization.id):
            del self.dashboards[dashboard.id]

    def bulk_update_dashboards(self, dashboards):
        self._record("bulk_update_dashboards")
        for dashboard in dashboards:
            self.dashboards[dashboard.id] = dashboard

    def bulk_delete_dashboards(self, dashboards):
        self._record("bulk_delete_dashboards")
        for dashboard in dashboards:
            self.dashboards.pop(dashboard.id, None)

    def get_visualization_with_dashboards_by_slug(self, slug, organization_id):
        self._record("get_visualization_with_dashboards_by_slug")
        for visualization in self.visualizations.values():
            if visualization.slug == slug and visualization.organization_id == organization_id:
                return VisualizationWithDashboards.of(
                    visualization, self.dashboards_of(visualization.id),
                )
        return None


class FakeGrafana(RenderingGateway):
    """
    Artifact store keyed by ``(organization_id, slug)``.

    ``fail_upload_at`` holds 0-based upload attempt numbers that must fail,
    ``fail_delete`` holds slugs whose deletion must fail.
    """

    def __init__(self) -> None:
        self.artifacts: Dict[Tuple[str, str], str] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_upload_at: Set[int] = set()
        self.fail_delete: Set[str] = set()
        self._attempts = 0
        self._slugs = itertools.count(1)

    def upload_dashboard(self, rendered_template, organization_id, overwrite):
        attempt = self._attempts
        self._attempts += 1
        self.calls.append(("upload", organization_id))
        assert overwrite is False
        if attempt in self.fail_upload_at:
            raise RemoteServiceError(f"HTTP 500: upload #{attempt} rejected")
        slug = f"dashboard-{next(self._slugs)}"
        self.artifacts[(organization_id, slug)] = rendered_template
        return slug

    def delete_dashboard(self, slug, organization_id):
        self.calls.append(("delete", slug))
        if slug in self.fail_delete:
            raise RemoteServiceError(f"HTTP 500: cannot delete {slug}")
        if (organization_id, slug) not in self.artifacts:
            raise RemoteServiceError(f"HTTP 404: {slug} not found")
        del self.artifacts[(organization_id, slug)]

    def has(self, organization_id: str, slug: str) -> bool:
        return (organization_id, slug) in self.artifacts


def dashboard_spec(name: str, title: Optional[str] = None) -> DashboardSpec:
    return DashboardSpec(
        name=name,
        template_body='{"title": "{{ title }}", "panels": []}',
        template_parameters={"title": title or name},
    )


def assert_slug_invariant(
    aggregate: VisualizationWithDashboards, grafana: FakeGrafana,
) -> None:
    """slug present ⇔ artifact exists, for every returned dashboard."""
    organization_id = aggregate.visualization.organization_id
    for dashboard in aggregate.dashboards:
        if dashboard.slug:
            assert grafana.has(organization_id, dashboard.slug), dashboard
        else:
            assert not any(
                org == organization_id and body == dashboard.rendered_template
                for (org, _), body in grafana.artifacts.items()
            ), dashboard


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def grafana() -> FakeGrafana:
    return FakeGrafana()


@pytest.fixture
def clients(persistence, grafana) -> ClientContainer:
    return ClientContainer(persistence=persistence, rendering=grafana)


@pytest.fixture
def reconciler(clients) -> VisualizationReconciler:
    return VisualizationReconciler(clients)
