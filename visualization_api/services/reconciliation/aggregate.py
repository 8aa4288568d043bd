"""
Value objects handled by the reconciliation engine.

The engine never touches ORM rows: gateways hand it these immutable
dataclasses and take them back.  Commands describe one request each;
results pair the (possibly partial) aggregate with a classified error.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from visualization_api.services.reconciliation.errors import ReconciliationError

Tags = Dict[str, Any]


@dataclass(frozen=True)
class Visualization:
    id: int
    slug: str
    name: str
    organization_id: str
    tags: Tags = field(default_factory=dict)


@dataclass(frozen=True)
class Dashboard:
    """
    One dashboard of a visualization.

    ``slug`` is empty until Grafana has accepted the rendered template and
    non-empty exactly while the Grafana dashboard exists.
    """
    id: str
    visualization_id: int
    name: str
    rendered_template: str
    slug: str = ""
    position: int = 0

    def with_slug(self, slug: str) -> "Dashboard":
        return replace(self, slug=slug)


@dataclass(frozen=True)
class DashboardDefinition:
    """A rendered dashboard ready to be stored (no slug yet)."""
    name: str
    rendered_template: str


@dataclass(frozen=True)
class VisualizationWithDashboards:
    visualization: Visualization
    dashboards: List[Dashboard] = field(default_factory=list)

    @classmethod
    def of(
        cls, visualization: Visualization, dashboards: Sequence[Dashboard],
    ) -> "VisualizationWithDashboards":
        return cls(visualization=visualization, dashboards=list(dashboards))

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned to API callers."""
        return {
            "id": self.visualization.slug,
            "name": self.visualization.name,
            "tags": self.visualization.tags,
            "dashboards": [
                {
                    "id": dashboard.slug,
                    "name": dashboard.name,
                    "renderedTemplate": dashboard.rendered_template,
                }
                for dashboard in self.dashboards
            ],
        }


# ── Commands ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class DashboardSpec:
    """Caller-supplied dashboard: a template plus its parameters."""
    name: str
    template_body: str
    template_parameters: Any = field(default_factory=dict)


@dataclass(frozen=True)
class CreateVisualizationCommand:
    name: str
    organization_id: str
    tags: Tags = field(default_factory=dict)
    dashboards: Sequence[DashboardSpec] = ()


@dataclass(frozen=True)
class QueryVisualizationsCommand:
    organization_id: str = ""
    slug: str = ""
    name: str = ""
    tags: Tags = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteVisualizationCommand:
    organization_id: str
    visualization_slug: str


# ── Results ──────────────────────────────────────────────────────

@dataclass
class ReconciliationResult:
    """
    Outcome of a create or delete.

    ``error is None`` means full success.  A ``CLIENT`` error still carries
    ``aggregate``: exactly the dashboards that remain in Grafana.
    """
    aggregate: Optional[VisualizationWithDashboards] = None
    error: Optional[ReconciliationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class QueryResult:
    aggregates: List[VisualizationWithDashboards] = field(default_factory=list)
    error: Optional[ReconciliationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
