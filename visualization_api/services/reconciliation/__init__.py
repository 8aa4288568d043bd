"""
Reconciliation package — Visualization aggregate across database + Grafana.

Modules:
  errors     — ErrorKind, ReconciliationError, gateway exceptions
  aggregate  — Value objects, commands and results
  gateways   — PersistenceGateway / RenderingGateway contracts
  engine     — VisualizationReconciler

Usage::

    from visualization_api.services.reconciliation import (
        ClientContainer, VisualizationReconciler,
    )
"""

from visualization_api.services.reconciliation.aggregate import (
    CreateVisualizationCommand,
    Dashboard,
    DashboardDefinition,
    DashboardSpec,
    DeleteVisualizationCommand,
    QueryResult,
    QueryVisualizationsCommand,
    ReconciliationResult,
    Visualization,
    VisualizationWithDashboards,
)
from visualization_api.services.reconciliation.engine import VisualizationReconciler
from visualization_api.services.reconciliation.errors import (
    ErrorKind,
    PersistenceError,
    ReconciliationError,
    RemoteServiceError,
)
from visualization_api.services.reconciliation.gateways import (
    ClientContainer,
    PersistenceGateway,
    RenderingGateway,
)

__all__ = [
    "ClientContainer",
    "CreateVisualizationCommand",
    "Dashboard",
    "DashboardDefinition",
    "DashboardSpec",
    "DeleteVisualizationCommand",
    "ErrorKind",
    "PersistenceError",
    "PersistenceGateway",
    "QueryResult",
    "QueryVisualizationsCommand",
    "ReconciliationError",
    "ReconciliationResult",
    "RemoteServiceError",
    "RenderingGateway",
    "Visualization",
    "VisualizationReconciler",
    "VisualizationWithDashboards",
]
