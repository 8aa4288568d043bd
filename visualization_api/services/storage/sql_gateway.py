"""
SQLAlchemyPersistenceGateway — Visualization store on top of DatabaseManager.

Single Responsibility: translate gateway calls into SQLAlchemy statements
and ORM rows into the engine's value objects.  No Grafana calls, no
business rules.

Every public method opens its own session (one transaction) and wraps
``SQLAlchemyError`` into ``PersistenceError``.

Usage::

    gateway = SQLAlchemyPersistenceGateway(DatabaseManager(settings.database_url))
    visualization, dashboards = gateway.create_visualization_with_dashboards(
        "cpu", "org-1", {"env": "prod"}, definitions,
    )
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from visualization_api.core.database import DatabaseManager
from visualization_api.models.visualization_models import DashboardRow, VisualizationRow
from visualization_api.services.reconciliation.aggregate import (
    Dashboard,
    DashboardDefinition,
    Tags,
    Visualization,
    VisualizationWithDashboards,
)
from visualization_api.services.reconciliation.errors import PersistenceError
from visualization_api.services.reconciliation.gateways import PersistenceGateway

logger = logging.getLogger(__name__)


class SQLAlchemyPersistenceGateway(PersistenceGateway):
    """Persistence gateway backed by the ``visualization``/``dashboard`` tables."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db = db_manager

    # ─────────────────────────────────────────────────────────────
    #  READ
    # ─────────────────────────────────────────────────────────────

    def query_visualizations_dashboards(
        self, slug: str, name: str, organization_id: str, tags: Tags,
    ) -> List[VisualizationWithDashboards]:
        conditions = build_lookup_conditions(slug, name, organization_id, tags)
        stmt = (
            select(VisualizationRow, DashboardRow)
            .outerjoin(DashboardRow, DashboardRow.visualization_id == VisualizationRow.id)
            .order_by(VisualizationRow.id, DashboardRow.position)
        )
        if conditions:
            stmt = stmt.where(*conditions)
        try:
            with self.db.session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.error(f"[SQLGateway] Error getting visualizations from db: {exc}")
            raise PersistenceError(str(exc)) from exc

        return group_by_visualization(rows)

    def get_visualization_with_dashboards_by_slug(
        self, slug: str, organization_id: str,
    ) -> Optional[VisualizationWithDashboards]:
        found = self.query_visualizations_dashboards(slug, "", organization_id, {})
        return found[0] if found else None

    # ─────────────────────────────────────────────────────────────
    #  WRITE
    # ─────────────────────────────────────────────────────────────

    def create_visualization_with_dashboards(
        self,
        name: str,
        organization_id: str,
        tags: Tags,
        definitions: Sequence[DashboardDefinition],
    ) -> Tuple[Visualization, List[Dashboard]]:
        logger.debug(f"[SQLGateway] Creating new Visualization entry named '{name}'")
        try:
            with self.db.session() as session:
                visualization_row = VisualizationRow(
                    slug=str(uuid.uuid4()),
                    name=name,
                    organization_id=organization_id,
                    tags=dict(tags),
                )
                session.add(visualization_row)
                session.flush()

                dashboard_rows = [
                    DashboardRow(
                        id=str(uuid.uuid4()),
                        visualization_id=visualization_row.id,
                        position=position,
                        name=definition.name,
                        rendered_template=definition.rendered_template,
                        slug="",
                    )
                    for position, definition in enumerate(definitions)
                ]
                session.add_all(dashboard_rows)
                session.flush()

                visualization = _to_visualization(visualization_row)
                dashboards = [_to_dashboard(row) for row in dashboard_rows]
        except SQLAlchemyError as exc:
            logger.error(f"[SQLGateway] Error creating visualization '{name}': {exc}")
            raise PersistenceError(str(exc)) from exc
        return visualization, dashboards

    def delete_visualization(self, visualization: Visualization) -> None:
        try:
            with self.db.session() as session:
                session.execute(
                    delete(DashboardRow).where(
                        DashboardRow.visualization_id == visualization.id
                    )
                )
                session.execute(
                    delete(VisualizationRow).where(VisualizationRow.id == visualization.id)
                )
        except SQLAlchemyError as exc:
            logger.error(
                f"[SQLGateway] Error deleting visualization '{visualization.slug}': {exc}"
            )
            raise PersistenceError(str(exc)) from exc

    def bulk_update_dashboards(self, dashboards: Sequence[Dashboard]) -> None:
        if not dashboards:
            return
        params = [
            {
                "id": dashboard.id,
                "visualization_id": dashboard.visualization_id,
                "position": dashboard.position,
                "name": dashboard.name,
                "rendered_template": dashboard.rendered_template,
                "slug": dashboard.slug,
            }
            for dashboard in dashboards
        ]
        logger.debug(f"[SQLGateway] Bulk update of {len(params)} dashboards")
        try:
            with self.db.session() as session:
                session.execute(update(DashboardRow), params)
        except SQLAlchemyError as exc:
            logger.error(f"[SQLGateway] Error on bulk dashboard update: {exc}")
            raise PersistenceError(str(exc)) from exc

    def bulk_delete_dashboards(self, dashboards: Sequence[Dashboard]) -> None:
        if not dashboards:
            return
        ids = [dashboard.id for dashboard in dashboards]
        logger.debug(f"[SQLGateway] Bulk delete of dashboards {ids}")
        try:
            with self.db.session() as session:
                session.execute(delete(DashboardRow).where(DashboardRow.id.in_(ids)))
        except SQLAlchemyError as exc:
            logger.error(f"[SQLGateway] Error on bulk dashboard delete: {exc}")
            raise PersistenceError(str(exc)) from exc


# ─────────────────────────────────────────────────────────────────
# Pure helpers (module-level functions, no state)
# ─────────────────────────────────────────────────────────────────

def build_lookup_conditions(
    slug: str, name: str, organization_id: str, tags: Tags,
) -> List[ColumnElement]:
    """Equality conditions for every non-empty filter."""
    conditions: List[ColumnElement] = []
    if slug:
        conditions.append(VisualizationRow.slug == slug)
    if name:
        conditions.append(VisualizationRow.name == name)
    if organization_id:
        conditions.append(VisualizationRow.organization_id == organization_id)
    for tag_name, tag_value in tags.items():
        conditions.append(_tag_condition(tag_name, tag_value))
    return conditions


def _tag_condition(tag_name: str, tag_value: Any) -> ColumnElement:
    """Compare the JSON value at ``tag_name``, typed after ``tag_value``."""
    element = VisualizationRow.tags[tag_name]
    if isinstance(tag_value, bool):
        return element.as_boolean() == tag_value
    if isinstance(tag_value, int):
        return element.as_integer() == tag_value
    if isinstance(tag_value, float):
        return element.as_float() == tag_value
    return element.as_string() == str(tag_value)


def group_by_visualization(rows) -> List[VisualizationWithDashboards]:
    """
    Group joined ``(visualization, dashboard)`` rows by visualization slug.

    Keeps first-seen order; a ``None`` dashboard (outer join) yields a
    visualization with no dashboards.
    """
    grouped: Dict[str, Tuple[Visualization, List[Dashboard]]] = {}
    for visualization_row, dashboard_row in rows:
        entry = grouped.get(visualization_row.slug)
        if entry is None:
            entry = (_to_visualization(visualization_row), [])
            grouped[visualization_row.slug] = entry
        if dashboard_row is not None:
            entry[1].append(_to_dashboard(dashboard_row))
    return [
        VisualizationWithDashboards.of(visualization, dashboards)
        for visualization, dashboards in grouped.values()
    ]


def _to_visualization(row: VisualizationRow) -> Visualization:
    return Visualization(
        id=row.id,
        slug=row.slug,
        name=row.name,
        organization_id=row.organization_id,
        tags=dict(row.tags or {}),
    )


def _to_dashboard(row: DashboardRow) -> Dashboard:
    return Dashboard(
        id=row.id,
        visualization_id=row.visualization_id,
        name=row.name,
        rendered_template=row.rendered_template,
        slug=row.slug or "",
        position=row.position,
    )
