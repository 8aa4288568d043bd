"""
VisualizationReconciler — Dual-write engine for database + Grafana.

A visualization lives in two places that fail independently: the
database (record of truth) and Grafana (rendering backend).  This module
creates, queries and deletes the Visualization-with-Dashboards aggregate
across both and always reports what actually exists.

Rules followed on every path:
  - The database is written *before* Grafana, so a dashboard definition
    is never lost when Grafana is down.
  - A dashboard row carries a slug exactly while its Grafana dashboard
    exists.  Grafana dashboards are disposable and get deleted on failure;
    the row is updated to match Grafana, never the other way round.
  - Compensation failures are logged, never raised.  They degrade to a
    CLIENT error carrying the most accurate snapshot available.
  - Uploads and deletes run one at a time, in list order.

Usage::

    reconciler = VisualizationReconciler(ClientContainer(persistence, grafana))
    result = reconciler.create(CreateVisualizationCommand(...))
    if result.error and result.error.kind is ErrorKind.CLIENT:
        ...  # result.aggregate holds what still exists
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from visualization_api.services.reconciliation.aggregate import (
    CreateVisualizationCommand,
    Dashboard,
    DashboardDefinition,
    DeleteVisualizationCommand,
    QueryResult,
    QueryVisualizationsCommand,
    ReconciliationResult,
    Visualization,
    VisualizationWithDashboards,
)
from visualization_api.services.reconciliation.errors import (
    ErrorKind,
    PersistenceError,
    ReconciliationError,
    RemoteServiceError,
)
from visualization_api.services.reconciliation.gateways import ClientContainer
from visualization_api.services.templates import (
    TemplateError,
    ensure_dashboard_documents,
    render_templates,
)

logger = logging.getLogger(__name__)

CREATE_COMPENSATION_MESSAGE = (
    "Unable to create new grafana dashboards, and remove old ones"
)
DELETE_COMPENSATION_MESSAGE = "failed to remove data from grafana"
NOT_FOUND_MESSAGE = "No visualizations found"


class VisualizationReconciler:
    """
    Orchestrates the aggregate across the persistence and rendering gateways.

    Stateless apart from the injected ``ClientContainer``; one instance can
    serve concurrent requests.
    """

    def __init__(self, clients: ClientContainer) -> None:
        self.persistence = clients.persistence
        self.rendering = clients.rendering

    # ─────────────────────────────────────────────────────────
    #  QUERY
    # ─────────────────────────────────────────────────────────

    def query(self, command: QueryVisualizationsCommand) -> QueryResult:
        """Read-only lookup, grouped per visualization."""
        logger.debug(
            f"[Reconciler] Query name='{command.name}' slug='{command.slug}' "
            f"tags={command.tags}"
        )
        try:
            aggregates = self.persistence.query_visualizations_dashboards(
                command.slug, command.name, command.organization_id, command.tags,
            )
        except PersistenceError as exc:
            logger.error(f"[Reconciler] Error getting data from db: '{exc}'")
            return QueryResult(error=_infrastructure(exc))
        return QueryResult(aggregates=aggregates)

    # ─────────────────────────────────────────────────────────
    #  CREATE
    # ─────────────────────────────────────────────────────────

    def create(self, command: CreateVisualizationCommand) -> ReconciliationResult:
        """
        Create a visualization and upload all of its dashboards.

        Steps:
          1. Render + validate every template (nothing stored on failure).
          2. Store visualization + dashboards with empty slugs (one transaction).
          3. Upload dashboards one by one; compensate on the first failure.
          4. Store all returned slugs in one batched write.
        """
        logger.debug(
            f"[Reconciler] Rendering {len(command.dashboards)} templates "
            f"for visualization '{command.name}'"
        )
        try:
            rendered = render_templates(
                [(spec.template_body, spec.template_parameters)
                 for spec in command.dashboards]
            )
            ensure_dashboard_documents(rendered)
        except TemplateError as exc:
            logger.info(f"[Reconciler] Rejected template: {exc}")
            return ReconciliationResult(
                error=ReconciliationError(ErrorKind.USER_DATA, str(exc), exc),
            )

        definitions = [
            DashboardDefinition(name=spec.name, rendered_template=body)
            for spec, body in zip(command.dashboards, rendered)
        ]
        try:
            visualization, dashboards = (
                self.persistence.create_visualization_with_dashboards(
                    command.name, command.organization_id, command.tags, definitions,
                )
            )
        except PersistenceError as exc:
            logger.error(f"[Reconciler] Error creating db entries: '{exc}'")
            return ReconciliationResult(error=_infrastructure(exc))
        logger.debug(
            f"[Reconciler] Stored visualization '{visualization.slug}' "
            f"with {len(dashboards)} dashboards"
        )

        uploaded_slugs: List[str] = []
        for dashboard in dashboards:
            try:
                slug = self.rendering.upload_dashboard(
                    dashboard.rendered_template,
                    visualization.organization_id,
                    False,
                )
            except RemoteServiceError as exc:
                logger.error(
                    f"[Reconciler] Error uploading dashboard "
                    f"#{len(uploaded_slugs)} to grafana: {exc}"
                )
                return self._compensate_failed_upload(
                    visualization, dashboards, uploaded_slugs, exc,
                )
            logger.info(f"[Reconciler] Created dashboard named '{slug}'")
            uploaded_slugs.append(slug)

        dashboards = [
            dashboard.with_slug(slug)
            for dashboard, slug in zip(dashboards, uploaded_slugs)
        ]
        try:
            self.persistence.bulk_update_dashboards(dashboards)
        except PersistenceError as exc:
            # Grafana is complete; only the local slug bookkeeping lags
            logger.error(
                f"[Reconciler] Error updating db dashboard slugs for "
                f"visualization '{visualization.slug}': '{exc}'"
            )
            return ReconciliationResult(error=_infrastructure(exc))

        return ReconciliationResult(
            aggregate=VisualizationWithDashboards.of(visualization, dashboards),
        )

    def _compensate_failed_upload(
        self,
        visualization: Visualization,
        dashboards: Sequence[Dashboard],
        uploaded_slugs: Sequence[str],
        upload_error: RemoteServiceError,
    ) -> ReconciliationResult:
        """
        Undo a partially uploaded visualization.

        Dashboards uploaded so far are deleted from Grafana.  Those Grafana
        refuses to delete keep their row, updated with the slug; every other
        row is deleted.  When nothing survives in Grafana the visualization
        row is deleted too.
        """
        organization_id = visualization.organization_id
        to_update: List[Dashboard] = []
        to_delete: List[Dashboard] = []

        for dashboard, slug in zip(dashboards, uploaded_slugs):
            try:
                self.rendering.delete_dashboard(slug, organization_id)
            except RemoteServiceError as exc:
                logger.error(
                    f"[Reconciler] Error deleting grafana dashboard '{slug}' "
                    f"during cleanup: {exc}"
                )
                to_update.append(dashboard.with_slug(slug))
            else:
                logger.debug(f"[Reconciler] Deleted grafana dashboard '{slug}'")
                to_delete.append(dashboard)

        # Never uploaded, including the one that failed
        to_delete.extend(dashboards[len(uploaded_slugs):])

        if to_update:
            survivors = list(to_update)
            try:
                self.persistence.bulk_update_dashboards(to_update)
            except PersistenceError as exc:
                logger.error(
                    f"[Reconciler] Cleanup after '{upload_error}': unable to "
                    f"store slugs of dashboards left in grafana: '{exc}'"
                )
            try:
                self.persistence.bulk_delete_dashboards(to_delete)
            except PersistenceError as exc:
                logger.error(
                    f"[Reconciler] Cleanup after '{upload_error}': unable to "
                    f"delete dashboards removed from grafana: '{exc}'"
                )
                survivors.extend(to_delete)
            return ReconciliationResult(
                aggregate=VisualizationWithDashboards.of(visualization, survivors),
                error=ReconciliationError(
                    ErrorKind.CLIENT, CREATE_COMPENSATION_MESSAGE, upload_error,
                ),
            )

        try:
            self.persistence.bulk_delete_dashboards(to_delete)
        except PersistenceError as exc:
            logger.error(
                f"[Reconciler] Cleanup after '{upload_error}': unable to "
                f"delete dashboard rows: '{exc}'"
            )
        try:
            self.persistence.delete_visualization(visualization)
        except PersistenceError as exc:
            logger.error(
                f"[Reconciler] Unable to delete visualization "
                f"'{visualization.slug}' from db: '{exc}'. Returning it to user"
            )
            return ReconciliationResult(
                aggregate=VisualizationWithDashboards.of(visualization, []),
                error=ReconciliationError(
                    ErrorKind.CLIENT, CREATE_COMPENSATION_MESSAGE, upload_error,
                ),
            )

        logger.debug(
            "[Reconciler] All created data was deleted both from grafana and "
            "from database, returning the original grafana error"
        )
        return ReconciliationResult(
            aggregate=VisualizationWithDashboards.of(visualization, []),
            error=ReconciliationError(
                ErrorKind.CLIENT, str(upload_error), upload_error,
            ),
        )

    # ─────────────────────────────────────────────────────────
    #  DELETE
    # ─────────────────────────────────────────────────────────

    def delete(self, command: DeleteVisualizationCommand) -> ReconciliationResult:
        """
        Delete a visualization from Grafana first, then from the database.

        Dashboards Grafana refuses to delete stay in the database and are
        returned inside a CLIENT error so the caller can retry or audit.
        """
        slug = command.visualization_slug
        organization_id = command.organization_id
        try:
            found = self.persistence.get_visualization_with_dashboards_by_slug(
                slug, organization_id,
            )
        except PersistenceError as exc:
            logger.error(f"[Reconciler] Error getting data from db: '{exc}'")
            return ReconciliationResult(error=_infrastructure(exc))

        if found is None:
            logger.info(f"[Reconciler] Visualization '{slug}' not found in db")
            return ReconciliationResult(
                error=ReconciliationError(ErrorKind.USER_DATA, NOT_FOUND_MESSAGE),
            )

        removed: List[Dashboard] = []
        failed: List[Dashboard] = []
        for dashboard in found.dashboards:
            if not dashboard.slug:
                removed.append(dashboard)
                continue
            logger.debug(f"[Reconciler] Removing grafana dashboard '{dashboard.slug}'")
            try:
                self.rendering.delete_dashboard(dashboard.slug, organization_id)
            except RemoteServiceError as exc:
                logger.error(
                    f"[Reconciler] Error deleting grafana dashboard "
                    f"'{dashboard.slug}': {exc}"
                )
                failed.append(dashboard)
            else:
                removed.append(dashboard)

        if failed:
            try:
                self.persistence.bulk_delete_dashboards(removed)
            except PersistenceError as exc:
                logger.error(
                    f"[Reconciler] Unable to delete removed dashboards of "
                    f"'{slug}' from db: '{exc}'"
                )
            return ReconciliationResult(
                aggregate=VisualizationWithDashboards.of(found.visualization, failed),
                error=ReconciliationError(ErrorKind.CLIENT, DELETE_COMPENSATION_MESSAGE),
            )

        logger.debug(f"[Reconciler] Removing visualization '{slug}' from db")
        try:
            self.persistence.delete_visualization(found.visualization)
        except PersistenceError as exc:
            # Grafana is already empty; the leftover row must not look healthy
            logger.error(
                f"[Reconciler] Grafana dashboards of '{slug}' were removed but "
                f"the visualization could not be deleted from db: '{exc}'"
            )
            return ReconciliationResult(
                aggregate=VisualizationWithDashboards.of(found.visualization, []),
                error=ReconciliationError(
                    ErrorKind.CLIENT,
                    f"visualization '{slug}' was removed from grafana but not "
                    f"from the database",
                    exc,
                ),
            )
        logger.info(f"[Reconciler] Removed visualization '{slug}'")
        return ReconciliationResult(aggregate=found)


def _infrastructure(exc: Exception) -> ReconciliationError:
    return ReconciliationError(ErrorKind.INFRASTRUCTURE, str(exc), exc)
