"""SQLAlchemy persistence gateway against an in-memory SQLite database."""

import uuid

import pytest
from conftest import FakeGrafana, dashboard_spec
from sqlalchemy.pool import StaticPool

from visualization_api.core.database import DatabaseManager
from visualization_api.models.visualization_models import DashboardRow
from visualization_api.services.reconciliation import (
    ClientContainer,
    CreateVisualizationCommand,
    DashboardDefinition,
    ErrorKind,
    PersistenceError,
    VisualizationReconciler,
)
from visualization_api.services.storage import SQLAlchemyPersistenceGateway

ORG = "org-1"


def sqlite_manager() -> DatabaseManager:
    return DatabaseManager(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def db_manager():
    manager = sqlite_manager()
    manager.create_all()
    yield manager
    manager.close()


@pytest.fixture
def gateway(db_manager):
    return SQLAlchemyPersistenceGateway(db_manager)


def definitions(*names):
    return [DashboardDefinition(name, f'{{"title": "{name}"}}') for name in names]


def query(gateway, slug="", name="", organization_id=ORG, tags=None):
    return gateway.query_visualizations_dashboards(slug, name, organization_id, tags or {})


class TestCreate:
    def test_assigns_identifiers_and_positions(self, gateway):
        visualization, dashboards = gateway.create_visualization_with_dashboards(
            "cluster", ORG, {"env": "prod"}, definitions("cpu", "mem"),
        )

        assert uuid.UUID(visualization.slug).version == 4
        assert visualization.organization_id == ORG
        assert visualization.tags == {"env": "prod"}
        assert [d.position for d in dashboards] == [0, 1]
        assert all(d.slug == "" for d in dashboards)
        assert all(d.visualization_id == visualization.id for d in dashboards)
        assert len({d.id for d in dashboards}) == 2

    def test_is_visible_to_queries(self, gateway):
        visualization, dashboards = gateway.create_visualization_with_dashboards(
            "cluster", ORG, {}, definitions("cpu", "mem"),
        )

        found = query(gateway)
        assert len(found) == 1
        assert found[0].visualization == visualization
        assert found[0].dashboards == dashboards


class TestQuery:
    @pytest.fixture(autouse=True)
    def seed(self, gateway):
        gateway.create_visualization_with_dashboards(
            "prod overview", ORG, {"env": "prod", "replicas": 3}, definitions("a", "b", "c"),
        )
        gateway.create_visualization_with_dashboards(
            "staging overview", ORG, {"env": "staging", "replicas": 1}, definitions("d"),
        )
        gateway.create_visualization_with_dashboards(
            "empty", ORG, {"env": "prod"}, [],
        )
        gateway.create_visualization_with_dashboards(
            "prod overview", "org-2", {"env": "prod"}, definitions("x"),
        )

    def test_groups_dashboards_in_order(self, gateway):
        found = query(gateway)

        assert [a.visualization.name for a in found] == [
            "prod overview", "staging overview", "empty",
        ]
        assert [d.name for d in found[0].dashboards] == ["a", "b", "c"]
        assert found[2].dashboards == []

    def test_string_tag_filter(self, gateway):
        found = query(gateway, tags={"env": "prod"})
        assert [a.visualization.name for a in found] == ["prod overview", "empty"]

    def test_integer_tag_filter(self, gateway):
        found = query(gateway, tags={"replicas": 1})
        assert [a.visualization.name for a in found] == ["staging overview"]

    def test_name_filter(self, gateway):
        found = query(gateway, name="prod overview")
        assert len(found) == 1
        assert found[0].visualization.organization_id == ORG

    def test_no_match(self, gateway):
        assert query(gateway, tags={"env": "qa"}) == []

    def test_get_by_slug(self, gateway):
        expected = query(gateway, name="staging overview")[0]

        assert gateway.get_visualization_with_dashboards_by_slug(
            expected.visualization.slug, ORG,
        ) == expected
        assert gateway.get_visualization_with_dashboards_by_slug(
            expected.visualization.slug, "org-2",
        ) is None


class TestWrites:
    def test_bulk_update_sets_slugs(self, gateway):
        visualization, dashboards = gateway.create_visualization_with_dashboards(
            "cluster", ORG, {}, definitions("cpu", "mem"),
        )

        gateway.bulk_update_dashboards(
            [d.with_slug(f"slug-{d.position}") for d in dashboards]
        )

        found = gateway.get_visualization_with_dashboards_by_slug(visualization.slug, ORG)
        assert [d.slug for d in found.dashboards] == ["slug-0", "slug-1"]

    def test_bulk_delete(self, gateway):
        visualization, dashboards = gateway.create_visualization_with_dashboards(
            "cluster", ORG, {}, definitions("cpu", "mem", "disk"),
        )

        gateway.bulk_delete_dashboards([dashboards[0], dashboards[2]])

        found = gateway.get_visualization_with_dashboards_by_slug(visualization.slug, ORG)
        assert [d.name for d in found.dashboards] == ["mem"]

    def test_empty_batches_are_noops(self, gateway):
        gateway.bulk_update_dashboards([])
        gateway.bulk_delete_dashboards([])

    def test_delete_visualization_removes_dashboards(self, gateway, db_manager):
        visualization, _ = gateway.create_visualization_with_dashboards(
            "cluster", ORG, {}, definitions("cpu", "mem"),
        )

        gateway.delete_visualization(visualization)

        assert query(gateway) == []
        with db_manager.session() as session:
            assert session.query(DashboardRow).count() == 0


class TestFailures:
    def test_missing_tables_raise_persistence_error(self):
        manager = sqlite_manager()
        gateway = SQLAlchemyPersistenceGateway(manager)

        with pytest.raises(PersistenceError):
            query(gateway)
        with pytest.raises(PersistenceError):
            gateway.create_visualization_with_dashboards("x", ORG, {}, definitions("a"))
        manager.close()


class TestWithReconciler:
    def test_compensation_leaves_store_consistent(self, gateway):
        grafana = FakeGrafana()
        grafana.fail_upload_at = {2}
        grafana.fail_delete = {"dashboard-2"}
        reconciler = VisualizationReconciler(ClientContainer(gateway, grafana))

        result = reconciler.create(CreateVisualizationCommand(
            name="cluster",
            organization_id=ORG,
            dashboards=[dashboard_spec("a"), dashboard_spec("b"), dashboard_spec("c")],
        ))

        assert result.error.kind is ErrorKind.CLIENT
        stored = gateway.get_visualization_with_dashboards_by_slug(
            result.aggregate.visualization.slug, ORG,
        )
        assert [(d.name, d.slug) for d in stored.dashboards] == [("b", "dashboard-2")]
        assert stored.dashboards == result.aggregate.dashboards
