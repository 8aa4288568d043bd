"""
Visualization Database Models.

Tables: visualization, dashboard.

A dashboard row's ``slug`` stays empty until Grafana accepts the upload
of its rendered template.
"""

from typing import List

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visualization_api.core.database import Base


class VisualizationRow(Base):
    """Named bundle of dashboards, scoped to one organization."""
    __tablename__ = "visualization"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    tags: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    dashboards: Mapped[List["DashboardRow"]] = relationship(
        back_populates="visualization",
        order_by="DashboardRow.position",
        passive_deletes=True,
    )


class DashboardRow(Base):
    """Rendered dashboard template belonging to one visualization."""
    __tablename__ = "dashboard"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    visualization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("visualization.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rendered_template: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    visualization: Mapped["VisualizationRow"] = relationship(back_populates="dashboards")
