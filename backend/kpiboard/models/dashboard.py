"""Dashboards, their widget index, and explicit access grants.

`Dashboard.layout` keeps the ordered widget descriptors exactly as the
client sent them:
    [{"kpi_id": "...", "x": 0, "y": 0, "w": 4, "h": 2, "title": "MRR"}, ...]

`DashboardWidget` mirrors the kpi references of that layout, one row per
descriptor, and is rewritten in the same transaction as every layout
write. Permission checks query it instead of decoding layouts.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.database import Base


class PermissionLevel(str, enum.Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"


class Dashboard(Base):
    __tablename__ = "dashboards"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    layout: Mapped[list] = mapped_column(JSON, default=list)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class DashboardWidget(Base):
    __tablename__ = "dashboard_widgets"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    dashboard_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dashboards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    kpi_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("kpis.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    # Index of the descriptor inside Dashboard.layout
    position: Mapped[int] = mapped_column(Integer, nullable=False)


class DashboardAccess(Base):
    __tablename__ = "dashboard_access"
    __table_args__ = (
        UniqueConstraint("dashboard_id", "user_id", name="uq_dashboard_access_user"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    dashboard_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dashboards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    permission_level: Mapped[PermissionLevel] = mapped_column(
        SAEnum(PermissionLevel), default=PermissionLevel.VIEWER, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
