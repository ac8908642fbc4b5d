"""Aggregate model imports so every mapper is registered on Base.metadata."""

from kpiboard.models.user import User, UserRole  # noqa: F401
from kpiboard.models.kpi import Kpi, KpiDirection  # noqa: F401
from kpiboard.models.kpi_entry import KpiEntry  # noqa: F401
from kpiboard.models.dashboard import (  # noqa: F401
    Dashboard,
    DashboardAccess,
    DashboardWidget,
    PermissionLevel,
)
from kpiboard.models.share_token import ShareToken  # noqa: F401

__all__ = [
    "User", "UserRole",
    "Kpi", "KpiDirection", "KpiEntry",
    "Dashboard", "DashboardAccess", "DashboardWidget", "PermissionLevel",
    "ShareToken",
]
