"""SQLAlchemy-backed repositories.

Each store wraps one AsyncSession and exposes only the lookups the core
needs. Stores never commit: the request-scoped session owns the
transaction (see `kpiboard.database.get_db`).
"""

from kpiboard.repositories.dashboards import DashboardStore
from kpiboard.repositories.entries import EntryStore
from kpiboard.repositories.kpis import KpiStore
from kpiboard.repositories.tokens import TokenStore
from kpiboard.repositories.users import UserDirectory

__all__ = ["DashboardStore", "EntryStore", "KpiStore", "TokenStore", "UserDirectory"]
