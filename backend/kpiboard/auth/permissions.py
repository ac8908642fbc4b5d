"""Dashboard and KPI authorization.

Design:
  - `UserRole` is the coarse capability: admin bypasses every check,
    editors may create dashboards and KPIs, viewers only consume.
  - `PermissionLevel` is the per-dashboard capability held through a
    `DashboardAccess` grant. Levels are totally ordered
    viewer < editor < owner; the dashboard's owner implicitly holds `owner`.
  - KPI visibility follows dashboards: a user may read a KPI they own or
    one shown on any dashboard they own or are granted on. The lookup goes
    through the `dashboard_widgets` index, never through layout JSON.

Two flavours of every check:
  has_*      → bool, never raises (used for listings / effective levels)
  require_*  → returns the loaded resource or raises
               AuthenticationRequired / NotFound / AccessDenied
"""

from __future__ import annotations

from kpiboard.errors import AccessDenied, AuthenticationRequired, NotFound
from kpiboard.models.dashboard import Dashboard, PermissionLevel
from kpiboard.models.kpi import Kpi
from kpiboard.models.user import User, UserRole
from kpiboard.repositories import DashboardStore, KpiStore


# ── Level ordering ──────────────────────────────────────────

_LEVEL_RANK: dict[PermissionLevel, int] = {
    PermissionLevel.VIEWER: 1,
    PermissionLevel.EDITOR: 2,
    PermissionLevel.OWNER: 3,
}


def level_rank(level: PermissionLevel) -> int:
    return _LEVEL_RANK[PermissionLevel(level)]


def level_satisfies(granted: PermissionLevel, required: PermissionLevel) -> bool:
    """True iff a grant at `granted` covers an action needing `required`."""
    return level_rank(granted) >= level_rank(required)


# ── Resolver ────────────────────────────────────────────────

class PermissionResolver:
    def __init__(self, dashboards: DashboardStore, kpis: KpiStore):
        self.dashboards = dashboards
        self.kpis = kpis

    # -- dashboards --

    async def has_dashboard_permission(
        self,
        user: User | None,
        dashboard_id: str,
        required: PermissionLevel = PermissionLevel.VIEWER,
    ) -> bool:
        if user is None:
            return False
        if user.is_admin:
            return True
        dashboard = await self.dashboards.get(dashboard_id)
        if dashboard is None:
            return False
        return await self._dashboard_allows(user, dashboard, required)

    async def require_dashboard_permission(
        self,
        user: User | None,
        dashboard_id: str,
        required: PermissionLevel = PermissionLevel.VIEWER,
    ) -> Dashboard:
        self.require_user(user)
        dashboard = await self.dashboards.get(dashboard_id)
        if dashboard is None:
            raise NotFound("Dashboard", dashboard_id)
        if user.is_admin or await self._dashboard_allows(user, dashboard, required):
            return dashboard
        raise AccessDenied(f"Requires {PermissionLevel(required).value} access to this dashboard")

    async def permission_level_for(self, user: User, dashboard: Dashboard) -> str | None:
        """Effective level reported alongside a dashboard."""
        if user.is_admin:
            return "admin"
        if dashboard.owner_id == user.id:
            return PermissionLevel.OWNER.value
        grant = await self.dashboards.get_access(dashboard.id, user.id)
        return grant.permission_level.value if grant else None

    async def _dashboard_allows(
        self, user: User, dashboard: Dashboard, required: PermissionLevel
    ) -> bool:
        if dashboard.owner_id == user.id:
            return True
        grant = await self.dashboards.get_access(dashboard.id, user.id)
        if grant is None:
            return False
        return level_satisfies(grant.permission_level, required)

    # -- kpis --

    async def has_kpi_access(self, user: User | None, kpi_id: str) -> bool:
        if user is None:
            return False
        if user.is_admin:
            return True
        kpi = await self.kpis.get(kpi_id)
        if kpi is None:
            return False
        return await self._kpi_visible(user, kpi)

    async def require_kpi_access(self, user: User | None, kpi_id: str) -> Kpi:
        self.require_user(user)
        kpi = await self.kpis.get(kpi_id)
        if kpi is None:
            raise NotFound("KPI", kpi_id)
        if user.is_admin or await self._kpi_visible(user, kpi):
            return kpi
        raise AccessDenied("No dashboard grants access to this KPI")

    async def require_kpi_owner(self, user: User | None, kpi_id: str) -> Kpi:
        """Mutations on a KPI or its entries: owner or admin only."""
        self.require_user(user)
        kpi = await self.kpis.get(kpi_id)
        if kpi is None:
            raise NotFound("KPI", kpi_id)
        if user.is_admin or kpi.owner_id == user.id:
            return kpi
        raise AccessDenied("Only the KPI owner can modify it")

    async def _kpi_visible(self, user: User, kpi: Kpi) -> bool:
        if kpi.owner_id == user.id:
            return True
        return await self.dashboards.kpi_visible_to(kpi.id, user.id)

    # -- roles --

    @staticmethod
    def require_user(user: User | None) -> User:
        if user is None:
            raise AuthenticationRequired()
        return user

    @staticmethod
    def require_role(user: User | None, *roles: UserRole) -> User:
        if user is None:
            raise AuthenticationRequired()
        if user.is_admin or user.role in roles:
            return user
        raise AccessDenied(f"Requires role: {', '.join(UserRole(r).value for r in roles)}")
