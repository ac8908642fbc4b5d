"""Dashboard CRUD and access management.

Every operation authorizes first, then validates, then writes. Layout
writes always go through `DashboardStore.replace_widgets` so the
`dashboard_widgets` index matches `Dashboard.layout` within the same
transaction.
"""

from __future__ import annotations

import logging

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.errors import AccessDenied, NotFound, ValidationError
from kpiboard.models.dashboard import Dashboard, DashboardAccess, PermissionLevel
from kpiboard.models.user import User, UserRole
from kpiboard.repositories import DashboardStore, KpiStore, TokenStore, UserDirectory
from kpiboard.services.validation import validate_description, validate_layout, validate_name

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(
        self,
        dashboards: DashboardStore,
        kpis: KpiStore,
        tokens: TokenStore,
        users: UserDirectory,
        permissions: PermissionResolver,
    ):
        self.dashboards = dashboards
        self.kpis = kpis
        self.tokens = tokens
        self.users = users
        self.permissions = permissions

    async def _check_layout_kpis(self, user: User, layout: list[dict]) -> None:
        """Every referenced KPI must exist and be readable by the author."""
        kpi_ids = list(dict.fromkeys(w["kpi_id"] for w in layout))
        found = await self.kpis.get_many(kpi_ids)
        for kpi_id in kpi_ids:
            if kpi_id not in found:
                raise NotFound("KPI", kpi_id)
            if not await self.permissions.has_kpi_access(user, kpi_id):
                raise AccessDenied(f"No access to KPI {kpi_id}")

    # ── CRUD ────────────────────────────────────────────────

    async def create(
        self,
        user: User | None,
        name: str,
        layout: list[dict],
        description: str | None = None,
    ) -> Dashboard:
        self.permissions.require_role(user, UserRole.EDITOR)
        name = validate_name(name)
        description = validate_description(description)
        layout = validate_layout(layout)
        await self._check_layout_kpis(user, layout)

        dashboard = await self.dashboards.create(name, description, layout, user.id)
        logger.info("Dashboard %s created by %s", dashboard.id, user.id)
        return dashboard

    async def get(self, user: User | None, dashboard_id: str) -> dict:
        dashboard = await self.permissions.require_dashboard_permission(user, dashboard_id)
        return {
            "dashboard": dashboard,
            "permission_level": await self.permissions.permission_level_for(user, dashboard),
            "users": await self.dashboards.list_access(dashboard_id),
        }

    async def list(self, user: User | None) -> list[Dashboard]:
        self.permissions.require_user(user)
        return await self.dashboards.list_visible_to(user.id)

    async def update(self, user: User | None, dashboard_id: str, changes: dict) -> Dashboard:
        dashboard = await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )

        updates: dict = {}
        if changes.get("name") is not None:
            updates["name"] = validate_name(changes["name"])
        if changes.get("description") is not None:
            updates["description"] = validate_description(changes["description"])
        if changes.get("layout") is not None:
            layout = validate_layout(changes["layout"])
            await self._check_layout_kpis(user, layout)
            updates["layout"] = layout

        if not updates:
            return dashboard
        return await self.dashboards.update(dashboard, updates)

    async def delete(self, user: User | None, dashboard_id: str) -> None:
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        await self.tokens.delete_for_dashboard(dashboard_id)
        await self.dashboards.delete(dashboard_id)
        logger.info("Dashboard %s deleted by %s", dashboard_id, user.id)

    # ── Access grants ───────────────────────────────────────

    async def _target_user(self, dashboard: Dashboard, user_id: str) -> User:
        target = await self.users.get(user_id)
        if target is None:
            raise NotFound("User", user_id)
        if target.id == dashboard.owner_id:
            raise ValidationError("The dashboard owner already has full access")
        return target

    async def add_viewer(
        self, user: User | None, dashboard_id: str, viewer_id: str
    ) -> DashboardAccess:
        """Grant viewer access unless the user already holds a grant."""
        dashboard = await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        await self._target_user(dashboard, viewer_id)

        existing = await self.dashboards.get_access(dashboard_id, viewer_id)
        if existing is not None:
            return existing
        return await self.dashboards.add_access(dashboard_id, viewer_id, PermissionLevel.VIEWER)

    async def set_user_access(
        self,
        user: User | None,
        dashboard_id: str,
        target_id: str,
        level: PermissionLevel | str,
    ) -> DashboardAccess:
        """Create or change a user's grant to exactly `level`."""
        dashboard = await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        try:
            level = PermissionLevel(level)
        except ValueError:
            raise ValidationError(f"Invalid permission level: {level!r}") from None
        await self._target_user(dashboard, target_id)

        existing = await self.dashboards.get_access(dashboard_id, target_id)
        if existing is None:
            return await self.dashboards.add_access(dashboard_id, target_id, level)
        existing.permission_level = level
        return existing

    async def remove_viewer(self, user: User | None, dashboard_id: str, target_id: str) -> None:
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        if not await self.dashboards.remove_access(dashboard_id, target_id):
            raise NotFound("Dashboard access", target_id)

    async def list_users(
        self, user: User | None, dashboard_id: str
    ) -> list[tuple[DashboardAccess, User]]:
        await self.permissions.require_dashboard_permission(user, dashboard_id)
        return await self.dashboards.list_access(dashboard_id)
