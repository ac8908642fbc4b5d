"""Tests for dashboard and KPI authorization."""

import pytest

from kpiboard.auth.permissions import level_satisfies
from kpiboard.errors import AccessDenied, AuthenticationRequired, NotFound
from kpiboard.models.dashboard import PermissionLevel
from kpiboard.models.user import UserRole


@pytest.mark.unit
class TestLevelOrdering:

    @pytest.mark.parametrize("granted,required,expected", [
        (PermissionLevel.VIEWER, PermissionLevel.VIEWER, True),
        (PermissionLevel.VIEWER, PermissionLevel.EDITOR, False),
        (PermissionLevel.VIEWER, PermissionLevel.OWNER, False),
        (PermissionLevel.EDITOR, PermissionLevel.VIEWER, True),
        (PermissionLevel.EDITOR, PermissionLevel.EDITOR, True),
        (PermissionLevel.EDITOR, PermissionLevel.OWNER, False),
        (PermissionLevel.OWNER, PermissionLevel.EDITOR, True),
        (PermissionLevel.OWNER, PermissionLevel.OWNER, True),
    ])
    def test_level_satisfies(self, granted, required, expected):
        assert level_satisfies(granted, required) is expected


@pytest.mark.asyncio
class TestDashboardPermission:

    async def test_owner_always_passes(self, services, owner, dashboard):
        for level in PermissionLevel:
            assert await services.permissions.has_dashboard_permission(owner, dashboard.id, level)

    async def test_admin_always_passes(self, services, admin, dashboard):
        assert await services.permissions.has_dashboard_permission(
            admin, dashboard.id, PermissionLevel.OWNER
        )

    async def test_no_grant_is_denied(self, services, viewer, dashboard):
        assert not await services.permissions.has_dashboard_permission(viewer, dashboard.id)
        with pytest.raises(AccessDenied):
            await services.permissions.require_dashboard_permission(viewer, dashboard.id)

    async def test_anonymous(self, services, dashboard):
        assert not await services.permissions.has_dashboard_permission(None, dashboard.id)
        with pytest.raises(AuthenticationRequired):
            await services.permissions.require_dashboard_permission(None, dashboard.id)

    async def test_missing_dashboard(self, services, owner):
        assert not await services.permissions.has_dashboard_permission(owner, "nope")
        with pytest.raises(NotFound):
            await services.permissions.require_dashboard_permission(owner, "nope")

    async def test_grant_level_is_respected(self, services, owner, viewer, dashboard):
        await services.dashboards.set_user_access(
            owner, dashboard.id, viewer.id, PermissionLevel.EDITOR
        )
        check = services.permissions.has_dashboard_permission
        assert await check(viewer, dashboard.id, PermissionLevel.VIEWER)
        assert await check(viewer, dashboard.id, PermissionLevel.EDITOR)
        assert not await check(viewer, dashboard.id, PermissionLevel.OWNER)

    async def test_effective_level(self, services, admin, owner, viewer, other_editor, dashboard):
        await services.dashboards.add_viewer(owner, dashboard.id, viewer.id)
        level_for = services.permissions.permission_level_for
        assert await level_for(admin, dashboard) == "admin"
        assert await level_for(owner, dashboard) == "owner"
        assert await level_for(viewer, dashboard) == "viewer"
        assert await level_for(other_editor, dashboard) is None


@pytest.mark.asyncio
class TestKpiAccess:

    async def test_owner_has_access(self, services, owner, kpi):
        assert await services.permissions.has_kpi_access(owner, kpi.id)

    async def test_access_through_dashboard_grant(self, services, owner, viewer, kpi, dashboard):
        assert not await services.permissions.has_kpi_access(viewer, kpi.id)
        await services.dashboards.add_viewer(owner, dashboard.id, viewer.id)
        assert await services.permissions.has_kpi_access(viewer, kpi.id)

    async def test_grant_on_unrelated_dashboard(self, services, owner, viewer, kpi):
        empty = await services.dashboards.create(owner, "Empty", [])
        await services.dashboards.add_viewer(owner, empty.id, viewer.id)
        assert not await services.permissions.has_kpi_access(viewer, kpi.id)

    async def test_removing_widget_revokes_kpi_access(
        self, services, owner, viewer, kpi, dashboard
    ):
        await services.dashboards.add_viewer(owner, dashboard.id, viewer.id)
        await services.dashboards.update(owner, dashboard.id, {"layout": []})
        assert not await services.permissions.has_kpi_access(viewer, kpi.id)

    async def test_require_kpi_owner(self, services, owner, viewer, admin, kpi, dashboard):
        await services.dashboards.add_viewer(owner, dashboard.id, viewer.id)
        assert (await services.permissions.require_kpi_owner(admin, kpi.id)).id == kpi.id
        with pytest.raises(AccessDenied):
            await services.permissions.require_kpi_owner(viewer, kpi.id)

    async def test_missing_kpi(self, services, owner):
        assert not await services.permissions.has_kpi_access(owner, "nope")
        with pytest.raises(NotFound):
            await services.permissions.require_kpi_access(owner, "nope")


@pytest.mark.asyncio
class TestRoles:

    async def test_require_role(self, services, admin, owner, viewer):
        require_role = services.permissions.require_role
        assert require_role(owner, UserRole.EDITOR) is owner
        assert require_role(admin, UserRole.EDITOR) is admin
        with pytest.raises(AccessDenied):
            require_role(viewer, UserRole.EDITOR)
        with pytest.raises(AuthenticationRequired):
            require_role(None, UserRole.EDITOR)
