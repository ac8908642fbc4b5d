"""Tests for the share link lifecycle: issue, expire, redeem, sweep."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from kpiboard.container import ServiceFactory
from kpiboard.errors import (
    AccessDenied,
    AuthenticationRequired,
    Conflict,
    InvalidOrExpiredToken,
    NotFound,
    ValidationError,
)
from kpiboard.models.dashboard import DashboardAccess, PermissionLevel


class RepeatingRandom:
    """Returns the same bytes every time, to force token collisions."""

    def token_bytes(self, nbytes: int) -> bytes:
        return b"\x01" * nbytes


@pytest.mark.share_links
@pytest.mark.asyncio
class TestGenerate:

    async def test_generate(self, services, owner, dashboard, clock):
        link = await services.share_links.generate(owner, dashboard.id, ttl_days=7)

        assert link.dashboard_id == dashboard.id
        assert len(link.token) == 64
        int(link.token, 16)  # hex
        assert link.expires_at == clock.now() + timedelta(days=7)
        assert not await services.share_links.is_expired(link.token)

    async def test_default_ttl(self, services, owner, dashboard, clock):
        link = await services.share_links.generate(owner, dashboard.id)
        assert link.expires_at == clock.now() + timedelta(days=7)

    async def test_tokens_are_unique(self, services, owner, dashboard):
        first = await services.share_links.generate(owner, dashboard.id)
        second = await services.share_links.generate(owner, dashboard.id)
        assert first.token != second.token

    @pytest.mark.parametrize("ttl_days", [0, -1, 91, 2.5, "7", True])
    async def test_invalid_ttl(self, services, owner, dashboard, ttl_days):
        with pytest.raises(ValidationError):
            await services.share_links.generate(owner, dashboard.id, ttl_days=ttl_days)

    async def test_requires_owner_level(self, services, owner, viewer, dashboard):
        await services.dashboards.set_user_access(
            owner, dashboard.id, viewer.id, PermissionLevel.EDITOR
        )
        with pytest.raises(AccessDenied):
            await services.share_links.generate(viewer, dashboard.id)

    async def test_owner_level_grant_may_share(self, services, owner, other_editor, dashboard):
        await services.dashboards.set_user_access(
            owner, dashboard.id, other_editor.id, PermissionLevel.OWNER
        )
        link = await services.share_links.generate(other_editor, dashboard.id)
        assert link.dashboard_id == dashboard.id

    async def test_admin_may_share(self, services, admin, dashboard):
        assert await services.share_links.generate(admin, dashboard.id)

    async def test_missing_dashboard(self, services, owner):
        with pytest.raises(NotFound):
            await services.share_links.generate(owner, "nope")

    async def test_collision_is_conflict(self, db_session, clock, owner, dashboard):
        services = ServiceFactory(clock=clock, random_source=RepeatingRandom()).build(db_session)
        await services.share_links.generate(owner, dashboard.id)
        with pytest.raises(Conflict):
            await services.share_links.generate(owner, dashboard.id)


@pytest.mark.share_links
@pytest.mark.asyncio
class TestExpiry:

    async def test_expires_after_ttl(self, services, owner, dashboard, clock):
        link = await services.share_links.generate(owner, dashboard.id, ttl_days=7)

        clock.advance(days=6, hours=23)
        assert not await services.share_links.is_expired(link.token)

        clock.advance(hours=1)
        assert await services.share_links.is_expired(link.token)
        with pytest.raises(InvalidOrExpiredToken):
            await services.share_links.validate(link.token)

    async def test_unknown_token_is_expired(self, services):
        assert await services.share_links.is_expired("0" * 64)

    async def test_expired_token_cannot_be_redeemed(self, services, owner, viewer, dashboard, clock):
        link = await services.share_links.generate(owner, dashboard.id, ttl_days=1)
        clock.advance(days=2)

        with pytest.raises(InvalidOrExpiredToken):
            await services.share_links.redeem(viewer, link.token)
        assert not await services.permissions.has_dashboard_permission(viewer, dashboard.id)

    async def test_cleanup_removes_only_expired(self, services, owner, dashboard, clock):
        short = [await services.share_links.generate(owner, dashboard.id, ttl_days=1) for _ in range(3)]
        long = await services.share_links.generate(owner, dashboard.id, ttl_days=30)

        clock.advance(days=2)
        assert await services.share_links.cleanup_expired() == 3
        assert await services.share_links.cleanup_expired() == 0

        assert not await services.share_links.is_expired(long.token)
        remaining = await services.share_links.list_for_dashboard(owner, dashboard.id)
        assert [link.id for link in remaining] == [long.id]
        for link in short:
            assert await services.share_links.is_expired(link.token)


@pytest.mark.share_links
@pytest.mark.asyncio
class TestRedeem:

    async def test_redeem_grants_viewer(self, services, owner, viewer, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)

        dashboard_id = await services.share_links.redeem(viewer, link.token)

        assert dashboard_id == dashboard.id
        grant = await services.dashboards.dashboards.get_access(dashboard.id, viewer.id)
        assert grant.permission_level == PermissionLevel.VIEWER

    async def test_second_redeem_fails(self, services, owner, viewer, other_editor, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        await services.share_links.redeem(viewer, link.token)

        with pytest.raises(InvalidOrExpiredToken):
            await services.share_links.redeem(other_editor, link.token)
        with pytest.raises(InvalidOrExpiredToken):
            await services.share_links.redeem(viewer, link.token)
        assert not await services.permissions.has_dashboard_permission(
            other_editor, dashboard.id
        )

    async def test_conditional_delete_succeeds_once(self, services, owner, dashboard, clock):
        link = await services.share_links.generate(owner, dashboard.id)
        tokens = services.share_links.tokens

        assert await tokens.delete_if_active(link.id, clock.now()) is True
        assert await tokens.delete_if_active(link.id, clock.now()) is False

    async def test_concurrent_redeem_has_one_winner(
        self, monkeypatch, db_session, services, service_factory, owner, viewer, other_editor, dashboard
    ):
        link = await services.share_links.generate(owner, dashboard.id)
        loser = service_factory.build(db_session).share_links
        find_by_token = loser.tokens.find_by_token

        async def found_then_overtaken(token):
            # The other caller redeems between our lookup and our delete
            row = await find_by_token(token)
            await services.share_links.redeem(viewer, token)
            return row

        monkeypatch.setattr(loser.tokens, "find_by_token", found_then_overtaken)

        with pytest.raises(InvalidOrExpiredToken):
            await loser.redeem(other_editor, link.token)

        grants = await db_session.execute(
            select(DashboardAccess.user_id).where(DashboardAccess.dashboard_id == dashboard.id)
        )
        assert grants.scalars().all() == [viewer.id]
        assert await services.share_links.is_expired(link.token)

    async def test_redeem_does_not_downgrade(self, services, owner, viewer, dashboard):
        await services.dashboards.set_user_access(
            owner, dashboard.id, viewer.id, PermissionLevel.EDITOR
        )
        link = await services.share_links.generate(owner, dashboard.id)

        await services.share_links.redeem(viewer, link.token)

        grant = await services.dashboards.dashboards.get_access(dashboard.id, viewer.id)
        assert grant.permission_level == PermissionLevel.EDITOR

    async def test_owner_redeeming_gets_no_grant(self, services, owner, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        assert await services.share_links.redeem(owner, link.token) == dashboard.id
        assert await services.dashboards.dashboards.get_access(dashboard.id, owner.id) is None

    async def test_anonymous_redeem(self, services, owner, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        with pytest.raises(AuthenticationRequired):
            await services.share_links.redeem(None, link.token)
        # token survives a rejected attempt
        assert not await services.share_links.is_expired(link.token)

    async def test_unknown_token(self, services, viewer):
        with pytest.raises(InvalidOrExpiredToken):
            await services.share_links.redeem(viewer, "f" * 64)

    async def test_redeemed_viewer_sees_dashboard_kpis(self, services, owner, viewer, kpi, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        await services.share_links.redeem(viewer, link.token)
        assert await services.permissions.has_kpi_access(viewer, kpi.id)


@pytest.mark.share_links
@pytest.mark.asyncio
class TestManagement:

    async def test_revoke(self, services, owner, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        await services.share_links.revoke(owner, dashboard.id, link.id)
        assert await services.share_links.is_expired(link.token)

    async def test_revoke_wrong_dashboard(self, services, owner, dashboard):
        other = await services.dashboards.create(owner, "Other", [])
        link = await services.share_links.generate(owner, dashboard.id)
        with pytest.raises(NotFound):
            await services.share_links.revoke(owner, other.id, link.id)

    async def test_stats(self, services, owner, dashboard, clock):
        await services.share_links.generate(owner, dashboard.id, ttl_days=1)
        await services.share_links.generate(owner, dashboard.id, ttl_days=10)
        clock.advance(days=2)

        stats = await services.share_links.stats(owner, dashboard.id)
        assert stats == {"total": 2, "active": 1, "expired": 1}

    async def test_list_requires_owner_level(self, services, owner, viewer, dashboard):
        await services.dashboards.add_viewer(owner, dashboard.id, viewer.id)
        with pytest.raises(AccessDenied):
            await services.share_links.list_for_dashboard(viewer, dashboard.id)

    async def test_deleting_dashboard_removes_links(self, services, owner, dashboard):
        link = await services.share_links.generate(owner, dashboard.id)
        await services.dashboards.delete(owner, dashboard.id)
        assert await services.share_links.is_expired(link.token)
