"""Tests for the background share link cleanup."""

from types import SimpleNamespace

import pytest

from kpiboard.config import settings
from kpiboard.services import scheduler


@pytest.fixture
def fake_app(service_factory):
    return SimpleNamespace(state=SimpleNamespace(service_factory=service_factory))


@pytest.mark.asyncio
class TestShareLinkCleanup:

    async def test_run_cleanup_commits(
        self, monkeypatch, fake_app, session_factory, db_session, services, owner, dashboard, clock
    ):
        expired = await services.share_links.generate(owner, dashboard.id, ttl_days=1)
        active = await services.share_links.generate(owner, dashboard.id, ttl_days=5)
        await db_session.commit()
        clock.advance(days=2)

        monkeypatch.setattr(scheduler, "async_session", session_factory)
        assert await scheduler.run_share_link_cleanup(fake_app) == 1

        assert await services.share_links.is_expired(expired.token)
        assert not await services.share_links.is_expired(active.token)

    async def test_lifespan_without_loop(self, monkeypatch, fake_app):
        monkeypatch.setattr(settings, "share_link_cleanup_interval_seconds", 0)
        async with scheduler.lifespan(fake_app):
            pass

    async def test_lifespan_starts_and_stops_loop(self, monkeypatch, fake_app, caplog):
        monkeypatch.setattr(settings, "share_link_cleanup_interval_seconds", 3600)
        with caplog.at_level("INFO", logger="kpiboard.scheduler"):
            async with scheduler.lifespan(fake_app):
                pass
        assert "Share link cleanup scheduled every 3600 seconds" in caplog.text
        assert "Share link cleanup stopped" in caplog.text
