"""Background task scheduler: sweeps expired share links.

Uses FastAPI's lifespan context to start/stop an asyncio.sleep loop that
fires every SHARE_LINK_CLEANUP_INTERVAL_SECONDS.

Expired links are already unusable (validate/redeem compare against the
clock); the sweep only reclaims the rows.

Configuration:
    SHARE_LINK_CLEANUP_INTERVAL_SECONDS=3600   (0 disables the loop)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kpiboard.config import settings
from kpiboard.database import async_session
from kpiboard.utils.cache import close_redis

logger = logging.getLogger("kpiboard.scheduler")


async def run_share_link_cleanup(app: FastAPI) -> int:
    """Delete every expired share link in one transaction."""
    factory = app.state.service_factory
    async with async_session() as db:
        try:
            removed = await factory.build(db).share_links.cleanup_expired()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return removed


async def _scheduler_loop(app: FastAPI, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await run_share_link_cleanup(app)
            logger.info("Share link cleanup removed %d rows", removed)
        except Exception:
            logger.exception("Unhandled error in share link cleanup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the cleanup loop on startup, cancel on shutdown."""
    interval = settings.share_link_cleanup_interval_seconds
    task = None
    if interval > 0:
        task = asyncio.create_task(_scheduler_loop(app, interval))
        logger.info("Share link cleanup scheduled every %d seconds", interval)
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Share link cleanup stopped")
        await close_redis()
