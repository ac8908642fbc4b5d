"""Share-link lifecycle: generate → (redeem | expire).

  active ──redeem──▶ redeemed   (row deleted, viewer grant created)
  active ──expiry──▶ expired    (row deleted by cleanup_expired)

Redemption is single-use. The linearization point is the conditional
DELETE in `TokenStore.delete_if_active`: only the caller whose DELETE
removes the row goes on to create the grant; a concurrent loser sees zero
affected rows and gets InvalidOrExpiredToken. Token deletion and grant
creation share the request transaction, so any later failure rolls both
back.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.clock import Clock, RandomSource
from kpiboard.config import settings
from kpiboard.errors import Conflict, InvalidOrExpiredToken, NotFound, ValidationError
from kpiboard.models.dashboard import PermissionLevel
from kpiboard.models.share_token import ShareToken
from kpiboard.models.user import User
from kpiboard.repositories import DashboardStore, TokenStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits → 64 hex chars


def _redact(token: str) -> str:
    return f"{token[:6]}..."


class ShareTokenLifecycle:
    def __init__(
        self,
        tokens: TokenStore,
        dashboards: DashboardStore,
        permissions: PermissionResolver,
        clock: Clock,
        random_source: RandomSource,
    ):
        self.tokens = tokens
        self.dashboards = dashboards
        self.permissions = permissions
        self.clock = clock
        self.random_source = random_source

    # ── Issue ───────────────────────────────────────────────

    async def generate(
        self,
        user: User | None,
        dashboard_id: str,
        ttl_days: int | None = None,
    ) -> ShareToken:
        """Issue a share link for a dashboard (owner-level permission)."""
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )

        if ttl_days is None:
            ttl_days = settings.share_link_ttl_days
        if (
            isinstance(ttl_days, bool)
            or not isinstance(ttl_days, int)
            or not 1 <= ttl_days <= settings.share_link_max_ttl_days
        ):
            raise ValidationError(
                f"ttl_days must be an integer between 1 and {settings.share_link_max_ttl_days}"
            )

        token = self.random_source.token_bytes(TOKEN_BYTES).hex()
        if await self.tokens.find_by_token(token) is not None:
            raise Conflict("Share token collision, retry")

        now = self.clock.now()
        try:
            row = await self.tokens.create(
                dashboard_id=dashboard_id,
                token=token,
                expires_at=now + timedelta(days=ttl_days),
                created_at=now,
            )
        except IntegrityError:
            raise Conflict("Share token collision, retry") from None

        logger.info(
            "Share link %s issued for dashboard %s by %s (expires %s)",
            _redact(token), dashboard_id, user.id, row.expires_at.isoformat(),
        )
        return row

    # ── Inspect ─────────────────────────────────────────────

    async def is_expired(self, token: str) -> bool:
        """True when the token is unknown (redeemed / swept) or past expiry."""
        row = await self.tokens.find_by_token(token)
        return row is None or row.expires_at <= self.clock.now()

    async def validate(self, token: str) -> ShareToken:
        row = await self.tokens.find_by_token(token)
        if row is None or row.expires_at <= self.clock.now():
            raise InvalidOrExpiredToken()
        return row

    # ── Redeem ──────────────────────────────────────────────

    async def redeem(self, user: User | None, token: str) -> str:
        """Consume a token and grant the caller viewer access.

        Returns the dashboard id. An existing grant (at any level) is left
        untouched, and the dashboard owner never receives a grant row.
        """
        self.permissions.require_user(user)

        row = await self.tokens.find_by_token(token)
        if row is None:
            raise InvalidOrExpiredToken()
        dashboard_id = row.dashboard_id

        if not await self.tokens.delete_if_active(row.id, self.clock.now()):
            raise InvalidOrExpiredToken()

        dashboard = await self.dashboards.get(dashboard_id)
        if dashboard is None:
            raise InvalidOrExpiredToken()

        if dashboard.owner_id != user.id:
            existing = await self.dashboards.get_access(dashboard_id, user.id)
            if existing is None:
                try:
                    await self.dashboards.add_access(
                        dashboard_id, user.id, PermissionLevel.VIEWER
                    )
                except IntegrityError:
                    raise Conflict("Access grant was created concurrently, retry") from None

        logger.info(
            "Share link %s redeemed by %s for dashboard %s",
            _redact(token), user.id, dashboard_id,
        )
        return dashboard_id

    # ── Expiry ──────────────────────────────────────────────

    async def cleanup_expired(self) -> int:
        removed = await self.tokens.delete_expired(self.clock.now())
        if removed:
            logger.info("Removed %d expired share links", removed)
        return removed

    # ── Management (owner-level) ────────────────────────────

    async def list_for_dashboard(self, user: User | None, dashboard_id: str) -> list[ShareToken]:
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        return await self.tokens.find_by_dashboard(dashboard_id)

    async def revoke(self, user: User | None, dashboard_id: str, token_id: str) -> None:
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        row = await self.tokens.get(token_id)
        if row is None or row.dashboard_id != dashboard_id:
            raise NotFound("Share link", token_id)
        await self.tokens.delete(token_id)
        logger.info("Share link %s revoked by %s", _redact(row.token), user.id)

    async def stats(self, user: User | None, dashboard_id: str) -> dict:
        await self.permissions.require_dashboard_permission(
            user, dashboard_id, PermissionLevel.OWNER
        )
        return await self.tokens.counts_for_dashboard(dashboard_id, self.clock.now())
