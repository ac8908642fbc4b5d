"""ReportingCore: the reporting backend's public operations in one place.

The HTTP routers go through the per-concern services; scripts, jobs and
tests that only need the core behaviours use this facade:

    core = ReportingCore(ServiceFactory().build(db))
    if await core.check_permission(user, dashboard_id):
        ...

`aggregate_kpi_entries` and `find_missing_dates` are queries over entries
and do not authorize; call `require_permission` (or go through
`KpiEntryService`) first when acting for a user.
"""

from __future__ import annotations

from datetime import date

from kpiboard.container import Services
from kpiboard.models.dashboard import Dashboard, PermissionLevel
from kpiboard.models.share_token import ShareToken
from kpiboard.models.user import User
from kpiboard.services.aggregation import AggregationType
from kpiboard.services.rag import RagStatus, classify


class ReportingCore:
    def __init__(self, services: Services):
        self.services = services

    async def check_permission(
        self,
        user: User | None,
        dashboard_id: str,
        required: PermissionLevel = PermissionLevel.VIEWER,
    ) -> bool:
        return await self.services.permissions.has_dashboard_permission(
            user, dashboard_id, required
        )

    async def require_permission(
        self,
        user: User | None,
        dashboard_id: str,
        required: PermissionLevel = PermissionLevel.VIEWER,
    ) -> Dashboard:
        return await self.services.permissions.require_dashboard_permission(
            user, dashboard_id, required
        )

    async def generate_share_link(
        self, user: User | None, dashboard_id: str, ttl_days: int | None = None
    ) -> ShareToken:
        return await self.services.share_links.generate(user, dashboard_id, ttl_days)

    async def redeem_share_link(self, user: User | None, token: str) -> str:
        return await self.services.share_links.redeem(user, token)

    async def cleanup_expired_share_links(self) -> int:
        return await self.services.share_links.cleanup_expired()

    @staticmethod
    def classify_kpi_value(value: float, direction: str, red: float, amber: float) -> RagStatus:
        return classify(value, direction, red, amber)

    async def aggregate_kpi_entries(
        self,
        kpi_id: str,
        agg_type: AggregationType | str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> float | int | None:
        return await self.services.aggregation.aggregate(kpi_id, agg_type, start_date, end_date)

    async def find_missing_dates(
        self, kpi_id: str, start_date: date | str, end_date: date | str
    ) -> list[date]:
        return await self.services.aggregation.missing_dates(kpi_id, start_date, end_date)
