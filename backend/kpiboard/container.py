"""Service wiring.

`ServiceFactory` holds the process-wide collaborators (clock, randomness)
and builds a fresh `Services` bundle around each request's session. Tests
construct their own factory with a fixed clock.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.clock import Clock, RandomSource, SystemClock, SystemRandomSource
from kpiboard.repositories import DashboardStore, EntryStore, KpiStore, TokenStore, UserDirectory
from kpiboard.services.aggregation import AggregationEngine
from kpiboard.services.dashboards import DashboardService
from kpiboard.services.kpi_entries import KpiEntryService
from kpiboard.services.kpis import KpiService
from kpiboard.services.share_tokens import ShareTokenLifecycle
from kpiboard.services.users import UserService


@dataclass
class Services:
    users: UserDirectory
    permissions: PermissionResolver
    share_links: ShareTokenLifecycle
    aggregation: AggregationEngine
    dashboards: DashboardService
    kpis: KpiService
    entries: KpiEntryService
    user_admin: UserService


class ServiceFactory:
    def __init__(self, clock: Clock | None = None, random_source: RandomSource | None = None):
        self.clock = clock or SystemClock()
        self.random_source = random_source or SystemRandomSource()

    def build(self, db: AsyncSession) -> Services:
        users = UserDirectory(db)
        dashboard_store = DashboardStore(db)
        kpi_store = KpiStore(db)
        token_store = TokenStore(db)
        entry_store = EntryStore(db)

        permissions = PermissionResolver(dashboard_store, kpi_store)
        aggregation = AggregationEngine(entry_store)
        return Services(
            users=users,
            permissions=permissions,
            share_links=ShareTokenLifecycle(
                token_store, dashboard_store, permissions, self.clock, self.random_source
            ),
            aggregation=aggregation,
            dashboards=DashboardService(
                dashboard_store, kpi_store, token_store, users, permissions
            ),
            kpis=KpiService(kpi_store, dashboard_store, permissions, aggregation),
            entries=KpiEntryService(entry_store, permissions, aggregation),
            user_admin=UserService(users, permissions),
        )
