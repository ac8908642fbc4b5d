from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.models.dashboard import (
    Dashboard,
    DashboardAccess,
    DashboardWidget,
    PermissionLevel,
)
from kpiboard.models.user import User


class DashboardStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Dashboards ──────────────────────────────────────────

    async def get(self, dashboard_id: str) -> Dashboard | None:
        result = await self.db.execute(
            select(Dashboard).where(Dashboard.id == dashboard_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self, name: str, description: str, layout: list[dict], owner_id: str
    ) -> Dashboard:
        dashboard = Dashboard(
            name=name, description=description, layout=layout, owner_id=owner_id
        )
        self.db.add(dashboard)
        await self.db.flush()
        await self.replace_widgets(dashboard.id, layout)
        return dashboard

    async def update(self, dashboard: Dashboard, changes: dict) -> Dashboard:
        for key, value in changes.items():
            setattr(dashboard, key, value)
        if "layout" in changes:
            await self.replace_widgets(dashboard.id, changes["layout"])
        await self.db.flush()
        await self.db.refresh(dashboard)
        return dashboard

    async def delete(self, dashboard_id: str) -> None:
        for model in (DashboardAccess, DashboardWidget):
            await self.db.execute(
                delete(model)
                .where(model.dashboard_id == dashboard_id)
                .execution_options(synchronize_session=False)
            )
        await self.db.execute(
            delete(Dashboard)
            .where(Dashboard.id == dashboard_id)
            .execution_options(synchronize_session=False)
        )

    async def list_visible_to(self, user_id: str) -> list[Dashboard]:
        """Dashboards the user owns or holds any grant on, newest first."""
        granted = select(DashboardAccess.dashboard_id).where(
            DashboardAccess.user_id == user_id
        )
        result = await self.db.execute(
            select(Dashboard)
            .where(or_(Dashboard.owner_id == user_id, Dashboard.id.in_(granted)))
            .order_by(Dashboard.created_at.desc())
        )
        return list(result.scalars().all())

    # ── Widget index ────────────────────────────────────────

    async def replace_widgets(self, dashboard_id: str, layout: list[dict]) -> None:
        await self.db.execute(
            delete(DashboardWidget)
            .where(DashboardWidget.dashboard_id == dashboard_id)
            .execution_options(synchronize_session=False)
        )
        for position, widget in enumerate(layout):
            self.db.add(DashboardWidget(
                dashboard_id=dashboard_id,
                kpi_id=widget["kpi_id"],
                position=position,
            ))
        await self.db.flush()

    async def find_by_kpi(self, kpi_id: str) -> list[Dashboard]:
        result = await self.db.execute(
            select(Dashboard)
            .where(Dashboard.id.in_(
                select(DashboardWidget.dashboard_id).where(DashboardWidget.kpi_id == kpi_id)
            ))
        )
        return list(result.scalars().all())

    async def kpi_visible_to(self, kpi_id: str, user_id: str) -> bool:
        """True if a dashboard the user owns or is granted on shows this KPI."""
        granted = select(DashboardAccess.dashboard_id).where(
            DashboardAccess.user_id == user_id
        )
        result = await self.db.execute(
            select(DashboardWidget.id)
            .join(Dashboard, Dashboard.id == DashboardWidget.dashboard_id)
            .where(
                DashboardWidget.kpi_id == kpi_id,
                or_(Dashboard.owner_id == user_id, Dashboard.id.in_(granted)),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    # ── Access grants ───────────────────────────────────────

    async def get_access(self, dashboard_id: str, user_id: str) -> DashboardAccess | None:
        result = await self.db.execute(
            select(DashboardAccess).where(
                DashboardAccess.dashboard_id == dashboard_id,
                DashboardAccess.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_access(
        self, dashboard_id: str, user_id: str, level: PermissionLevel
    ) -> DashboardAccess:
        grant = DashboardAccess(
            dashboard_id=dashboard_id, user_id=user_id, permission_level=level
        )
        self.db.add(grant)
        await self.db.flush()
        return grant

    async def remove_access(self, dashboard_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            delete(DashboardAccess)
            .where(
                DashboardAccess.dashboard_id == dashboard_id,
                DashboardAccess.user_id == user_id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def list_access(self, dashboard_id: str) -> list[tuple[DashboardAccess, User]]:
        result = await self.db.execute(
            select(DashboardAccess, User)
            .join(User, User.id == DashboardAccess.user_id)
            .where(DashboardAccess.dashboard_id == dashboard_id)
            .order_by(DashboardAccess.created_at.desc())
        )
        return [(row[0], row[1]) for row in result.all()]
