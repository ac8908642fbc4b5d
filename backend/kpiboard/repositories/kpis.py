from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.models.dashboard import DashboardWidget
from kpiboard.models.kpi import Kpi
from kpiboard.models.kpi_entry import KpiEntry


class KpiStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, kpi_id: str) -> Kpi | None:
        result = await self.db.execute(select(Kpi).where(Kpi.id == kpi_id))
        return result.scalar_one_or_none()

    async def get_many(self, kpi_ids: list[str]) -> dict[str, Kpi]:
        if not kpi_ids:
            return {}
        result = await self.db.execute(select(Kpi).where(Kpi.id.in_(kpi_ids)))
        return {kpi.id: kpi for kpi in result.scalars().all()}

    async def list_all(self) -> list[Kpi]:
        result = await self.db.execute(select(Kpi).order_by(Kpi.created_at.desc()))
        return list(result.scalars().all())

    async def list_by_owner(self, owner_id: str) -> list[Kpi]:
        result = await self.db.execute(
            select(Kpi).where(Kpi.owner_id == owner_id).order_by(Kpi.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, owner_id: str, fields: dict) -> Kpi:
        kpi = Kpi(owner_id=owner_id, **fields)
        self.db.add(kpi)
        await self.db.flush()
        return kpi

    async def update(self, kpi: Kpi, changes: dict) -> Kpi:
        for key, value in changes.items():
            setattr(kpi, key, value)
        await self.db.flush()
        await self.db.refresh(kpi)
        return kpi

    async def delete(self, kpi_id: str) -> None:
        """Delete a KPI with its entries and widget index rows."""
        for model in (KpiEntry, DashboardWidget):
            await self.db.execute(
                delete(model)
                .where(model.kpi_id == kpi_id)
                .execution_options(synchronize_session=False)
            )
        await self.db.execute(
            delete(Kpi)
            .where(Kpi.id == kpi_id)
            .execution_options(synchronize_session=False)
        )
