from datetime import date

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.models.kpi_entry import KpiEntry


class EntryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _window(stmt, kpi_id: str, start_date: date | None, end_date: date | None):
        stmt = stmt.where(KpiEntry.kpi_id == kpi_id)
        if start_date is not None:
            stmt = stmt.where(KpiEntry.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(KpiEntry.date <= end_date)
        return stmt

    async def get(self, entry_id: int) -> KpiEntry | None:
        result = await self.db.execute(select(KpiEntry).where(KpiEntry.id == entry_id))
        return result.scalar_one_or_none()

    async def create(self, kpi_id: str, entry_date: date, value: float) -> KpiEntry:
        entry = KpiEntry(kpi_id=kpi_id, date=entry_date, value=value)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def bulk_create(self, kpi_id: str, rows: list[tuple[date, float]]) -> int:
        self.db.add_all([KpiEntry(kpi_id=kpi_id, date=d, value=v) for d, v in rows])
        await self.db.flush()
        return len(rows)

    async def update(self, entry: KpiEntry, changes: dict) -> KpiEntry:
        for key, value in changes.items():
            setattr(entry, key, value)
        await self.db.flush()
        await self.db.refresh(entry)
        return entry

    async def delete(self, entry_id: int) -> None:
        await self.db.execute(
            delete(KpiEntry)
            .where(KpiEntry.id == entry_id)
            .execution_options(synchronize_session=False)
        )

    async def find(
        self, kpi_id: str, start_date: date | None = None, end_date: date | None = None
    ) -> list[KpiEntry]:
        stmt = self._window(select(KpiEntry), kpi_id, start_date, end_date)
        result = await self.db.execute(stmt.order_by(KpiEntry.date, KpiEntry.id))
        return list(result.scalars().all())

    async def reduce(
        self, kpi_id: str, column_expr, start_date: date | None, end_date: date | None
    ):
        """Run a single SQL aggregate (SUM/AVG/MIN/MAX/COUNT) over the window."""
        stmt = self._window(select(column_expr), kpi_id, start_date, end_date)
        return await self.db.scalar(stmt)

    async def first_value(
        self, kpi_id: str, start_date: date | None, end_date: date | None, newest: bool
    ) -> float | None:
        stmt = self._window(select(KpiEntry.value), kpi_id, start_date, end_date)
        if newest:
            stmt = stmt.order_by(KpiEntry.date.desc(), KpiEntry.id.desc())
        else:
            stmt = stmt.order_by(KpiEntry.date.asc(), KpiEntry.id.asc())
        return await self.db.scalar(stmt.limit(1))

    async def distinct_dates(self, kpi_id: str, start_date: date, end_date: date) -> set[date]:
        stmt = self._window(select(KpiEntry.date).distinct(), kpi_id, start_date, end_date)
        result = await self.db.execute(stmt)
        return {row[0] for row in result.all()}

    async def stats(self, kpi_id: str) -> dict:
        result = await self.db.execute(
            select(
                func.count(KpiEntry.id),
                func.min(KpiEntry.date),
                func.max(KpiEntry.date),
                func.min(KpiEntry.value),
                func.max(KpiEntry.value),
                func.avg(KpiEntry.value),
                func.sum(KpiEntry.value),
            ).where(KpiEntry.kpi_id == kpi_id)
        )
        count, earliest, latest, min_v, max_v, avg_v, sum_v = result.one()
        return {
            "count": int(count or 0),
            "earliest_date": earliest,
            "latest_date": latest,
            "min": min_v,
            "max": max_v,
            "average": float(avg_v) if avg_v is not None else None,
            "sum": sum_v,
        }
