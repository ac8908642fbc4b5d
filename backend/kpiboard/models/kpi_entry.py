"""KpiEntry: one dated numeric observation of a KPI.

No uniqueness on (kpi_id, date): several entries may share a date and
each one counts as an independent sample in aggregations. The integer
primary key records insertion order, used to break `latest` ties.
"""

import datetime as dt

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from kpiboard.database import Base


class KpiEntry(Base):
    __tablename__ = "kpi_entries"
    __table_args__ = (
        Index("ix_kpi_entries_kpi_date", "kpi_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kpi_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)
