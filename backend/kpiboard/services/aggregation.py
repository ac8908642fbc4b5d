"""Aggregation over a KPI's dated entries.

  aggregate(kpi_id, type, start_date?, end_date?)
      sum | average | min | max   → float, or None when no entry matches
      count                       → int (0 when empty)
      latest | earliest           → value of the entry with the max / min
                                    date; same-date ties go to the most
                                    recently / least recently inserted row

  missing_dates(kpi_id, start, end)
      every calendar date in [start, end] without an entry

Date bounds are inclusive. Entries sharing a date are independent
samples: nothing is deduplicated or pre-averaged per day.

Results are cached in Redis under `kpi_aggregate:{kpi_id}:...`. Entry writes
call `invalidate(kpi_id)`; the keys are dropped once the session commits.
"""

from __future__ import annotations

import enum
from datetime import date

from sqlalchemy import func

from kpiboard.config import settings
from kpiboard.errors import ValidationError
from kpiboard.models.kpi_entry import KpiEntry
from kpiboard.repositories import EntryStore
from kpiboard.services.validation import parse_date
from kpiboard.utils.cache import cached, invalidate_on_commit

CACHE_PREFIX = "kpi_aggregate"


class AggregationType(str, enum.Enum):
    SUM = "sum"
    AVERAGE = "average"
    LATEST = "latest"
    EARLIEST = "earliest"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


_SQL_REDUCERS = {
    AggregationType.SUM: lambda: func.sum(KpiEntry.value),
    AggregationType.AVERAGE: lambda: func.avg(KpiEntry.value),
    AggregationType.MIN: lambda: func.min(KpiEntry.value),
    AggregationType.MAX: lambda: func.max(KpiEntry.value),
    AggregationType.COUNT: lambda: func.count(KpiEntry.id),
}


def parse_aggregation_type(value: AggregationType | str) -> AggregationType:
    try:
        return AggregationType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown aggregation type: {value!r}",
            details={"allowed": [t.value for t in AggregationType]},
        ) from None


def _aggregate_key(_engine, kpi_id, agg_type, start_date=None, end_date=None) -> str:
    start = start_date.isoformat() if start_date else "-"
    end = end_date.isoformat() if end_date else "-"
    return f"{kpi_id}:{agg_type.value}:{start}:{end}"


class AggregationEngine:
    def __init__(self, entries: EntryStore):
        self.entries = entries

    async def aggregate(
        self,
        kpi_id: str,
        agg_type: AggregationType | str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> float | int | None:
        agg_type = parse_aggregation_type(agg_type)
        start = parse_date(start_date, "start_date")
        end = parse_date(end_date, "end_date")
        return await self._compute(kpi_id, agg_type, start, end)

    @cached(ttl=settings.aggregate_cache_ttl, prefix=CACHE_PREFIX, key_builder=_aggregate_key)
    async def _compute(
        self,
        kpi_id: str,
        agg_type: AggregationType,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> float | int | None:
        if agg_type in (AggregationType.LATEST, AggregationType.EARLIEST):
            value = await self.entries.first_value(
                kpi_id, start_date, end_date, newest=agg_type is AggregationType.LATEST
            )
            return float(value) if value is not None else None

        result = await self.entries.reduce(
            kpi_id, _SQL_REDUCERS[agg_type](), start_date, end_date
        )
        if agg_type is AggregationType.COUNT:
            return int(result or 0)
        return float(result) if result is not None else None

    async def missing_dates(
        self,
        kpi_id: str,
        start_date: date | str,
        end_date: date | str,
    ) -> list[date]:
        start = parse_date(start_date, "start_date")
        end = parse_date(end_date, "end_date")
        if start is None or end is None:
            raise ValidationError("start_date and end_date are required")
        if start > end:
            raise ValidationError("start_date must not be after end_date")

        first, last = start.toordinal(), end.toordinal()
        if last - first + 1 > settings.missing_dates_max_days:
            raise ValidationError(
                f"Date range too long (max {settings.missing_dates_max_days} days)",
                details={"days": last - first + 1},
            )

        present = await self.entries.distinct_dates(kpi_id, start, end)
        return [
            day
            for day in map(date.fromordinal, range(first, last + 1))
            if day not in present
        ]

    async def stats(self, kpi_id: str) -> dict:
        return await self.entries.stats(kpi_id)

    def invalidate(self, kpi_id: str) -> None:
        """Drop the KPI's cached aggregates once the current transaction commits."""
        invalidate_on_commit(self.entries.db, f"{CACHE_PREFIX}:{kpi_id}:*")
