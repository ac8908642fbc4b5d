"""Pydantic schemas for KPI entries and entry analytics."""

import datetime as dt

from pydantic import BaseModel


# ── Entries ─────────────────────────────────────────────────

class EntryCreate(BaseModel):
    date: dt.date
    value: float


class EntryBulkCreate(BaseModel):
    entries: list[EntryCreate]


class EntryUpdate(BaseModel):
    date: dt.date | None = None
    value: float | None = None


class EntryOut(BaseModel):
    id: int
    kpi_id: str
    date: dt.date
    value: float
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class BulkInsertResult(BaseModel):
    inserted: int


# ── Analytics ───────────────────────────────────────────────

class AggregateOut(BaseModel):
    kpi_id: str
    type: str
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    value: int | float | None = None


class MissingDatesOut(BaseModel):
    kpi_id: str
    start_date: dt.date
    end_date: dt.date
    missing_dates: list[dt.date]
    count: int


class EntryStatsOut(BaseModel):
    count: int
    earliest_date: dt.date | None = None
    latest_date: dt.date | None = None
    min: float | None = None
    max: float | None = None
    average: float | None = None
    sum: float | None = None
