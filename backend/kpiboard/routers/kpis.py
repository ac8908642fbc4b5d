"""KPI router — definitions, status, entries, and analytics.

Endpoints:
    GET    /api/kpis/                          KPIs owned by caller (admin: all)
    POST   /api/kpis/                          Create a KPI
    GET    /api/kpis/{kpi_id}                  Single KPI
    PATCH  /api/kpis/{kpi_id}                  Partial update
    DELETE /api/kpis/{kpi_id}                  Delete KPI, entries, widgets
    GET    /api/kpis/{kpi_id}/status           Latest value + RAG status
    GET    /api/kpis/{kpi_id}/entries          Entries in a date window
    POST   /api/kpis/{kpi_id}/entries          Add one entry
    POST   /api/kpis/{kpi_id}/entries/bulk     Add many entries atomically
    GET    /api/kpis/{kpi_id}/aggregate        sum/average/min/max/count/latest/earliest
    GET    /api/kpis/{kpi_id}/missing-dates    Dates without an entry
    GET    /api/kpis/{kpi_id}/stats            Entry statistics
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from kpiboard.auth.deps import get_current_user, get_services
from kpiboard.container import Services
from kpiboard.models.user import User
from kpiboard.schemas.entry import (
    AggregateOut,
    BulkInsertResult,
    EntryBulkCreate,
    EntryCreate,
    EntryOut,
    EntryStatsOut,
    MissingDatesOut,
)
from kpiboard.schemas.kpi import KpiCreate, KpiOut, KpiStatusOut, KpiUpdate

router = APIRouter()


# ── KPI CRUD ─────────────────────────────────────────────────

@router.get("/", response_model=list[KpiOut])
async def list_kpis(
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.kpis.list(user)


@router.post("/", response_model=KpiOut, status_code=status.HTTP_201_CREATED)
async def create_kpi(
    body: KpiCreate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.kpis.create(user, body.model_dump())


@router.get("/{kpi_id}", response_model=KpiOut)
async def get_kpi(
    kpi_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.kpis.get(user, kpi_id)


@router.patch("/{kpi_id}", response_model=KpiOut)
async def update_kpi(
    kpi_id: str,
    body: KpiUpdate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.kpis.update(user, kpi_id, body.model_dump(exclude_unset=True))


@router.delete("/{kpi_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_kpi(
    kpi_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.kpis.delete(user, kpi_id)


@router.get("/{kpi_id}/status", response_model=KpiStatusOut)
async def kpi_status(
    kpi_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.kpis.status(user, kpi_id)


# ── Entries ──────────────────────────────────────────────────

@router.get("/{kpi_id}/entries", response_model=list[EntryOut])
async def list_entries(
    kpi_id: str,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.entries.query(user, kpi_id, start_date, end_date)


@router.post(
    "/{kpi_id}/entries",
    response_model=EntryOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_entry(
    kpi_id: str,
    body: EntryCreate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.entries.add(user, kpi_id, body.date, body.value)


@router.post(
    "/{kpi_id}/entries/bulk",
    response_model=BulkInsertResult,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_add_entries(
    kpi_id: str,
    body: EntryBulkCreate,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Insert every row or none; invalid rows are reported by index."""
    rows = [entry.model_dump() for entry in body.entries]
    inserted = await services.entries.bulk_insert(user, kpi_id, rows)
    return BulkInsertResult(inserted=inserted)


# ── Analytics ────────────────────────────────────────────────

@router.get("/{kpi_id}/aggregate", response_model=AggregateOut)
async def aggregate_entries(
    kpi_id: str,
    agg_type: str = Query(..., alias="type"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    value = await services.entries.aggregate(user, kpi_id, agg_type, start_date, end_date)
    return AggregateOut(
        kpi_id=kpi_id,
        type=agg_type,
        start_date=start_date,
        end_date=end_date,
        value=value,
    )


@router.get("/{kpi_id}/missing-dates", response_model=MissingDatesOut)
async def missing_dates(
    kpi_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    missing = await services.entries.missing_dates(user, kpi_id, start_date, end_date)
    return MissingDatesOut(
        kpi_id=kpi_id,
        start_date=start_date,
        end_date=end_date,
        missing_dates=missing,
        count=len(missing),
    )


@router.get("/{kpi_id}/stats", response_model=EntryStatsOut)
async def entry_stats(
    kpi_id: str,
    user: User | None = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return await services.entries.stats(user, kpi_id)
