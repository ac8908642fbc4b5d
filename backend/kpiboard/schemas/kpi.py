"""Pydantic schemas for KPI definitions and their current status.

Direction and thresholds are plain types here; their domain rules
(known direction, red != amber, non-negative) are enforced by KpiService
so every client gets the same error shape.
"""

from datetime import datetime

from pydantic import BaseModel

from kpiboard.models.kpi import KpiDirection
from kpiboard.services.rag import RagStatus


class KpiCreate(BaseModel):
    name: str
    direction: str
    target: float
    rag_red: float
    rag_amber: float
    format_prefix: str | None = None
    format_suffix: str | None = None


class KpiUpdate(BaseModel):
    name: str | None = None
    direction: str | None = None
    target: float | None = None
    rag_red: float | None = None
    rag_amber: float | None = None
    format_prefix: str | None = None
    format_suffix: str | None = None


class KpiOut(BaseModel):
    id: str
    owner_id: str
    name: str
    direction: KpiDirection
    target: float
    rag_red: float
    rag_amber: float
    format_prefix: str | None = None
    format_suffix: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class KpiStatusOut(BaseModel):
    kpi_id: str
    value: float | None = None
    formatted_value: str | None = None
    status: RagStatus | None = None
    target: float
