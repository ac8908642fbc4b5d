"""Pydantic schemas for dashboards and their access grants."""

from datetime import datetime

from pydantic import BaseModel, Field

from kpiboard.models.dashboard import PermissionLevel


# ── Create / update ─────────────────────────────────────────

class DashboardCreate(BaseModel):
    name: str
    description: str | None = None
    # Widget descriptors: {"kpi_id": ..., "x": 0, "y": 0, "w": 4, "h": 2, ...}
    layout: list[dict] = Field(default_factory=list)


class DashboardUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    layout: list[dict] | None = None


# ── Response ────────────────────────────────────────────────

class DashboardOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    layout: list[dict]
    owner_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DashboardUserOut(BaseModel):
    user_id: str
    email: str
    permission_level: PermissionLevel
    granted_at: datetime


class DashboardDetail(DashboardOut):
    """Single dashboard with the caller's effective level and the grant list."""
    permission_level: str | None = None
    users: list[DashboardUserOut] = []


# ── Access grants ───────────────────────────────────────────

class AccessLevelUpdate(BaseModel):
    permission_level: PermissionLevel = PermissionLevel.VIEWER
