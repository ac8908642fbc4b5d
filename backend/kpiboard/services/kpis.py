"""KPI definitions: CRUD plus the current RAG status of a KPI."""

from __future__ import annotations

import logging

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.errors import ValidationError
from kpiboard.models.kpi import Kpi
from kpiboard.models.user import User, UserRole
from kpiboard.repositories import DashboardStore, KpiStore
from kpiboard.services.aggregation import AggregationEngine, AggregationType
from kpiboard.services.rag import classify, format_value, parse_direction
from kpiboard.services.validation import (
    validate_format_affix,
    validate_name,
    validate_non_negative,
    validate_rag_thresholds,
)

logger = logging.getLogger(__name__)

KPI_FIELDS = (
    "name", "direction", "target", "rag_red", "rag_amber",
    "format_prefix", "format_suffix",
)
REQUIRED_FIELDS = ("name", "direction", "target", "rag_red", "rag_amber")


class KpiService:
    def __init__(
        self,
        kpis: KpiStore,
        dashboards: DashboardStore,
        permissions: PermissionResolver,
        aggregation: AggregationEngine,
    ):
        self.kpis = kpis
        self.dashboards = dashboards
        self.permissions = permissions
        self.aggregation = aggregation

    @staticmethod
    def _validate(fields: dict, current: Kpi | None = None) -> dict:
        """Validate a full (create) or partial (update) set of KPI fields.

        Thresholds are always checked as a pair; on update the missing half
        comes from the stored KPI.
        """
        clean: dict = {}
        if "name" in fields:
            clean["name"] = validate_name(fields["name"])
        if "direction" in fields:
            clean["direction"] = parse_direction(fields["direction"])
        if "target" in fields:
            clean["target"] = validate_non_negative(fields["target"], "target")
        if "rag_red" in fields or "rag_amber" in fields:
            red = fields.get("rag_red", current.rag_red if current else None)
            amber = fields.get("rag_amber", current.rag_amber if current else None)
            clean["rag_red"], clean["rag_amber"] = validate_rag_thresholds(red, amber)
        for affix in ("format_prefix", "format_suffix"):
            if affix in fields:
                clean[affix] = validate_format_affix(fields[affix], affix)
        return clean

    async def create(self, user: User | None, data: dict) -> Kpi:
        self.permissions.require_role(user, UserRole.EDITOR)
        fields = {k: v for k, v in data.items() if k in KPI_FIELDS and v is not None}
        missing = [f for f in REQUIRED_FIELDS if f not in fields]
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(missing)}")

        kpi = await self.kpis.create(user.id, self._validate(fields))
        logger.info("KPI %s created by %s", kpi.id, user.id)
        return kpi

    async def get(self, user: User | None, kpi_id: str) -> Kpi:
        return await self.permissions.require_kpi_access(user, kpi_id)

    async def list(self, user: User | None) -> list[Kpi]:
        self.permissions.require_user(user)
        if user.role == UserRole.ADMIN:
            return await self.kpis.list_all()
        return await self.kpis.list_by_owner(user.id)

    async def update(self, user: User | None, kpi_id: str, changes: dict) -> Kpi:
        kpi = await self.permissions.require_kpi_owner(user, kpi_id)
        fields = {k: v for k, v in changes.items() if k in KPI_FIELDS and v is not None}
        if not fields:
            return kpi
        return await self.kpis.update(kpi, self._validate(fields, current=kpi))

    async def delete(self, user: User | None, kpi_id: str) -> None:
        """Delete a KPI, its entries, and its widgets on every dashboard."""
        await self.permissions.require_kpi_owner(user, kpi_id)

        for dashboard in await self.dashboards.find_by_kpi(kpi_id):
            layout = [w for w in dashboard.layout or [] if w.get("kpi_id") != kpi_id]
            await self.dashboards.update(dashboard, {"layout": layout})

        await self.kpis.delete(kpi_id)
        self.aggregation.invalidate(kpi_id)
        logger.info("KPI %s deleted by %s", kpi_id, user.id)

    async def status(self, user: User | None, kpi_id: str) -> dict:
        """Latest value of a KPI with its RAG classification."""
        kpi = await self.permissions.require_kpi_access(user, kpi_id)
        latest = await self.aggregation.aggregate(kpi.id, AggregationType.LATEST)

        if latest is None:
            return {
                "kpi_id": kpi.id,
                "value": None,
                "formatted_value": None,
                "status": None,
                "target": kpi.target,
            }
        return {
            "kpi_id": kpi.id,
            "value": latest,
            "formatted_value": format_value(latest, kpi.format_prefix or "", kpi.format_suffix or ""),
            "status": classify(latest, kpi.direction, kpi.rag_red, kpi.rag_amber),
            "target": kpi.target,
        }
