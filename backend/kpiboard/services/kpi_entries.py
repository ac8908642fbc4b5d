"""KPI entry writes and reads.

Writes (add / bulk / update / delete) need KPI ownership or admin.
Reads (query / aggregate / missing dates / stats) need KPI access, which
includes anyone who can see a dashboard showing the KPI.
"""

from __future__ import annotations

from datetime import date

from kpiboard.auth.permissions import PermissionResolver
from kpiboard.errors import NotFound, ValidationError
from kpiboard.models.kpi_entry import KpiEntry
from kpiboard.models.user import User
from kpiboard.repositories import EntryStore
from kpiboard.services.aggregation import AggregationEngine, AggregationType
from kpiboard.services.validation import parse_date, validate_non_negative


def _validate_row(row: dict) -> tuple[date, float]:
    if row.get("date") is None:
        raise ValidationError("date is required")
    if row.get("value") is None:
        raise ValidationError("value is required")
    entry_date = parse_date(row["date"])
    value = validate_non_negative(row["value"], "value")
    return entry_date, value


class KpiEntryService:
    def __init__(
        self,
        entries: EntryStore,
        permissions: PermissionResolver,
        aggregation: AggregationEngine,
    ):
        self.entries = entries
        self.permissions = permissions
        self.aggregation = aggregation

    # ── Writes ──────────────────────────────────────────────

    async def add(
        self, user: User | None, kpi_id: str, entry_date: date | str, value: float
    ) -> KpiEntry:
        await self.permissions.require_kpi_owner(user, kpi_id)
        parsed_date, parsed_value = _validate_row({"date": entry_date, "value": value})
        entry = await self.entries.create(kpi_id, parsed_date, parsed_value)
        self.aggregation.invalidate(kpi_id)
        return entry

    async def bulk_insert(self, user: User | None, kpi_id: str, rows: list[dict]) -> int:
        """Insert many entries atomically.

        Every row is validated before anything is written; if any row is
        invalid the whole batch is rejected with per-row errors.
        """
        await self.permissions.require_kpi_owner(user, kpi_id)
        if not rows:
            raise ValidationError("No entries provided")

        normalized: list[tuple[date, float]] = []
        errors: list[dict] = []
        for index, row in enumerate(rows):
            try:
                normalized.append(_validate_row(row))
            except ValidationError as exc:
                errors.append({"row": index, "message": exc.message})
        if errors:
            raise ValidationError(
                f"{len(errors)} of {len(rows)} entries are invalid",
                details={"errors": errors},
            )

        inserted = await self.entries.bulk_create(kpi_id, normalized)
        self.aggregation.invalidate(kpi_id)
        return inserted

    async def _owned_entry(self, user: User | None, entry_id: int) -> KpiEntry:
        self.permissions.require_user(user)
        entry = await self.entries.get(entry_id)
        if entry is None:
            raise NotFound("KPI entry", entry_id)
        await self.permissions.require_kpi_owner(user, entry.kpi_id)
        return entry

    async def update(self, user: User | None, entry_id: int, changes: dict) -> KpiEntry:
        entry = await self._owned_entry(user, entry_id)
        updates: dict = {}
        if changes.get("date") is not None:
            updates["date"] = parse_date(changes["date"])
        if changes.get("value") is not None:
            updates["value"] = validate_non_negative(changes["value"], "value")
        if not updates:
            return entry
        entry = await self.entries.update(entry, updates)
        self.aggregation.invalidate(entry.kpi_id)
        return entry

    async def delete(self, user: User | None, entry_id: int) -> None:
        entry = await self._owned_entry(user, entry_id)
        kpi_id = entry.kpi_id
        await self.entries.delete(entry_id)
        self.aggregation.invalidate(kpi_id)

    # ── Reads ───────────────────────────────────────────────

    async def query(
        self,
        user: User | None,
        kpi_id: str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> list[KpiEntry]:
        await self.permissions.require_kpi_access(user, kpi_id)
        return await self.entries.find(
            kpi_id,
            parse_date(start_date, "start_date"),
            parse_date(end_date, "end_date"),
        )

    async def aggregate(
        self,
        user: User | None,
        kpi_id: str,
        agg_type: AggregationType | str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> float | int | None:
        await self.permissions.require_kpi_access(user, kpi_id)
        return await self.aggregation.aggregate(kpi_id, agg_type, start_date, end_date)

    async def missing_dates(
        self,
        user: User | None,
        kpi_id: str,
        start_date: date | str,
        end_date: date | str,
    ) -> list[date]:
        await self.permissions.require_kpi_access(user, kpi_id)
        return await self.aggregation.missing_dates(kpi_id, start_date, end_date)

    async def stats(self, user: User | None, kpi_id: str) -> dict:
        await self.permissions.require_kpi_access(user, kpi_id)
        return await self.aggregation.stats(kpi_id)
