"""Tests for the aggregation engine and missing-date detection."""

from datetime import date

import pytest
import pytest_asyncio

from kpiboard.config import settings
from kpiboard.errors import ValidationError
from kpiboard.services.aggregation import AggregationType


@pytest_asyncio.fixture
async def sample_entries(services, owner, kpi):
    """Values [100, 150, 200, 50] on four consecutive days, 50 last."""
    rows = [
        {"date": "2024-01-01", "value": 100},
        {"date": "2024-01-02", "value": 150},
        {"date": "2024-01-03", "value": 200},
        {"date": "2024-01-04", "value": 50},
    ]
    await services.entries.bulk_insert(owner, kpi.id, rows)
    return rows


@pytest.mark.asyncio
class TestAggregate:

    @pytest.mark.parametrize("agg_type,expected", [
        ("sum", 500.0),
        ("average", 125.0),
        ("min", 50.0),
        ("max", 200.0),
        ("count", 4),
        ("latest", 50.0),
        ("earliest", 100.0),
    ])
    async def test_reductions(self, services, kpi, sample_entries, agg_type, expected):
        assert await services.aggregation.aggregate(kpi.id, agg_type) == expected

    async def test_count_is_int(self, services, kpi, sample_entries):
        result = await services.aggregation.aggregate(kpi.id, AggregationType.COUNT)
        assert isinstance(result, int)

    async def test_empty_set_returns_none_except_count(self, services, kpi):
        for agg_type in ("sum", "average", "min", "max", "latest", "earliest"):
            assert await services.aggregation.aggregate(kpi.id, agg_type) is None
        assert await services.aggregation.aggregate(kpi.id, "count") == 0

    async def test_genuine_zero_is_not_none(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-01-01", 0)
        assert await services.aggregation.aggregate(kpi.id, "sum") == 0.0

    async def test_bounds_are_inclusive(self, services, kpi, sample_entries):
        result = await services.aggregation.aggregate(
            kpi.id, "sum", start_date="2024-01-02", end_date="2024-01-03"
        )
        assert result == 350.0

    async def test_open_ended_bounds(self, services, kpi, sample_entries):
        assert await services.aggregation.aggregate(kpi.id, "count", start_date="2024-01-03") == 2
        assert await services.aggregation.aggregate(kpi.id, "count", end_date=date(2024, 1, 1)) == 1

    async def test_window_with_no_entries(self, services, kpi, sample_entries):
        result = await services.aggregation.aggregate(
            kpi.id, "average", start_date="2025-01-01", end_date="2025-12-31"
        )
        assert result is None

    async def test_latest_uses_date_not_insertion(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-03-01", 30)
        await services.entries.add(owner, kpi.id, "2024-02-01", 20)
        assert await services.aggregation.aggregate(kpi.id, "latest") == 30.0
        assert await services.aggregation.aggregate(kpi.id, "earliest") == 20.0

    async def test_same_date_ties(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-01-05", 10)
        await services.entries.add(owner, kpi.id, "2024-01-05", 20)
        # latest → most recently inserted, earliest → first inserted
        assert await services.aggregation.aggregate(kpi.id, "latest") == 20.0
        assert await services.aggregation.aggregate(kpi.id, "earliest") == 10.0

    async def test_same_date_entries_are_independent_samples(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-01-05", 10)
        await services.entries.add(owner, kpi.id, "2024-01-05", 20)
        await services.entries.add(owner, kpi.id, "2024-01-06", 60)
        assert await services.aggregation.aggregate(kpi.id, "count") == 3
        assert await services.aggregation.aggregate(kpi.id, "average") == 30.0

    async def test_unknown_type(self, services, kpi):
        with pytest.raises(ValidationError) as exc:
            await services.aggregation.aggregate(kpi.id, "median")
        assert "median" in exc.value.message

    async def test_malformed_date(self, services, kpi):
        with pytest.raises(ValidationError):
            await services.aggregation.aggregate(kpi.id, "sum", start_date="01/02/2024")

    @pytest.mark.parametrize("value", ["2024-1-5", "20240105", "2024-01-05T00:00", " 2024-01-05"])
    async def test_dates_must_be_zero_padded_iso(self, services, kpi, value):
        with pytest.raises(ValidationError):
            await services.aggregation.aggregate(kpi.id, "sum", start_date=value)


@pytest.mark.asyncio
class TestMissingDates:

    async def test_gaps(self, services, owner, kpi):
        for day in ("2024-01-01", "2024-01-03", "2024-01-05"):
            await services.entries.add(owner, kpi.id, day, 1)

        missing = await services.aggregation.missing_dates(kpi.id, "2024-01-01", "2024-01-05")
        assert missing == [date(2024, 1, 2), date(2024, 1, 4)]

    async def test_no_entries_means_every_date(self, services, kpi):
        missing = await services.aggregation.missing_dates(kpi.id, "2024-02-27", "2024-03-01")
        assert missing == [
            date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1),
        ]

    async def test_single_day_range(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-01-01", 1)
        assert await services.aggregation.missing_dates(kpi.id, "2024-01-01", "2024-01-01") == []

    async def test_start_after_end(self, services, kpi):
        with pytest.raises(ValidationError):
            await services.aggregation.missing_dates(kpi.id, "2024-01-05", "2024-01-01")

    async def test_range_ending_on_last_representable_date(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "9999-12-30", 1)
        missing = await services.aggregation.missing_dates(kpi.id, "9999-12-29", "9999-12-31")
        assert missing == [date(9999, 12, 29), date(9999, 12, 31)]

    async def test_range_too_long(self, services, kpi, monkeypatch):
        monkeypatch.setattr(settings, "missing_dates_max_days", 31)
        assert len(await services.aggregation.missing_dates(kpi.id, "2024-01-01", "2024-01-31")) == 31

        with pytest.raises(ValidationError) as exc:
            await services.aggregation.missing_dates(kpi.id, "2024-01-01", "2024-02-01")
        assert exc.value.details == {"days": 32}

    async def test_default_limit_rejects_huge_range(self, services, kpi):
        with pytest.raises(ValidationError):
            await services.aggregation.missing_dates(kpi.id, "0001-01-01", "9000-01-01")

    async def test_does_not_write(self, services, owner, kpi):
        await services.entries.add(owner, kpi.id, "2024-01-01", 1)
        await services.aggregation.missing_dates(kpi.id, "2024-01-01", "2024-01-10")
        assert await services.aggregation.aggregate(kpi.id, "count") == 1


@pytest.mark.asyncio
class TestStats:

    async def test_stats(self, services, kpi, sample_entries):
        stats = await services.aggregation.stats(kpi.id)
        assert stats["count"] == 4
        assert stats["earliest_date"] == date(2024, 1, 1)
        assert stats["latest_date"] == date(2024, 1, 4)
        assert stats["min"] == 50
        assert stats["max"] == 200
        assert stats["average"] == 125
        assert stats["sum"] == 500

    async def test_stats_empty(self, services, kpi):
        stats = await services.aggregation.stats(kpi.id)
        assert stats["count"] == 0
        assert stats["average"] is None
        assert stats["earliest_date"] is None
