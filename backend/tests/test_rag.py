"""Tests for RAG classification and value formatting."""

import pytest

from kpiboard.errors import ValidationError
from kpiboard.models.kpi import KpiDirection
from kpiboard.services.rag import RagStatus, classify, format_value


@pytest.mark.unit
class TestClassifyHigherIsBetter:

    @pytest.mark.parametrize("value,expected", [
        (80, RagStatus.GREEN),
        (60, RagStatus.AMBER),
        (40, RagStatus.RED),
    ])
    def test_examples(self, value, expected):
        assert classify(value, "higher_is_better", 50, 75) == expected

    def test_boundaries(self):
        # amber threshold itself is green, red threshold itself is amber
        assert classify(75, KpiDirection.HIGHER_IS_BETTER, 50, 75) == RagStatus.GREEN
        assert classify(50, KpiDirection.HIGHER_IS_BETTER, 50, 75) == RagStatus.AMBER
        assert classify(49.99, KpiDirection.HIGHER_IS_BETTER, 50, 75) == RagStatus.RED

    def test_monotonic_in_value(self):
        order = {RagStatus.RED: 0, RagStatus.AMBER: 1, RagStatus.GREEN: 2}
        ranks = [order[classify(v, "higher_is_better", 50, 75)] for v in range(0, 101, 5)]
        assert ranks == sorted(ranks)


@pytest.mark.unit
class TestClassifyLowerIsBetter:

    @pytest.mark.parametrize("value,expected", [
        (40, RagStatus.GREEN),
        (60, RagStatus.AMBER),
        (80, RagStatus.RED),
    ])
    def test_examples(self, value, expected):
        assert classify(value, "lower_is_better", 50, 75) == expected

    def test_boundaries(self):
        assert classify(50, KpiDirection.LOWER_IS_BETTER, 50, 75) == RagStatus.GREEN
        assert classify(75, KpiDirection.LOWER_IS_BETTER, 50, 75) == RagStatus.AMBER
        assert classify(75.01, KpiDirection.LOWER_IS_BETTER, 50, 75) == RagStatus.RED


@pytest.mark.unit
class TestClassifyValidation:

    def test_unknown_direction(self):
        with pytest.raises(ValidationError) as exc:
            classify(10, "sideways", 50, 75)
        assert "sideways" in exc.value.message
        assert exc.value.details == {"allowed": ["higher_is_better", "lower_is_better"]}


@pytest.mark.unit
class TestFormatValue:

    def test_prefix_and_suffix(self):
        assert format_value(1234.5, "$", "k") == "$1,234.50k"

    def test_plain(self):
        assert format_value(0) == "0.00"

    def test_large_value(self):
        assert format_value(1234567.891, suffix="%") == "1,234,567.89%"
