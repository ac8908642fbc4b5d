"""Red / amber / green classification of KPI values.

Thresholds are read according to the KPI's direction:

  higher_is_better   value >= amber        → green
                     red <= value < amber  → amber
                     value < red           → red

  lower_is_better    value <= red          → green
                     red < value <= amber  → amber
                     value > amber         → red

Both branches are total and mutually exclusive as long as red != amber,
which KPI validation guarantees.
"""

from __future__ import annotations

import enum

from kpiboard.errors import ValidationError
from kpiboard.models.kpi import KpiDirection


class RagStatus(str, enum.Enum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


def parse_direction(direction: KpiDirection | str) -> KpiDirection:
    try:
        return KpiDirection(direction)
    except ValueError:
        raise ValidationError(
            f"Invalid direction: {direction!r}",
            details={"allowed": [d.value for d in KpiDirection]},
        ) from None


def classify(
    value: float,
    direction: KpiDirection | str,
    red: float,
    amber: float,
) -> RagStatus:
    direction = parse_direction(direction)

    if direction is KpiDirection.HIGHER_IS_BETTER:
        if value >= amber:
            return RagStatus.GREEN
        if value >= red:
            return RagStatus.AMBER
        return RagStatus.RED

    if value <= red:
        return RagStatus.GREEN
    if value <= amber:
        return RagStatus.AMBER
    return RagStatus.RED


def format_value(value: float, prefix: str = "", suffix: str = "") -> str:
    """Render a value for display: format_value(1234.5, "$", "k") → "$1,234.50k"."""
    return f"{prefix}{value:,.2f}{suffix}"
