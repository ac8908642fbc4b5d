"""Field-level validation shared by the domain services.

Every helper raises `kpiboard.errors.ValidationError` with a message fit
for the API client; nothing here touches the database.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

from kpiboard.errors import ValidationError

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 65535
FORMAT_AFFIX_MAX_LENGTH = 10

_LAYOUT_NUMERIC_KEYS = ("x", "y", "w", "h")
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_date(value: date | str | None, field: str = "date") -> date | None:
    """Accept a `date` or an ISO `YYYY-MM-DD` string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if not _ISO_DATE.fullmatch(text):
        raise ValidationError(f"Invalid {field} (expected YYYY-MM-DD): {value!r}")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field} (expected YYYY-MM-DD): {value!r}") from None


def validate_name(name: str | None, field: str = "name") -> str:
    if name is None or not str(name).strip():
        raise ValidationError(f"{field} must not be blank")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"{field} too long (max {NAME_MAX_LENGTH} characters)")
    return name.strip()


def validate_description(description: str | None) -> str:
    description = description or ""
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"description too long (max {DESCRIPTION_MAX_LENGTH} characters)"
        )
    return description


def validate_non_negative(value, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not math.isfinite(number) or number < 0:
        raise ValidationError(f"{field} must be a finite number >= 0")
    return number


def validate_rag_thresholds(rag_red, rag_amber) -> tuple[float, float]:
    red = validate_non_negative(rag_red, "rag_red")
    amber = validate_non_negative(rag_amber, "rag_amber")
    if red == amber:
        raise ValidationError("rag_red and rag_amber must differ")
    return red, amber


def validate_format_affix(value: str | None, field: str) -> str:
    value = value or ""
    if len(value) > FORMAT_AFFIX_MAX_LENGTH:
        raise ValidationError(
            f"{field} too long (max {FORMAT_AFFIX_MAX_LENGTH} characters)"
        )
    return value


def validate_layout(layout) -> list[dict]:
    """Normalise widget descriptors; every widget must reference a KPI."""
    if not isinstance(layout, list):
        raise ValidationError("layout must be a list of widget descriptors")

    widgets: list[dict] = []
    for index, widget in enumerate(layout):
        if not isinstance(widget, dict):
            raise ValidationError(f"layout[{index}] must be an object")
        kpi_id = widget.get("kpi_id")
        if not kpi_id or not isinstance(kpi_id, str):
            raise ValidationError(f"layout[{index}].kpi_id is required")
        for key in _LAYOUT_NUMERIC_KEYS:
            if key in widget and (
                isinstance(widget[key], bool) or not isinstance(widget[key], int)
                or widget[key] < 0
            ):
                raise ValidationError(f"layout[{index}].{key} must be a non-negative integer")
        widgets.append(dict(widget))
    return widgets
