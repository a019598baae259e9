"""
Input validation for filter descriptors, dates and limits.

All validators raise ValidationError on invalid input.
"""
from datetime import date, datetime
from typing import Any, Optional, Tuple

from ledger_core.exceptions import ValidationError


# Named presets plus the explicit-range mode
FILTER_MODES = ("all", "thisMonth", "lastMonth", "thisYear", "custom")

# Aliases accepted from older callers
FILTER_MODE_ALIASES = {
    "this_month": "thisMonth",
    "last_month": "lastMonth",
    "this_year": "thisYear",
    "alltime": "all",
}

DATE_FORMAT = "%Y-%m-%d"


def validate_date_string(
    value: Any,
    field: str = "date",
    format: str = DATE_FORMAT,
) -> date:
    """
    Validate and parse a calendar date.

    Args:
        value: Date string (or date object, returned as-is)
        field: Field name for error messages
        format: Expected date format (default: YYYY-MM-DD)

    Returns:
        Parsed date object

    Raises:
        ValidationError: If date is missing, invalid or in wrong format
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if not value:
        raise ValidationError(field, "Date is required", value)

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    try:
        return datetime.strptime(value, format).date()
    except ValueError:
        raise ValidationError(
            field,
            f"Invalid date format. Expected {format}",
            value
        )


def validate_optional_date(value: Any, field: str = "date") -> Optional[date]:
    """Like validate_date_string, but None and "" mean "no bound"."""
    if value is None or value == "":
        return None
    return validate_date_string(value, field)


def validate_date_range(
    start: Any,
    end: Any,
) -> Tuple[date, date]:
    """
    Validate an inclusive calendar date range.

    Returns:
        Tuple of (start, end) as date objects

    Raises:
        ValidationError: If dates are invalid or start is after end
    """
    start_date = validate_date_string(start, "from")
    end_date = validate_date_string(end, "to")

    if start_date > end_date:
        raise ValidationError(
            "date_range",
            "Start date must be before or equal to end date",
            f"{start_date} to {end_date}"
        )

    return start_date, end_date


def validate_filter_mode(value: Optional[str], field: str = "mode") -> str:
    """
    Validate a filter mode, resolving aliases.

    None means an explicit range was given without a mode and maps to
    "custom".

    Raises:
        ValidationError: If mode is not a known preset
    """
    if value is None or value == "":
        return "custom"

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    mode = FILTER_MODE_ALIASES.get(value, value)
    if mode not in FILTER_MODES:
        raise ValidationError(
            field,
            f"Unknown filter mode. Expected one of: {', '.join(FILTER_MODES)}",
            value
        )
    return mode


def validate_limit(
    value: Any,
    field: str = "limit",
    max_value: Optional[int] = None,
) -> int:
    """
    Validate a top-N size.

    Raises:
        ValidationError: If limit is not a positive integer (or exceeds max_value)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "Must be an integer", value)

    if value < 1:
        raise ValidationError(field, "Must be at least 1", value)

    if max_value is not None and value > max_value:
        raise ValidationError(field, f"Cannot exceed {max_value}", value)

    return value
