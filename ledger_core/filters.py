"""
Date range filtering for ledger snapshots.

Every call site that needs "which local calendar day does this sale
belong to" goes through local_date_key(), so the date-object filter
(dashboard/analytics) and the string filter (history/export) can never
disagree about day boundaries.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo as TzInfo
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ledger_core.config import config
from ledger_core.models import Sale
from ledger_core.observability import get_logger
from ledger_core.validators import (
    DATE_FORMAT,
    validate_date_range,
    validate_filter_mode,
    validate_optional_date,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range with string helpers."""
    start: date
    end: date

    @property
    def start_str(self) -> str:
        """Start date as YYYY-MM-DD string."""
        return self.start.strftime(DATE_FORMAT)

    @property
    def end_str(self) -> str:
        """End date as YYYY-MM-DD string."""
        return self.end.strftime(DATE_FORMAT)

    @property
    def is_single_day(self) -> bool:
        return self.start == self.end

    @property
    def day_count(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    def days(self) -> List[date]:
        """Every calendar day in the range, in order."""
        return [self.start + timedelta(days=i) for i in range(self.day_count)]

    def as_tuple(self) -> Tuple[date, date]:
        return (self.start, self.end)

    def as_str_tuple(self) -> Tuple[str, str]:
        return (self.start_str, self.end_str)


@dataclass(frozen=True)
class FilterDescriptor:
    """
    Active filter: a named preset or an explicit inclusive range.

    Frozen and hashable so it can be part of a memoization key.
    """
    mode: str = "all"
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FilterDescriptor":
        """
        Build a descriptor from {mode, from, to}.

        When mode is omitted the {from, to} pair is used directly.

        Raises:
            ValidationError: Unknown mode, malformed dates, or from > to
        """
        data = data or {}
        mode = validate_filter_mode(data.get("mode"))
        if mode != "custom":
            return cls(mode=mode)

        date_from = validate_optional_date(data.get("from"), "from")
        date_to = validate_optional_date(data.get("to"), "to")
        if date_from and date_to:
            validate_date_range(date_from, date_to)
        return cls(mode="custom", date_from=date_from, date_to=date_to)

    @classmethod
    def preset(cls, mode: str) -> "FilterDescriptor":
        return cls.from_dict({"mode": mode})

    @classmethod
    def between(cls, date_from: Any, date_to: Any) -> "FilterDescriptor":
        """Explicit inclusive range; a single day when both ends are equal."""
        return cls.from_dict({"from": date_from, "to": date_to})

    @property
    def cache_key(self) -> Tuple[str, Optional[str], Optional[str]]:
        return (
            self.mode,
            self.date_from.isoformat() if self.date_from else None,
            self.date_to.isoformat() if self.date_to else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        mode, date_from, date_to = self.cache_key
        return {"mode": mode, "from": date_from, "to": date_to}


ALL_TIME = FilterDescriptor()


# ═══════════════════════════════════════════════════════════════════════════════
# LOCAL CALENDAR PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════════

def resolve_tz(tz: Optional[TzInfo] = None) -> TzInfo:
    """Timezone to use for local calendar boundaries."""
    return tz or config.analytics.tzinfo


def today(tz: Optional[TzInfo] = None) -> date:
    """Current calendar date in the local zone."""
    return datetime.now(resolve_tz(tz)).date()


def local_datetime(created_at: Optional[int], tz: Optional[TzInfo] = None) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware local datetime (None if unusable)."""
    if created_at is None:
        return None
    try:
        return datetime.fromtimestamp(created_at / 1000, tz=resolve_tz(tz))
    except (OverflowError, OSError, ValueError):
        return None


def local_date_key(created_at: Optional[int], tz: Optional[TzInfo] = None) -> Optional[str]:
    """Local calendar day of a timestamp as YYYY-MM-DD."""
    moment = local_datetime(created_at, tz)
    return moment.strftime(DATE_FORMAT) if moment else None


def local_midnight_ms(day: date, tz: Optional[TzInfo] = None) -> int:
    """Epoch milliseconds of local midnight at the start of a day."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=resolve_tz(tz))
    return int(midnight.timestamp() * 1000)


def first_of_month(day: date, months_back: int = 0) -> date:
    """First day of the month, optionally shifted back a number of months."""
    month_index = day.year * 12 + (day.month - 1) - months_back
    return date(month_index // 12, month_index % 12 + 1, 1)


def last_of_month(day: date) -> date:
    next_month = first_of_month(day, months_back=-1)
    return next_month - timedelta(days=1)


# ═══════════════════════════════════════════════════════════════════════════════
# RANGE FILTER
# ═══════════════════════════════════════════════════════════════════════════════

def resolve_bounds(
    descriptor: FilterDescriptor,
    reference_date: Optional[date] = None,
    tz: Optional[TzInfo] = None,
) -> Tuple[Optional[int], Optional[int]]:
    """
    Translate a descriptor into a half-open [lower, upper) epoch-ms window.

    None on either side means unbounded. An explicit `to` date is
    end-of-day: the upper bound is midnight of the following day.
    """
    tz = resolve_tz(tz)
    ref = reference_date or today(tz)

    if descriptor.mode == "all":
        return None, None

    if descriptor.mode == "thisMonth":
        return local_midnight_ms(first_of_month(ref), tz), None

    if descriptor.mode == "lastMonth":
        return (
            local_midnight_ms(first_of_month(ref, months_back=1), tz),
            local_midnight_ms(first_of_month(ref), tz),
        )

    if descriptor.mode == "thisYear":
        return local_midnight_ms(date(ref.year, 1, 1), tz), None

    lower = local_midnight_ms(descriptor.date_from, tz) if descriptor.date_from else None
    upper = (
        local_midnight_ms(descriptor.date_to + timedelta(days=1), tz)
        if descriptor.date_to else None
    )
    return lower, upper


def in_window(created_at: Optional[int], lower: Optional[int], upper: Optional[int]) -> bool:
    """Check a timestamp against a half-open window; missing timestamps never match."""
    if created_at is None:
        return False
    if lower is not None and created_at < lower:
        return False
    if upper is not None and created_at >= upper:
        return False
    return True


def filter_sales(
    sales: Iterable[Sale],
    descriptor: FilterDescriptor = ALL_TIME,
    reference_date: Optional[date] = None,
    tz: Optional[TzInfo] = None,
) -> List[Sale]:
    """
    Reduce a snapshot to the sales inside the requested window.

    Sales with a missing or unparsable createdAt are excluded, also
    for the "all" preset, since they cannot be placed on a timeline.
    """
    lower, upper = resolve_bounds(descriptor, reference_date, tz)
    result = []
    skipped = []
    for sale in sales:
        if sale.created_at is None:
            skipped.append(sale.id)
            continue
        if in_window(sale.created_at, lower, upper):
            result.append(sale)

    if skipped:
        logger.debug(
            f"Skipped {len(skipped)} sales without a usable timestamp",
            extra={"filter": descriptor.to_dict(), "record_ids": skipped[:20]},
        )
    return result


def filter_by_date_strings(
    sales: Iterable[Sale],
    date_from: str,
    date_to: str,
    tz: Optional[TzInfo] = None,
) -> List[Sale]:
    """
    String variant of the range filter over YYYY-MM-DD bounds.

    Compares against local_date_key(), the same day derivation used by
    filter_sales(), so both variants agree on every boundary.
    """
    result = []
    for sale in sales:
        key = local_date_key(sale.created_at, tz)
        if key is None:
            continue
        if date_from <= key <= date_to:
            result.append(sale)
    return result


def sales_on_date(
    sales: Iterable[Sale],
    day: str,
    tz: Optional[TzInfo] = None,
) -> List[Sale]:
    """Sales whose local calendar day equals the given YYYY-MM-DD string."""
    return filter_by_date_strings(sales, day, day, tz)


def series_window(
    descriptor: FilterDescriptor,
    sales: Iterable[Sale],
    reference_date: Optional[date] = None,
    tz: Optional[TzInfo] = None,
) -> DateRange:
    """
    Calendar window a trend chart should cover for a descriptor.

    Pass the already filtered sales. A window without an upper bound ends
    at the later of the reference date and the newest sale, so every sale
    the filter admits has a bucket. lastMonth ends at its last day; "all"
    and a custom range without `from` start at the oldest sale.
    """
    tz = resolve_tz(tz)
    ref = reference_date or today(tz)

    days = sorted(
        local_datetime(s.created_at, tz).date() for s in sales if s.created_at is not None
    )
    newest = max(ref, days[-1]) if days else ref

    if descriptor.mode == "thisMonth":
        return DateRange(first_of_month(ref), newest)
    if descriptor.mode == "lastMonth":
        start = first_of_month(ref, months_back=1)
        return DateRange(start, last_of_month(start))
    if descriptor.mode == "thisYear":
        return DateRange(date(ref.year, 1, 1), newest)

    start = descriptor.date_from if descriptor.mode == "custom" else None
    end = descriptor.date_to if descriptor.mode == "custom" else None

    if start is None:
        start = days[0] if days else ref
    if end is None:
        end = newest
    if start > end:
        start = end
    return DateRange(start, end)
