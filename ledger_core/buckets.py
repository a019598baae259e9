"""
Time bucketing for trend charts.

A single-day window produces 24 hourly buckets ("00:00" .. "23:00");
anything longer produces one bucket per calendar day. Buckets are
created up front for the whole window, so days without sales still
appear as zeros, and a sale is only counted if its local hour/day maps
onto one of those pre-created buckets.
"""
from datetime import date, datetime, tzinfo as TzInfo
from typing import Dict, Iterable, Optional

from ledger_core.filters import (
    DateRange,
    first_of_month,
    local_datetime,
    resolve_tz,
    today,
)
from ledger_core.models import Sale, TimeBucket, TimeSeries
from ledger_core.observability import get_logger

logger = get_logger(__name__)

HOURS_PER_DAY = 24


def hour_key(moment: datetime) -> str:
    """Hour-of-day bucket key, e.g. "09:00"."""
    return f"{moment.hour:02d}:00"


def day_label(day: date) -> str:
    """Display label for a daily bucket, e.g. "Oct 5"."""
    return f"{day.strftime('%b')} {day.day}"


def month_key(moment: date) -> str:
    return moment.strftime("%Y-%m")


def month_label(moment: date) -> str:
    """Display label for a monthly bucket, e.g. "Oct 2026"."""
    return moment.strftime("%b %Y")


def init_buckets(window: DateRange) -> Dict[str, TimeBucket]:
    """Zeroed buckets covering the window exactly."""
    if window.is_single_day:
        keys = [f"{hour:02d}:00" for hour in range(HOURS_PER_DAY)]
    else:
        keys = [day.isoformat() for day in window.days()]
    return {key: TimeBucket(key=key) for key in keys}


def bucket_key(created_at: Optional[int], hourly: bool, tz: Optional[TzInfo] = None) -> Optional[str]:
    """Bucket a timestamp falls into, or None when it has no usable time."""
    moment = local_datetime(created_at, tz)
    if moment is None:
        return None
    return hour_key(moment) if hourly else moment.date().isoformat()


def build_time_buckets(
    sales: Iterable[Sale],
    window: DateRange,
    tz: Optional[TzInfo] = None,
) -> Dict[str, TimeBucket]:
    """
    Accumulate revenue/cost/profit per bucket.

    Sales whose key has no pre-created bucket (outside the window, or
    undated) are dropped; with a filter matching the window that does
    not happen, so drops are logged.
    """
    tz = resolve_tz(tz)
    buckets = init_buckets(window)
    dropped = 0

    for sale in sales:
        key = bucket_key(sale.created_at, window.is_single_day, tz)
        bucket = buckets.get(key) if key else None
        if bucket is None:
            dropped += 1
            continue
        bucket.add(sale)

    if dropped:
        logger.debug(
            f"Dropped {dropped} sales outside the bucket window",
            extra={"window": window.as_str_tuple()},
        )
    return buckets


def build_time_series(
    sales: Iterable[Sale],
    window: DateRange,
    tz: Optional[TzInfo] = None,
) -> TimeSeries:
    """Chart series over the window, keys sorted chronologically."""
    buckets = build_time_buckets(sales, window, tz)
    keys = sorted(buckets)

    if window.is_single_day:
        labels = list(keys)
    else:
        labels = [day_label(date.fromisoformat(k)) for k in keys]

    return TimeSeries(
        keys=keys,
        labels=labels,
        revenue=[buckets[k].revenue for k in keys],
        profit=[buckets[k].profit for k in keys],
        cost=[buckets[k].cost for k in keys],
        hourly=window.is_single_day,
    )


def monthly_trend(
    ledger: Iterable[Sale],
    months: int = 12,
    reference_date: Optional[date] = None,
    tz: Optional[TzInfo] = None,
) -> TimeSeries:
    """
    Month-by-month sums for the last `months` months, ending with the
    reference month. Built over whatever sales are passed (the dashboard
    passes the full ledger).
    """
    tz = resolve_tz(tz)
    ref = reference_date or today(tz)
    starts = [first_of_month(ref, months_back=i) for i in range(months - 1, -1, -1)]
    buckets = {month_key(m): TimeBucket(key=month_key(m)) for m in starts}

    for sale in ledger:
        moment = local_datetime(sale.created_at, tz)
        if moment is None:
            continue
        bucket = buckets.get(month_key(moment.date()))
        if bucket is not None:
            bucket.add(sale)

    keys = [month_key(m) for m in starts]
    return TimeSeries(
        keys=keys,
        labels=[month_label(m) for m in starts],
        revenue=[buckets[k].revenue for k in keys],
        profit=[buckets[k].profit for k in keys],
        cost=[buckets[k].cost for k in keys],
    )
