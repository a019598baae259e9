"""
Export boundary: turns a set of sales into a table for an external exporter.

The engine owns row construction only. File encoding (CSV, Excel) is the
exporter's business; it receives headers and rows through a callable.
Which columns are included is a caller preference map of
column name -> included flag.
"""
from dataclasses import dataclass, field
from datetime import date, tzinfo as TzInfo
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from ledger_core.filters import local_date_key
from ledger_core.models import Sale, ToolItem
from ledger_core.observability import get_logger, timed

logger = get_logger(__name__)

Exporter = Callable[[List[str], List[List[Any]]], Any]


def duration_days(item: ToolItem) -> Optional[int]:
    """Days between purchase and expiry date, None if either is unusable."""
    try:
        start = date.fromisoformat(item.purchase_date)
        end = date.fromisoformat(item.expiry_date)
    except ValueError:
        return None
    return (end - start).days


def _duration_label(item: ToolItem) -> str:
    days = duration_days(item)
    return f"{days} Days" if days is not None else "N/A"


@dataclass(frozen=True)
class ExportColumn:
    """One exportable column and how to read it from (sale, item)."""
    key: str
    accessor: Callable[[Sale, ToolItem, Optional[TzInfo]], Any]
    is_currency: bool = False


COLUMNS = (
    ExportColumn("Activation Date", lambda s, i, tz: local_date_key(s.created_at, tz) or "-"),
    ExportColumn("Client", lambda s, i, tz: s.client.name or "-"),
    ExportColumn("Number", lambda s, i, tz: s.client.phone or "-"),
    ExportColumn("Tool Name", lambda s, i, tz: i.name or "N/A"),
    ExportColumn("Plan", lambda s, i, tz: i.plan or "-"),
    ExportColumn("Duration", lambda s, i, tz: _duration_label(i)),
    ExportColumn("Expiry Date", lambda s, i, tz: i.expiry_date or "-"),
    ExportColumn("Type", lambda s, i, tz: i.type or "-"),
    ExportColumn("Email", lambda s, i, tz: i.email or "-"),
    ExportColumn("Password", lambda s, i, tz: i.password or "-"),
    ExportColumn("Profile Name", lambda s, i, tz: i.profile_name or "-"),
    ExportColumn("Profile PIN", lambda s, i, tz: i.profile_pin or "-"),
    ExportColumn("Vendor", lambda s, i, tz: s.vendor.name or "-"),
    ExportColumn("Cost", lambda s, i, tz: i.cost, is_currency=True),
    ExportColumn("Sale", lambda s, i, tz: i.sell, is_currency=True),
    ExportColumn("Profit", lambda s, i, tz: i.profit, is_currency=True),
)

COLUMN_NAMES = tuple(c.key for c in COLUMNS)


def active_columns(preferences: Optional[Dict[str, bool]] = None) -> List[ExportColumn]:
    """
    Columns left after applying preferences.

    Only columns explicitly mapped to False are dropped; a missing or
    empty map keeps everything.
    """
    if not preferences:
        return list(COLUMNS)
    return [c for c in COLUMNS if preferences.get(c.key) is not False]


@dataclass
class ExportTable:
    """Headers, one row per sold item, and a totals row."""
    headers: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    summary: List[Any] = field(default_factory=list)

    @property
    def all_rows(self) -> List[List[Any]]:
        return self.rows + ([self.summary] if self.rows else [])

    def to_frame(self, include_summary: bool = True) -> pd.DataFrame:
        """Table as a pandas DataFrame for tabular exporters."""
        rows = self.all_rows if include_summary else self.rows
        return pd.DataFrame(rows, columns=self.headers)


@timed("build_export_table")
def build_export_table(
    sales: Sequence[Sale],
    preferences: Optional[Dict[str, bool]] = None,
    tz: Optional[TzInfo] = None,
) -> ExportTable:
    """
    Flatten sales into export rows.

    Sales without items contribute no rows. The summary row puts cost,
    sale and profit totals under their columns and the item count under
    Tool Name, when those columns are present.
    """
    columns = active_columns(preferences)
    table = ExportTable(headers=[c.key for c in columns])

    total_cost = total_sell = total_profit = 0.0
    for sale in sales:
        for item in sale.items:
            total_cost += item.cost
            total_sell += item.sell
            total_profit += item.profit
            table.rows.append([c.accessor(sale, item, tz) for c in columns])

    totals = {
        "Cost": total_cost,
        "Sale": total_sell,
        "Profit": total_profit,
        "Tool Name": f"Total Orders: {len(table.rows)}",
    }
    table.summary = [totals.get(c.key, "") for c in columns]
    return table


def export_sales(
    sales: Sequence[Sale],
    exporter: Exporter,
    preferences: Optional[Dict[str, bool]] = None,
    tz: Optional[TzInfo] = None,
) -> int:
    """
    Hand the given sales to an external exporter.

    Args:
        sales: Sales to export (normally the currently filtered set)
        exporter: Callable receiving (headers, rows including the totals row)
        preferences: Column name -> included flag
        tz: Zone for the activation date column

    Returns:
        Number of item rows exported; the exporter is not called when 0
    """
    table = build_export_table(sales, preferences, tz)
    if not table.rows:
        logger.info("Nothing to export", extra={"sales": len(sales)})
        return 0

    exporter(table.headers, table.all_rows)
    logger.info(
        f"Exported {len(table.rows)} rows",
        extra={"columns": len(table.headers)},
    )
    return len(table.rows)
