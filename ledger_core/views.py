"""
View assembly: filter -> aggregate -> rank -> named output views.

build_views() is the one entry point the service calls on every
recomputation. It is a pure function of (snapshot, descriptor,
reference date); nothing here keeps state between calls.
"""
from dataclasses import dataclass, field
from datetime import date, tzinfo as TzInfo
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ledger_core import aggregation, buckets, filters, ranking, renewals
from ledger_core.aggregation import OutstandingTotals, SaleGroup, SalesTotals
from ledger_core.config import AnalyticsConfig, ExpiryConfig, config
from ledger_core.filters import DateRange, FilterDescriptor
from ledger_core.models import (
    CustomerProfile,
    ExpiringItem,
    LedgerSnapshot,
    RankingEntry,
    Sale,
    TimeSeries,
    ToolLoyaltyRecord,
    ToolVariant,
    VendorDuesRecord,
)
from ledger_core.observability import timed
from ledger_core.validators import validate_date_range, validate_date_string


def _entries(entries: Sequence[RankingEntry]) -> List[Dict[str, Any]]:
    return [e.to_dict() for e in entries]


def sale_summary(sale: Sale) -> Dict[str, Any]:
    """Compact row for recent-sales and history tables."""
    return {
        "id": sale.id,
        "created_at": sale.created_at,
        "client": sale.client.name,
        "phone": sale.client.phone,
        "vendor": sale.vendor.name,
        "tools": [item.name for item in sale.items],
        "total_sell": round(sale.finance.total_sell, 2),
        "total_profit": round(sale.finance.total_profit, 2),
        "pending_amount": round(sale.finance.pending_amount, 2),
        "client_status": sale.client.status,
        "vendor_status": sale.vendor.status,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# CUSTOMERS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class CustomerStatsView:
    """One customer row as shown on the customers screen."""
    key: str
    name: str
    phone: str
    total_spent: float
    order_count: int
    first_order_at: Optional[int]
    last_order_at: Optional[int]
    renewals: int
    top_tool: Optional[ToolVariant]
    tools: List[ToolVariant] = field(default_factory=list)

    @classmethod
    def from_profile(cls, profile: CustomerProfile) -> "CustomerStatsView":
        return cls(
            key=profile.key,
            name=profile.name,
            phone=profile.phone,
            total_spent=profile.total_spent,
            order_count=profile.order_count,
            first_order_at=profile.first_order_at,
            last_order_at=profile.last_order_at,
            renewals=renewals.customer_renewals(profile),
            top_tool=aggregation.top_tool(profile),
            tools=list(profile.variants.values()),
        )

    @property
    def is_renewed(self) -> bool:
        return self.renewals > 0

    def has_tool(self, tool_name: str) -> bool:
        return any(t.name == tool_name for t in self.tools)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "key": self.key,
            "name": self.name,
            "phone": self.phone,
            "total_spent": round(self.total_spent, 2),
            "order_count": self.order_count,
            "first_order_at": self.first_order_at,
            "last_order_at": self.last_order_at,
            "renewals": self.renewals,
            "renewed": self.is_renewed,
            "top_tool": self.top_tool.to_dict() if self.top_tool else None,
            "tools": [t.to_dict() for t in self.tools],
        }


@dataclass
class CustomersView:
    """Customer loyalty screen."""
    customers: List[CustomerStatsView] = field(default_factory=list)
    total_renewals: int = 0
    growth_rate: float = 0.0
    oldest_customers: List[CustomerStatsView] = field(default_factory=list)
    most_orders: List[CustomerStatsView] = field(default_factory=list)
    tool_leaderboard: List[RankingEntry] = field(default_factory=list)
    tool_loyalty: List[ToolLoyaltyRecord] = field(default_factory=list)
    tool_names: List[str] = field(default_factory=list)

    @property
    def total_customers(self) -> int:
        return len(self.customers)

    def search(
        self,
        text: str = "",
        tool: str = "all",
        renewed_only: bool = False,
    ) -> List[CustomerStatsView]:
        """
        Filter the customer list (already sorted by total spent).

        text matches name case-insensitively or phone as a substring;
        tool="all" disables the tool filter.
        """
        needle = text.lower()
        result = []
        for customer in self.customers:
            if needle and needle not in customer.name.lower() and text not in customer.phone:
                continue
            if tool != "all" and not customer.has_tool(tool):
                continue
            if renewed_only and not customer.is_renewed:
                continue
            result.append(customer)
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "total_customers": self.total_customers,
            "total_renewals": self.total_renewals,
            "growth_rate": self.growth_rate,
            "customers": [c.to_dict() for c in self.customers],
            "oldest_customers": [c.to_dict() for c in self.oldest_customers],
            "most_orders": [c.to_dict() for c in self.most_orders],
            "tool_leaderboard": _entries(self.tool_leaderboard),
            "tool_loyalty": [t.to_dict() for t in self.tool_loyalty],
            "tool_names": list(self.tool_names),
        }


@timed("customer_profiles")
def build_customers_view(
    sales: Sequence[Sale],
    ledger: Sequence[Sale],
    settings: AnalyticsConfig = config.analytics,
) -> CustomersView:
    """
    Assemble the customers screen from the filtered sales.

    `ledger` (unfiltered) only feeds the list of tool names offered in
    the tool filter.
    """
    profiles = aggregation.build_customer_profiles(sales)
    rows = [CustomerStatsView.from_profile(p) for p in profiles.values()]
    total = renewals.total_customer_renewals(profiles.values())

    by_spent = ranking.rank_records(
        rows, lambda c: c.total_spent, lambda c: c.key, n=max(len(rows), 1)
    )
    oldest = ranking.rank_records(
        [c for c in rows if c.first_order_at is not None],
        lambda c: c.first_order_at,
        lambda c: c.key,
        n=settings.top_n,
        descending=False,
    )
    most_orders = ranking.rank_records(
        rows, lambda c: c.order_count, lambda c: c.key, n=settings.top_n
    )

    loyalty = aggregation.build_tool_loyalty(sales).values()
    loyalty_rows = ranking.rank_records(
        loyalty, lambda t: t.revenue, lambda t: t.name, n=max(len(loyalty), 1)
    )

    return CustomersView(
        customers=by_spent,
        total_renewals=total,
        growth_rate=renewals.growth_rate(total, len(rows), settings.growth_rate_decimals),
        oldest_customers=oldest,
        most_orders=most_orders,
        tool_leaderboard=ranking.top_n(
            renewals.tool_renewal_counts(profiles.values()), settings.leaderboard_n
        ),
        tool_loyalty=loyalty_rows,
        tool_names=aggregation.distinct_tool_names(ledger),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD / ANALYTICS / VENDORS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class DashboardView:
    """Business overview: period stats, open balances and charts."""
    window: DateRange
    totals: SalesTotals
    outstanding: OutstandingTotals
    recent_sales: List[Sale]
    time_series: TimeSeries
    top_vendors: List[RankingEntry]
    top_items: List[RankingEntry]
    top_dues: List[RankingEntry]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "window": {"from": self.window.start_str, "to": self.window.end_str},
            "orders": self.totals.orders,
            "revenue": round(self.totals.revenue, 2),
            "profit": round(self.totals.profit, 2),
            **self.outstanding.to_dict(),
            "recent_sales": [sale_summary(s) for s in self.recent_sales],
            "time_series": self.time_series.to_dict(),
            "top_vendors": ranking.scale_to_max(self.top_vendors),
            "top_items": ranking.scale_to_max(self.top_items),
            "top_dues": ranking.scale_to_max(self.top_dues),
        }


@dataclass
class AnalyticsView:
    """Business analytics screen."""
    totals: SalesTotals
    busiest_day: Tuple[str, int]
    time_series: TimeSeries
    monthly_trend: TimeSeries
    top_customers: List[RankingEntry]
    top_tools: List[RankingEntry]
    top_tool_profit: List[RankingEntry]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "total_sales": self.totals.orders,
            "total_revenue": round(self.totals.revenue, 2),
            "total_profit": round(self.totals.profit, 2),
            "avg_order_value": round(self.totals.avg_order_value, 2),
            "busiest_day": {"day": self.busiest_day[0], "sales": self.busiest_day[1]},
            "time_series": self.time_series.to_dict(),
            "monthly_trend": {
                "labels": list(self.monthly_trend.labels),
                "profit": [round(v, 2) for v in self.monthly_trend.profit],
            },
            "top_customers": _entries(self.top_customers),
            "top_tools": _entries(self.top_tools),
            "top_tool_profit": _entries(self.top_tool_profit),
        }


@dataclass
class VendorDuesView:
    """Vendors with their outstanding balance, largest first."""
    vendors: List[VendorDuesRecord] = field(default_factory=list)

    @property
    def total_outstanding(self) -> float:
        return sum(v.outstanding_cost for v in self.vendors)

    def get(self, name: str) -> Optional[VendorDuesRecord]:
        """Lookup by vendor name in any letter case."""
        key = aggregation.vendor_key(name)
        return next((v for v in self.vendors if v.key == key), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_outstanding": round(self.total_outstanding, 2),
            "vendors": [v.to_dict() for v in self.vendors],
        }


def build_vendor_dues_view(ledger: Sequence[Sale]) -> VendorDuesView:
    """Dues over the full ledger, independent of any date filter."""
    records = aggregation.build_vendor_dues(ledger).values()
    ordered = ranking.rank_records(
        records, lambda v: v.outstanding_cost, lambda v: v.key, n=max(len(records), 1)
    )
    return VendorDuesView(vendors=ordered)


def busiest_day(sales: Sequence[Sale], tz: Optional[TzInfo] = None) -> Tuple[str, int]:
    """Weekday with most sales, ("N/A", 0) when there are none."""
    top = ranking.top_n(aggregation.sales_by_weekday(sales, tz), 1)
    if not top:
        return ("N/A", 0)
    return (top[0].label, int(top[0].value))


@dataclass
class LedgerViews:
    """Every view produced by one recomputation."""
    descriptor: FilterDescriptor
    reference_date: date
    filtered_sales: List[Sale]
    dashboard: DashboardView
    analytics: AnalyticsView
    customers: CustomersView
    vendor_dues: VendorDuesView

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filter": self.descriptor.to_dict(),
            "reference_date": self.reference_date.isoformat(),
            "dashboard": self.dashboard.to_dict(),
            "analytics": self.analytics.to_dict(),
            "customers": self.customers.to_dict(),
            "vendor_dues": self.vendor_dues.to_dict(),
        }


def build_views(
    snapshot: LedgerSnapshot,
    descriptor: FilterDescriptor = filters.ALL_TIME,
    reference_date: Optional[date] = None,
    tz: Optional[TzInfo] = None,
    settings: AnalyticsConfig = config.analytics,
) -> LedgerViews:
    """
    Recompute every view from scratch.

    Period metrics use the filtered sales; dues, receivables and the
    monthly trend use the whole ledger.
    """
    tz = filters.resolve_tz(tz)
    ref = reference_date or filters.today(tz)
    ledger = list(snapshot.sales)
    sales = filters.filter_sales(ledger, descriptor, ref, tz)

    totals = aggregation.sales_totals(sales)
    window = filters.series_window(descriptor, sales, ref, tz)
    series = buckets.build_time_series(sales, window, tz)

    dashboard = DashboardView(
        window=window,
        totals=totals,
        outstanding=aggregation.outstanding_totals(ledger),
        recent_sales=aggregation.sort_newest_first(sales)[: settings.recent_sales_n],
        time_series=series,
        top_vendors=ranking.top_n(
            aggregation.revenue_by_vendor(sales, settings.normalize_vendor_revenue),
            settings.top_n,
        ),
        top_items=ranking.top_n(aggregation.units_by_tool(sales), settings.top_n),
        top_dues=ranking.top_n(aggregation.dues_by_vendor(ledger), settings.top_n),
    )

    analytics = AnalyticsView(
        totals=totals,
        busiest_day=busiest_day(sales, tz),
        time_series=series,
        monthly_trend=buckets.monthly_trend(ledger, settings.trend_months, ref, tz),
        top_customers=ranking.top_n(aggregation.profit_by_client_name(sales), settings.top_n),
        top_tools=ranking.top_n(aggregation.units_by_tool(sales), settings.top_tools_n),
        top_tool_profit=ranking.top_n(aggregation.net_profit_by_tool(sales), settings.top_n),
    )

    return LedgerViews(
        descriptor=descriptor,
        reference_date=ref,
        filtered_sales=sales,
        dashboard=dashboard,
        analytics=analytics,
        customers=build_customers_view(sales, ledger, settings),
        vendor_dues=build_vendor_dues_view(ledger),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# EXPIRY / PENDING / HISTORY
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ExpiryView:
    """Items expiring on, shortly before, and shortly after a reference date."""
    reference_date: date
    due_today: List[ExpiringItem] = field(default_factory=list)
    recently_expired: List[ExpiringItem] = field(default_factory=list)
    upcoming: List[ExpiringItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "due_today": [i.to_dict() for i in self.due_today],
            "recently_expired": [i.to_dict() for i in self.recently_expired],
            "upcoming": [i.to_dict() for i in self.upcoming],
        }


def build_expiry_view(
    ledger: Sequence[Sale],
    reference_date: Any,
    settings: ExpiryConfig = config.expiry,
) -> ExpiryView:
    """
    Position every sold item against the reference expiry date.

    Items with a missing or malformed expiry date are skipped.

    Raises:
        ValidationError: If reference_date is not a valid date
    """
    ref = validate_date_string(reference_date, "expiry_date")
    view = ExpiryView(reference_date=ref)

    for sale in ledger:
        for index, item in enumerate(sale.items):
            try:
                expiry = date.fromisoformat(item.expiry_date)
            except ValueError:
                continue
            days_left = (expiry - ref).days
            entry = ExpiringItem(
                sale_id=sale.id,
                item_index=index,
                client_name=sale.client.name,
                client_phone=sale.client.phone,
                item=item,
                days_left=days_left,
            )
            if days_left == 0:
                view.due_today.append(entry)
            elif -settings.lookback_days <= days_left < 0:
                view.recently_expired.append(entry)
            elif 0 < days_left <= settings.lookahead_days:
                view.upcoming.append(entry)

    view.due_today.sort(key=lambda e: e.client_name)
    view.recently_expired.sort(key=lambda e: (-e.days_left, e.client_name))
    view.upcoming.sort(key=lambda e: (e.days_left, e.client_name))
    return view


@dataclass
class PendingView:
    """Sales with money still owed by the client."""
    sales: List[Sale] = field(default_factory=list)

    @property
    def total_pending(self) -> float:
        return sum(s.finance.pending_amount for s in self.sales)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_pending": round(self.total_pending, 2),
            "sales": [sale_summary(s) for s in self.sales],
        }


def build_pending_view(ledger: Sequence[Sale]) -> PendingView:
    """Pending or Partial clients over the full ledger, newest first."""
    receivable = [s for s in ledger if s.client.is_receivable]
    return PendingView(sales=aggregation.sort_newest_first(receivable))


@dataclass
class HistoryDayView:
    """Everything sold on one local calendar day."""
    day: str
    sales: List[Sale] = field(default_factory=list)

    @property
    def totals(self) -> SalesTotals:
        return aggregation.sales_totals(self.sales)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            **self.totals.to_dict(),
            "sales": [sale_summary(s) for s in self.sales],
        }


def build_history_day(
    ledger: Sequence[Sale],
    day: Any,
    tz: Optional[TzInfo] = None,
) -> HistoryDayView:
    """
    Sales of one day, newest first, via the string date filter.

    Raises:
        ValidationError: If day is not a valid YYYY-MM-DD date
    """
    day_str = validate_date_string(day, "purchase_date").isoformat()
    sales = filters.sales_on_date(ledger, day_str, tz)
    return HistoryDayView(day=day_str, sales=aggregation.sort_newest_first(sales))


def build_history_groups(
    ledger: Sequence[Sale],
    search: str = "",
) -> Dict[str, List[SaleGroup]]:
    """History grouped by client phone and by tool name."""
    return {
        "clients": aggregation.group_by_client(ledger, search),
        "tools": aggregation.group_by_tool(ledger, search),
    }


def export_window_sales(
    ledger: Sequence[Sale],
    date_from: Any,
    date_to: Any,
    tz: Optional[TzInfo] = None,
) -> List[Sale]:
    """
    Sales to hand to the exporter for an inclusive YYYY-MM-DD window.

    Raises:
        ValidationError: If either date is invalid or from > to
    """
    start, end = validate_date_range(date_from, date_to)
    return filters.filter_by_date_strings(ledger, start.isoformat(), end.isoformat(), tz)
