"""
Grouping and aggregation over ledger sales.

Every function is a pure pass over the sales it is given. Callers decide
whether that is the filtered window or the full ledger: customer, tool
and vendor-revenue views use the filtered set, dues and receivables the
whole ledger.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import tzinfo as TzInfo
from typing import Dict, Iterable, List, Optional

from ledger_core.filters import local_datetime
from ledger_core.models import (
    Client,
    CustomerProfile,
    Sale,
    ToolLoyaltyRecord,
    ToolVariant,
    VendorDuesRecord,
)
from ledger_core.renewals import tool_loyalty_renewals


# ═══════════════════════════════════════════════════════════════════════════════
# KEY NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_key(text: Optional[str], uppercase: bool = False) -> str:
    """Single normalization used for every string grouping key."""
    key = (text or "").strip()
    return key.upper() if uppercase else key


def customer_key(client: Client) -> str:
    """
    Grouping key for a customer: phone, or name when phone is empty.

    Two phoneless customers with the same display name merge; the ledger
    offers nothing better to tell them apart.
    """
    return normalize_key(client.phone) or normalize_key(client.name)


def vendor_key(name: Optional[str]) -> str:
    """Case-insensitive vendor key ("Acme" and "ACME" are one vendor)."""
    return normalize_key(name, uppercase=True)


def tool_key(name: Optional[str]) -> str:
    """Case-insensitive tool key used by history grouping."""
    return normalize_key(name, uppercase=True)


# ═══════════════════════════════════════════════════════════════════════════════
# TOTALS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class SalesTotals:
    """Count and finance sums over a set of sales."""
    orders: int = 0
    revenue: float = 0.0
    cost: float = 0.0
    profit: float = 0.0

    @property
    def avg_order_value(self) -> float:
        return self.revenue / self.orders if self.orders else 0.0

    def to_dict(self) -> Dict[str, float]:
        """Convert to dict for JSON serialization."""
        return {
            "orders": self.orders,
            "revenue": round(self.revenue, 2),
            "cost": round(self.cost, 2),
            "profit": round(self.profit, 2),
            "avg_order_value": round(self.avg_order_value, 2),
        }


def sales_totals(sales: Iterable[Sale]) -> SalesTotals:
    """Sum stored finance fields over sales."""
    totals = SalesTotals()
    for sale in sales:
        totals.orders += 1
        totals.revenue += sale.finance.total_sell
        totals.cost += sale.finance.total_cost
        totals.profit += sale.finance.total_profit
    return totals


@dataclass
class OutstandingTotals:
    """Money still open across the whole ledger."""
    client_pending: float = 0.0
    vendor_dues: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "client_pending": round(self.client_pending, 2),
            "vendor_dues": round(self.vendor_dues, 2),
        }


def outstanding_totals(ledger: Iterable[Sale]) -> OutstandingTotals:
    """
    Receivables and payables over the full ledger.

    client_pending sums pendingAmount where the client is not Clear;
    vendor_dues sums totalCost where the vendor is not Paid. A missing
    status counts as open.
    """
    totals = OutstandingTotals()
    for sale in ledger:
        if not sale.client.is_clear:
            totals.client_pending += sale.finance.pending_amount
        if not sale.vendor.is_paid:
            totals.vendor_dues += sale.finance.total_cost
    return totals


# ═══════════════════════════════════════════════════════════════════════════════
# CUSTOMERS
# ═══════════════════════════════════════════════════════════════════════════════

def build_customer_profiles(sales: Iterable[Sale]) -> Dict[str, CustomerProfile]:
    """
    Build one profile per customer, in order of first appearance.

    totalSpent sums item sell prices (not finance.totalSell); each item
    increments its name-type-plan variant counter.
    """
    profiles: Dict[str, CustomerProfile] = {}

    for sale in sales:
        key = customer_key(sale.client)
        profile = profiles.get(key)
        if profile is None:
            profile = CustomerProfile(key=key, name=sale.client.name, phone=sale.client.phone)
            profiles[key] = profile

        profile.total_spent += sale.items_sell_total
        profile.order_count += 1

        if sale.created_at is not None:
            if profile.first_order_at is None or sale.created_at < profile.first_order_at:
                profile.first_order_at = sale.created_at
            if profile.last_order_at is None or sale.created_at > profile.last_order_at:
                profile.last_order_at = sale.created_at

        for item in sale.items:
            variant = profile.variants.get(item.variant_key)
            if variant is None:
                variant = ToolVariant(name=item.name, type=item.type, plan=item.plan)
                profile.variants[item.variant_key] = variant
            variant.count += 1

    return profiles


def top_tool(profile: CustomerProfile) -> Optional[ToolVariant]:
    """Most purchased variant; the first one encountered wins a tie."""
    best = None
    for variant in profile.variants.values():
        if best is None or variant.count > best.count:
            best = variant
    return best


def profit_by_client_name(sales: Iterable[Sale]) -> Dict[str, float]:
    """Profit generated per client display name (top-customers chart)."""
    totals: Dict[str, float] = {}
    for sale in sales:
        name = sale.client.name
        totals[name] = totals.get(name, 0.0) + sale.finance.total_profit
    return totals


# ═══════════════════════════════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════════════════════════════

def build_tool_loyalty(sales: Iterable[Sale]) -> Dict[str, ToolLoyaltyRecord]:
    """
    Per-tool loyalty keyed by tool name only (type and plan collapsed).

    Renewals follow the loyalty rule: line items minus distinct customers.
    """
    tools: Dict[str, ToolLoyaltyRecord] = {}

    for sale in sales:
        buyer = customer_key(sale.client)
        for item in sale.items:
            record = tools.get(item.name)
            if record is None:
                record = ToolLoyaltyRecord(name=item.name)
                tools[item.name] = record
            record.total_sales += 1
            record.revenue += item.sell
            record.customers.add(buyer)

    for record in tools.values():
        record.renewals = tool_loyalty_renewals(record.total_sales, record.distinct_customer_count)

    return tools


def units_by_tool(sales: Iterable[Sale]) -> Dict[str, int]:
    """Line items sold per tool name."""
    counter: Counter = Counter()
    for sale in sales:
        for item in sale.items:
            counter[item.name] += 1
    return dict(counter)


def net_profit_by_tool(sales: Iterable[Sale]) -> Dict[str, float]:
    """Item-level profit (sell - cost) per tool name."""
    totals: Dict[str, float] = {}
    for sale in sales:
        for item in sale.items:
            totals[item.name] = totals.get(item.name, 0.0) + item.profit
    return totals


def distinct_tool_names(sales: Iterable[Sale]) -> List[str]:
    """Sorted tool names seen anywhere in the given sales."""
    return sorted({item.name for sale in sales for item in sale.items if item.name})


# ═══════════════════════════════════════════════════════════════════════════════
# VENDORS
# ═══════════════════════════════════════════════════════════════════════════════

def build_vendor_dues(ledger: Iterable[Sale]) -> Dict[str, VendorDuesRecord]:
    """
    Outstanding balance per vendor over the full ledger.

    Keyed by the uppercased vendor name. Every sale contributes to the
    vendor's revenue; only sales not marked Paid add their totalCost to
    the outstanding balance. Sales without a vendor name are left out
    here (they still count in outstanding_totals()).
    """
    vendors: Dict[str, VendorDuesRecord] = {}

    for sale in ledger:
        key = vendor_key(sale.vendor.name)
        if not key:
            continue
        record = vendors.get(key)
        if record is None:
            record = VendorDuesRecord(key=key, name=sale.vendor.name.strip())
            vendors[key] = record

        record.revenue += sale.finance.total_sell
        if not sale.vendor.is_paid:
            record.outstanding_cost += sale.finance.total_cost
            record.unpaid_sales += 1

    return vendors


def dues_by_vendor(ledger: Iterable[Sale]) -> Dict[str, float]:
    """Outstanding cost per uppercased vendor name, vendors with open sales only."""
    return {
        key: record.outstanding_cost
        for key, record in build_vendor_dues(ledger).items()
        if record.unpaid_sales
    }


def revenue_by_vendor(sales: Iterable[Sale], normalize: bool = True) -> Dict[str, float]:
    """
    Revenue (totalSell) per vendor over the given sales.

    With normalize=True vendors are keyed like dues (uppercased) so the
    two charts agree; normalize=False keeps the names exactly as typed.
    """
    totals: Dict[str, float] = {}
    for sale in sales:
        key = vendor_key(sale.vendor.name) if normalize else sale.vendor.name
        if not key:
            continue
        totals[key] = totals.get(key, 0.0) + sale.finance.total_sell
    return totals


# ═══════════════════════════════════════════════════════════════════════════════
# CALENDAR AND HISTORY GROUPINGS
# ═══════════════════════════════════════════════════════════════════════════════

def sales_by_weekday(sales: Iterable[Sale], tz: Optional[TzInfo] = None) -> Dict[str, int]:
    """Number of sales per local weekday name (e.g. "Monday")."""
    counts: Dict[str, int] = {}
    for sale in sales:
        moment = local_datetime(sale.created_at, tz)
        if moment is None:
            continue
        day = moment.strftime("%A")
        counts[day] = counts.get(day, 0) + 1
    return counts


@dataclass
class SaleGroup:
    """Sales grouped under one client or tool label."""
    key: str
    label: str
    sales: List[Sale] = field(default_factory=list)
    phone: str = ""

    def to_dict(self) -> Dict[str, object]:
        totals = sales_totals(self.sales)
        return {
            "key": self.key,
            "label": self.label,
            "phone": self.phone,
            "sales": len(self.sales),
            "revenue": round(totals.revenue, 2),
            "sale_ids": [s.id for s in self.sales],
        }


def _matches(search: str, *fields: str) -> bool:
    needle = search.lower()
    return any(needle in (f or "").lower() for f in fields)


def group_by_client(sales: Iterable[Sale], search: str = "") -> List[SaleGroup]:
    """
    Group sales by client phone; sales without a phone are skipped.

    search matches the client name (case-insensitive) or phone.
    """
    groups: Dict[str, SaleGroup] = {}
    for sale in sales:
        phone = normalize_key(sale.client.phone)
        if not phone:
            continue
        group = groups.get(phone)
        if group is None:
            group = SaleGroup(key=phone, label=sale.client.name, phone=phone)
            groups[phone] = group
        group.sales.append(sale)

    return [g for g in groups.values() if not search or _matches(search, g.label, g.phone)]


def group_by_tool(sales: Iterable[Sale], search: str = "") -> List[SaleGroup]:
    """
    Group sales by uppercased tool name, most sold first.

    A sale appears once per matching item. The label keeps the first
    spelling seen.
    """
    groups: Dict[str, SaleGroup] = {}
    for sale in sales:
        for item in sale.items:
            key = tool_key(item.name)
            if not key:
                continue
            group = groups.get(key)
            if group is None:
                group = SaleGroup(key=key, label=item.name)
                groups[key] = group
            group.sales.append(sale)

    matched = [g for g in groups.values() if not search or _matches(search, g.label)]
    return sorted(matched, key=lambda g: (-len(g.sales), g.key))


def sort_newest_first(sales: Iterable[Sale]) -> List[Sale]:
    """Sales by createdAt descending; undated sales last."""
    return sorted(
        sales,
        key=lambda s: (s.created_at is None, -(s.created_at or 0)),
    )
