"""
Domain models for ledger records and derived analytics.

Provides dataclasses for Sales, ToolItems, Clients and Vendors as they
arrive from the document store, plus the derived entities that the
aggregation stages build on every recomputation.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from ledger_core.exceptions import LedgerDataError


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class ClientStatus(str, Enum):
    """Payment status of the client side of a sale."""
    CLEAR = "Clear"
    PENDING = "Pending"
    PARTIAL = "Partial"

    @classmethod
    def receivable_statuses(cls) -> set:
        """Statuses that leave money owed by the client."""
        return {cls.PENDING.value, cls.PARTIAL.value}


class VendorStatus(str, Enum):
    """Payment status of the vendor side of a sale."""
    PAID = "Paid"
    UNPAID = "Unpaid"
    CREDIT = "Credit"


class ToolType(str, Enum):
    """Kind of subscription seat sold."""
    SHARED = "Shared"
    PRIVATE = "Private"
    SCREEN = "Screen"


NO_PLAN = "No Plan"


# ═══════════════════════════════════════════════════════════════════════════════
# COERCION HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def coerce_number(value: Any) -> float:
    """Convert a possibly-missing numeric field to float; anything unusable is 0."""
    if value is None or value == "" or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_timestamp(value: Any) -> Optional[int]:
    """
    Parse a createdAt value into epoch milliseconds.

    Accepts epoch milliseconds (int, float or numeric string), ISO-8601
    strings and datetime objects (naive values are taken as UTC).
    Returns None for anything missing or unparsable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)

    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            number = None
        if number is not None:
            if math.isnan(number) or math.isinf(number):
                return None
            return int(number)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parse_timestamp(parsed)

    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ═══════════════════════════════════════════════════════════════════════════════
# LEDGER RECORDS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class Client:
    """Customer on a sale."""
    name: str = ""
    phone: str = ""
    status: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Client":
        """Create Client from a stored document fragment."""
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            phone=_text(data.get("phone")),
            status=data.get("status"),
            email=data.get("email") or None,
        )

    @property
    def is_clear(self) -> bool:
        """A client owes nothing only when explicitly marked Clear."""
        return self.status == ClientStatus.CLEAR.value

    @property
    def is_receivable(self) -> bool:
        """Client is listed on the pending page (Pending or Partial)."""
        return self.status in ClientStatus.receivable_statuses()


@dataclass
class Vendor:
    """Supplier the seats were bought from."""
    name: str = ""
    phone: str = ""
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Vendor":
        """Create Vendor from a stored document fragment."""
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            phone=_text(data.get("phone")),
            status=data.get("status"),
        )

    @property
    def is_paid(self) -> bool:
        """Vendor dues are settled only when explicitly marked Paid."""
        return self.status == VendorStatus.PAID.value


@dataclass
class ToolItem:
    """One subscription line item of a sale."""
    name: str
    type: str = ""
    plan: str = ""
    purchase_date: str = ""  # YYYY-MM-DD
    expiry_date: str = ""  # YYYY-MM-DD
    sell: float = 0.0
    cost: float = 0.0
    email: Optional[str] = None
    password: Optional[str] = None
    profile_name: Optional[str] = None
    profile_pin: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ToolItem":
        """Create ToolItem from a stored document fragment."""
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            type=_text(data.get("type")),
            plan=_text(data.get("plan")),
            purchase_date=_text(data.get("pDate")),
            expiry_date=_text(data.get("eDate")),
            sell=coerce_number(data.get("sell")),
            cost=coerce_number(data.get("cost")),
            email=data.get("email") or None,
            password=data.get("pass") or None,
            profile_name=data.get("profileName") or None,
            profile_pin=data.get("profilePin") or None,
        )

    @property
    def plan_label(self) -> str:
        """Plan text, or the placeholder used when it is empty."""
        return self.plan or NO_PLAN

    @property
    def variant_key(self) -> str:
        """Renewal-detection unit for a single customer: name-type-plan."""
        return f"{self.name}-{self.type}-{self.plan_label}"

    @property
    def profit(self) -> float:
        return self.sell - self.cost


@dataclass
class Finance:
    """Stored financial totals of a sale (trusted, never re-derived)."""
    total_sell: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    pending_amount: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Finance":
        data = _mapping(data)
        return cls(
            total_sell=coerce_number(data.get("totalSell")),
            total_cost=coerce_number(data.get("totalCost")),
            total_profit=coerce_number(data.get("totalProfit")),
            pending_amount=coerce_number(data.get("pendingAmount")),
        )


@dataclass
class Sale:
    """One ledger transaction."""
    id: Optional[str] = None
    created_at: Optional[int] = None  # epoch milliseconds
    client: Client = field(default_factory=Client)
    vendor: Vendor = field(default_factory=Vendor)
    items: List[ToolItem] = field(default_factory=list)
    finance: Finance = field(default_factory=Finance)
    instructions: str = ""

    @classmethod
    def from_dict(cls, data: Any, strict: bool = False) -> "Sale":
        """
        Create Sale from a document-store record.

        Args:
            data: Raw record (camelCase keys)
            strict: Raise LedgerDataError for non-mapping input instead of
                    returning an empty Sale

        Returns:
            Parsed Sale; missing numbers are 0 and an unparsable createdAt
            becomes None
        """
        if not isinstance(data, dict):
            if strict:
                raise LedgerDataError(
                    "Ledger record is not a mapping",
                    details=type(data).__name__,
                )
            data = {}

        raw_items = data.get("items")
        items = [ToolItem.from_dict(i) for i in raw_items] if isinstance(raw_items, list) else []

        record_id = data.get("id")
        return cls(
            id=str(record_id) if record_id is not None else None,
            created_at=parse_timestamp(data.get("createdAt")),
            client=Client.from_dict(data.get("client")),
            vendor=Vendor.from_dict(data.get("vendor")),
            items=items,
            finance=Finance.from_dict(data.get("finance")),
            instructions=_text(data.get("instructions")),
        )

    @property
    def items_sell_total(self) -> float:
        """Sum of item sell prices (what the customer view counts as spent)."""
        return sum(item.sell for item in self.items)


# ═══════════════════════════════════════════════════════════════════════════════
# DERIVED ENTITIES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ToolVariant:
    """Occurrences of one name/type/plan combination for one customer."""
    name: str
    type: str
    plan: str
    count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "plan": self.plan,
            "count": self.count,
        }


@dataclass
class CustomerProfile:
    """Per-customer aggregate keyed by phone (or name when phone is empty)."""
    key: str
    name: str
    phone: str
    total_spent: float = 0.0
    order_count: int = 0
    first_order_at: Optional[int] = None
    last_order_at: Optional[int] = None
    variants: Dict[str, ToolVariant] = field(default_factory=dict)

    def has_tool(self, tool_name: str) -> bool:
        """Check if customer bought a tool by name, in any type or plan."""
        return any(v.name == tool_name for v in self.variants.values())


@dataclass
class ToolLoyaltyRecord:
    """Per-tool aggregate keyed by tool name only."""
    name: str
    total_sales: int = 0
    revenue: float = 0.0
    customers: Set[str] = field(default_factory=set)
    renewals: int = 0

    @property
    def distinct_customer_count(self) -> int:
        return len(self.customers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "name": self.name,
            "total_sales": self.total_sales,
            "revenue": round(self.revenue, 2),
            "unique_customers": self.distinct_customer_count,
            "renewals": self.renewals,
        }


@dataclass
class VendorDuesRecord:
    """Outstanding balance and revenue for one vendor."""
    key: str
    name: str
    outstanding_cost: float = 0.0
    revenue: float = 0.0
    unpaid_sales: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "vendor": self.name,
            "key": self.key,
            "outstanding": round(self.outstanding_cost, 2),
            "revenue": round(self.revenue, 2),
            "unpaid_sales": self.unpaid_sales,
        }


@dataclass
class TimeBucket:
    """Revenue/cost/profit sums for one hour-of-day or calendar-day slot."""
    key: str
    revenue: float = 0.0
    cost: float = 0.0
    profit: float = 0.0

    def add(self, sale: Sale) -> None:
        self.revenue += sale.finance.total_sell
        self.cost += sale.finance.total_cost
        self.profit += sale.finance.total_profit


@dataclass
class TimeSeries:
    """Chronologically ordered chart series."""
    keys: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    revenue: List[float] = field(default_factory=list)
    profit: List[float] = field(default_factory=list)
    cost: List[float] = field(default_factory=list)
    hourly: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "labels": list(self.labels),
            "revenue": [round(v, 2) for v in self.revenue],
            "profit": [round(v, 2) for v in self.profit],
            "cost": [round(v, 2) for v in self.cost],
            "hourly": self.hourly,
        }


@dataclass(frozen=True)
class RankingEntry:
    """One row of a top-N ranking."""
    label: str
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": round(self.value, 2)}

    def as_tuple(self) -> Tuple[str, float]:
        return (self.label, self.value)


@dataclass
class ExpiringItem:
    """A sold item positioned relative to an expiry reference date."""
    sale_id: Optional[str]
    item_index: int
    client_name: str
    client_phone: str
    item: ToolItem
    days_left: int

    @property
    def is_expired(self) -> bool:
        return self.days_left < 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "sale_id": self.sale_id,
            "item_index": self.item_index,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "tool": self.item.name,
            "type": self.item.type,
            "plan": self.item.plan,
            "expiry_date": self.item.expiry_date,
            "email": self.item.email,
            "days_left": self.days_left,
            "expired": self.is_expired,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Complete, authoritative ledger contents at one point in time.

    The store pushes a whole new snapshot on every change; the engine
    never merges or diffs. `version` identifies the snapshot for
    memoization.
    """
    sales: Tuple[Sale, ...] = ()
    version: int = 0

    @classmethod
    def from_records(cls, records: Any, version: int = 0, strict: bool = False) -> "LedgerSnapshot":
        """
        Parse raw store records into a snapshot (None means empty).

        With strict=True a record that is not a mapping raises
        LedgerDataError instead of becoming an empty sale.
        """
        return cls(
            sales=tuple(Sale.from_dict(r, strict=strict) for r in (records or [])),
            version=version,
        )

    def __len__(self) -> int:
        return len(self.sales)
