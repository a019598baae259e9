"""
Pytest configuration and shared fixtures.

All timestamps are built in the Asia/Karachi zone (UTC+5, no DST) and
every test passes that zone explicitly, so results do not depend on
LEDGER_TIMEZONE or the machine clock.
"""
import pytest
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from ledger_core.models import LedgerSnapshot, Sale


TZ = ZoneInfo("Asia/Karachi")

# A Saturday
REFERENCE_DATE = date(2026, 10, 17)


def local_ms(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    """Epoch milliseconds of a local wall-clock time in the test zone."""
    return int(datetime(year, month, day, hour, minute, tzinfo=TZ).timestamp() * 1000)


def make_record(
    record_id: str,
    created_at: Any,
    client: Optional[Dict[str, Any]] = None,
    vendor: Optional[Dict[str, Any]] = None,
    items: Optional[List[Dict[str, Any]]] = None,
    pending: float = 0,
) -> Dict[str, Any]:
    """Raw store record; finance totals are derived from the items."""
    items = items or []
    sell = sum(i.get("sell", 0) for i in items)
    cost = sum(i.get("cost", 0) for i in items)
    return {
        "id": record_id,
        "createdAt": created_at,
        "client": client or {},
        "vendor": vendor or {},
        "items": items,
        "finance": {
            "totalSell": sell,
            "totalCost": cost,
            "totalProfit": sell - cost,
            "pendingAmount": pending,
        },
    }


def item(name: str, type_: str = "Shared", plan: str = "", sell: float = 0, cost: float = 0,
         p_date: str = "", e_date: str = "", **extra) -> Dict[str, Any]:
    """Raw item fragment."""
    data = {
        "name": name,
        "type": type_,
        "plan": plan,
        "sell": sell,
        "cost": cost,
        "pDate": p_date,
        "eDate": e_date,
    }
    data.update(extra)
    return data


@pytest.fixture
def tz() -> ZoneInfo:
    """Local calendar zone used by every test."""
    return TZ


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    """
    Small ledger around the reference date.

    s1  Oct 5  Ali   Clear    Acme Paid    Netflix 1000/600
    s2  Oct 10 Ali   Pending  ACME Unpaid  Netflix 1000/600 (pending 500)
    s3  Sep 20 Sara  Partial  Beta Unpaid  Spotify 500/300 (pending 200)
    s4  Oct 17 00:00 Omar (no phone) Clear Beta Paid Canva 800/400
    s5  no createdAt, Zed, no status, Acme Unpaid, Netflix 300/100
    """
    return [
        make_record(
            "s1", local_ms(2026, 10, 5, 10),
            client={"name": "Ali", "phone": "03001111111", "status": "Clear"},
            vendor={"name": "Acme", "status": "Paid"},
            items=[item("Netflix", "Shared", "Premium", 1000, 600,
                        p_date="2026-10-05", e_date="2026-11-04",
                        email="ali@example.com", **{"pass": "secret"})],
        ),
        make_record(
            "s2", local_ms(2026, 10, 10, 15),
            client={"name": "Ali", "phone": "03001111111", "status": "Pending"},
            vendor={"name": "ACME", "status": "Unpaid"},
            items=[item("Netflix", "Shared", "Premium", 1000, 600,
                        p_date="2026-09-14", e_date="2026-10-14")],
            pending=500,
        ),
        make_record(
            "s3", local_ms(2026, 9, 20, 9),
            client={"name": "Sara", "phone": "03002222222", "status": "Partial"},
            vendor={"name": "Beta", "status": "Unpaid"},
            items=[item("Spotify", "Private", "", 500, 300,
                        p_date="2026-09-17", e_date="2026-10-17")],
            pending=200,
        ),
        make_record(
            "s4", local_ms(2026, 10, 17, 0),
            client={"name": "Omar", "phone": "", "status": "Clear"},
            vendor={"name": "Beta", "status": "Paid"},
            items=[item("Canva", "Shared", "Pro", 800, 400,
                        p_date="2026-09-20", e_date="2026-10-20")],
        ),
        make_record(
            "s5", None,
            client={"name": "Zed", "phone": "03005555555"},
            vendor={"name": "Acme", "status": "Unpaid"},
            items=[item("Netflix", "Shared", "Premium", 300, 100)],
        ),
    ]


@pytest.fixture
def sample_sales(sample_records) -> List[Sale]:
    """Parsed sample ledger."""
    return [Sale.from_dict(r) for r in sample_records]


@pytest.fixture
def sample_snapshot(sample_records) -> LedgerSnapshot:
    return LedgerSnapshot.from_records(sample_records, version=1)


@pytest.fixture
def sales_by_id(sample_sales) -> Dict[str, Sale]:
    return {s.id: s for s in sample_sales}
