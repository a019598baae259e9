"""
Tests for ledger_core.models module.
"""
import math
import pytest
from datetime import datetime, timezone

from ledger_core.exceptions import LedgerDataError
from ledger_core.models import (
    Client,
    ClientStatus,
    Finance,
    LedgerSnapshot,
    NO_PLAN,
    Sale,
    ToolItem,
    Vendor,
    coerce_number,
    parse_timestamp,
)


class TestCoerceNumber:
    """Tests for coerce_number helper."""

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), float("inf"), [1]])
    def test_unusable_values_are_zero(self, value):
        """Missing or non-numeric values become 0."""
        assert coerce_number(value) == 0.0

    def test_numeric_strings(self):
        """Numeric strings are parsed."""
        assert coerce_number("12.5") == 12.5

    def test_numbers_pass_through(self):
        """Ints and floats are returned as floats."""
        assert coerce_number(7) == 7.0
        assert coerce_number(-3.25) == -3.25


class TestParseTimestamp:
    """Tests for parse_timestamp helper."""

    def test_epoch_millis(self):
        """Epoch milliseconds pass through unchanged."""
        assert parse_timestamp(1760000000000) == 1760000000000

    def test_numeric_string(self):
        """Digit strings are read as epoch milliseconds."""
        assert parse_timestamp("1760000000000") == 1760000000000

    def test_iso_string_with_z(self):
        """Trailing Z is read as UTC."""
        expected = int(datetime(2026, 10, 5, 10, 0, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_timestamp("2026-10-05T10:00:00Z") == expected

    def test_naive_datetime_is_utc(self):
        """Naive datetimes are taken as UTC."""
        expected = int(datetime(2026, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_timestamp(datetime(2026, 1, 1)) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", True, float("nan"), {}])
    def test_unparsable_is_none(self, value):
        """Anything else becomes None."""
        assert parse_timestamp(value) is None


class TestClientVendor:
    """Tests for Client and Vendor status helpers."""

    def test_missing_status_is_not_clear(self):
        """Only an explicit Clear settles the client."""
        client = Client.from_dict({"name": "Ali"})
        assert client.status is None
        assert not client.is_clear
        assert not client.is_receivable

    def test_receivable_statuses(self):
        """Pending and Partial clients owe money."""
        assert Client(status="Pending").is_receivable
        assert Client(status="Partial").is_receivable
        assert not Client(status="Clear").is_receivable
        assert ClientStatus.receivable_statuses() == {"Pending", "Partial"}

    def test_vendor_paid(self):
        """Only Paid settles a vendor."""
        assert Vendor.from_dict({"name": "Acme", "status": "Paid"}).is_paid
        assert not Vendor.from_dict({"name": "Acme", "status": "Credit"}).is_paid
        assert not Vendor.from_dict(None).is_paid


class TestToolItem:
    """Tests for ToolItem model."""

    def test_from_dict(self):
        """Store keys are mapped to attribute names."""
        tool = ToolItem.from_dict({
            "name": "Netflix",
            "type": "Shared",
            "plan": "Premium",
            "pDate": "2026-10-05",
            "eDate": "2026-11-04",
            "sell": "1000",
            "cost": 600,
            "pass": "secret",
            "profileName": "Kids",
            "profilePin": "1234",
        })
        assert tool.purchase_date == "2026-10-05"
        assert tool.expiry_date == "2026-11-04"
        assert tool.sell == 1000.0
        assert tool.password == "secret"
        assert tool.profile_name == "Kids"
        assert tool.profile_pin == "1234"
        assert tool.profit == 400.0

    def test_variant_key_uses_placeholder_for_empty_plan(self):
        """An empty plan is shown as No Plan."""
        tool = ToolItem(name="Netflix", type="Shared")
        assert tool.plan_label == NO_PLAN
        assert tool.variant_key == "Netflix-Shared-No Plan"

    def test_missing_numbers_are_zero(self):
        """Missing prices default to 0."""
        tool = ToolItem.from_dict({"name": "Canva"})
        assert tool.sell == 0.0
        assert tool.cost == 0.0


class TestSale:
    """Tests for Sale model."""

    def test_from_dict(self, sample_records):
        """Complete record is parsed."""
        sale = Sale.from_dict(sample_records[0])
        assert sale.id == "s1"
        assert sale.client.phone == "03001111111"
        assert sale.vendor.name == "Acme"
        assert len(sale.items) == 1
        assert sale.finance.total_sell == 1000.0
        assert sale.finance.total_profit == 400.0

    def test_empty_record(self):
        """Missing sections become empty defaults."""
        sale = Sale.from_dict({})
        assert sale.id is None
        assert sale.created_at is None
        assert sale.items == []
        assert sale.finance == Finance()

    def test_items_not_a_list(self):
        """A malformed items field gives no items."""
        sale = Sale.from_dict({"items": "Netflix"})
        assert sale.items == []

    def test_non_mapping_lenient(self):
        """Non-mapping input is tolerated by default."""
        assert Sale.from_dict(None).items == []

    def test_non_mapping_strict(self):
        """Strict mode rejects non-mapping input."""
        with pytest.raises(LedgerDataError) as exc_info:
            Sale.from_dict(["not", "a", "dict"], strict=True)
        assert "list" in str(exc_info.value)

    def test_items_sell_total(self, sales_by_id):
        """Sum of item sell prices."""
        assert sales_by_id["s1"].items_sell_total == 1000.0

    def test_nan_finance(self):
        """NaN finance values are read as 0."""
        sale = Sale.from_dict({"finance": {"totalSell": float("nan")}})
        assert not math.isnan(sale.finance.total_sell)
        assert sale.finance.total_sell == 0.0


class TestLedgerSnapshot:
    """Tests for LedgerSnapshot."""

    def test_from_records(self, sample_records):
        """Snapshots keep every record and the version."""
        snapshot = LedgerSnapshot.from_records(sample_records, version=3)
        assert len(snapshot) == 5
        assert snapshot.version == 3
        assert isinstance(snapshot.sales, tuple)

    def test_none_is_empty(self):
        """A missing ledger is an empty snapshot."""
        assert len(LedgerSnapshot.from_records(None)) == 0

    def test_strict_rejects_non_mapping(self, sample_records):
        """A stray non-mapping record aborts a strict parse."""
        with pytest.raises(LedgerDataError):
            LedgerSnapshot.from_records([*sample_records, "garbage"], strict=True)

    def test_lenient_keeps_non_mapping_as_empty_sale(self, sample_records):
        """By default a bad record becomes an empty sale."""
        snapshot = LedgerSnapshot.from_records([*sample_records, "garbage"])
        assert len(snapshot) == 6
        assert snapshot.sales[-1].id is None
