"""
Tests for ledger_core.export module.
"""
import logging

import pandas as pd

from ledger_core.export import (
    COLUMN_NAMES,
    active_columns,
    build_export_table,
    duration_days,
    export_sales,
)
from ledger_core.models import Sale, ToolItem


class RecordingExporter:
    """Exporter stub that keeps what it was handed."""

    def __init__(self):
        self.calls = []

    def __call__(self, headers, rows):
        self.calls.append((headers, rows))


class TestDuration:
    def test_days_between_dates(self):
        """Duration is the day count between purchase and expiry."""
        assert duration_days(ToolItem(name="X", purchase_date="2026-10-05", expiry_date="2026-11-04")) == 30

    def test_missing_dates(self):
        """No dates means no duration."""
        assert duration_days(ToolItem(name="X")) is None


class TestColumns:
    """Tests for column preferences."""

    def test_default_all_columns(self):
        """Without preferences every column is exported."""
        assert [c.key for c in active_columns()] == list(COLUMN_NAMES)
        assert len(COLUMN_NAMES) == 16

    def test_only_false_drops(self):
        """Only an explicit False removes a column."""
        columns = active_columns({"Password": False, "Email": True, "Unknown": False})
        keys = [c.key for c in columns]
        assert "Password" not in keys
        assert "Email" in keys
        assert len(keys) == 15


class TestBuildExportTable:
    """Tests for row flattening."""

    def test_row_values(self, sales_by_id, tz):
        """One row per item with local activation date and placeholders."""
        table = build_export_table([sales_by_id["s1"]], tz=tz)
        row = dict(zip(table.headers, table.rows[0]))
        assert row["Activation Date"] == "2026-10-05"
        assert row["Client"] == "Ali"
        assert row["Tool Name"] == "Netflix"
        assert row["Duration"] == "30 Days"
        assert row["Password"] == "secret"
        assert row["Profile PIN"] == "-"
        assert row["Profit"] == 400

    def test_summary_row(self, sample_sales, tz):
        """Totals sit under their own columns."""
        table = build_export_table(sample_sales, tz=tz)
        summary = dict(zip(table.headers, table.summary))
        assert len(table.rows) == 5
        assert summary["Sale"] == 3600
        assert summary["Cost"] == 2000
        assert summary["Profit"] == 1600
        assert summary["Tool Name"] == "Total Orders: 5"
        assert summary["Client"] == ""

    def test_undated_sale_placeholder(self, sales_by_id, tz):
        """Undated sales get a dash for the activation date."""
        table = build_export_table([sales_by_id["s5"]], tz=tz)
        assert table.rows[0][0] == "-"

    def test_sale_without_items(self, tz):
        """Sales without items produce no rows and no summary."""
        table = build_export_table([Sale.from_dict({"id": "empty"})], tz=tz)
        assert table.rows == []
        assert table.all_rows == []

    def test_to_frame(self, sample_sales, tz):
        """The table converts to a DataFrame with the active columns."""
        frame = build_export_table(sample_sales, {"Password": False}, tz).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert "Password" not in frame.columns
        assert len(frame) == 6
        assert len(build_export_table(sample_sales, tz=tz).to_frame(include_summary=False)) == 5


class TestExportSales:
    """Tests for the exporter hand-off."""

    def test_calls_exporter(self, sample_sales, tz):
        """The exporter receives headers and rows plus the totals row."""
        exporter = RecordingExporter()
        assert export_sales(sample_sales, exporter, tz=tz) == 5
        headers, rows = exporter.calls[0]
        assert headers == list(COLUMN_NAMES)
        assert len(rows) == 6

    def test_nothing_to_export(self, tz):
        """The exporter is not called for an empty table."""
        exporter = RecordingExporter()
        assert export_sales([], exporter, tz=tz) == 0
        assert exporter.calls == []

    def test_table_build_is_timed(self, sample_sales, tz, caplog):
        """Building the table logs its duration."""
        with caplog.at_level(logging.DEBUG, logger="ledger_core.export"):
            build_export_table(sample_sales, tz=tz)
        timings = [r for r in caplog.records if getattr(r, "operation", None) == "build_export_table"]
        assert len(timings) == 1
        assert timings[0].duration_ms >= 0
