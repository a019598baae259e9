"""
Ledger analytics engine for a subscription-reselling business.

Turns a ledger snapshot (sales records pushed by the document store)
into dashboard, analytics, customer, vendor-dues, expiry, pending and
history views:
- models: Ledger records and derived entities
- filters: Local-calendar date filtering
- aggregation / renewals / ranking / buckets: Pure aggregation stages
- views: View assembly
- service: Reactive recompute-and-publish wiring
- export: Export boundary
"""

# Import in dependency order
from ledger_core.exceptions import (
    LedgerError,
    LedgerDataError,
    ValidationError,
)

from ledger_core.config import config, ConfigurationError, validate_config

from ledger_core.models import (
    LedgerSnapshot,
    Sale,
    ToolItem,
)

from ledger_core.filters import (
    ALL_TIME,
    FilterDescriptor,
    filter_sales,
    filter_by_date_strings,
)

from ledger_core.views import (
    LedgerViews,
    build_views,
    build_expiry_view,
    build_pending_view,
    build_history_day,
)

from ledger_core.export import export_sales

from ledger_core.events import LedgerEvent, events

from ledger_core.service import DashboardService

__all__ = [
    # Exceptions
    "LedgerError",
    "LedgerDataError",
    "ValidationError",
    # Config
    "config",
    "ConfigurationError",
    "validate_config",
    # Models
    "LedgerSnapshot",
    "Sale",
    "ToolItem",
    # Filters
    "ALL_TIME",
    "FilterDescriptor",
    "filter_sales",
    "filter_by_date_strings",
    # Views
    "LedgerViews",
    "build_views",
    "build_expiry_view",
    "build_pending_view",
    "build_history_day",
    # Export
    "export_sales",
    # Events
    "LedgerEvent",
    "events",
    "DashboardService",
]
