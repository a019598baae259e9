"""
Dashboard service: subscribe -> on change -> recompute -> publish.

Keeps the current snapshot and filter, recomputes every view from
scratch when either changes, and publishes the result on the event
bus. All aggregation is delegated to ledger_core.views; this module
only owns the wiring and the memo.
"""
from datetime import date, tzinfo as TzInfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ledger_core.aggregation import SaleGroup
from ledger_core.cache import ViewCache
from ledger_core.config import AnalyticsConfig, config
from ledger_core.events import EventBus, LedgerEvent, events
from ledger_core.export import Exporter, export_sales
from ledger_core.filters import ALL_TIME, FilterDescriptor, resolve_tz, today
from ledger_core.models import LedgerSnapshot
from ledger_core.observability import Timer, correlation_context, get_logger
from ledger_core.views import (
    ExpiryView,
    HistoryDayView,
    LedgerViews,
    PendingView,
    build_expiry_view,
    build_history_day,
    build_history_groups,
    build_pending_view,
    build_views,
    export_window_sales,
)

logger = get_logger(__name__)

LedgerInput = Union[LedgerSnapshot, Iterable[Dict[str, Any]], None]


class DashboardService:
    """
    Reactive owner of the current ledger snapshot and filter.

    Usage:
        service = DashboardService()
        service.attach()
        await events.emit(LedgerEvent.LEDGER_UPDATED, {"records": docs})
        service.views.dashboard.totals
    """

    def __init__(
        self,
        bus: EventBus = events,
        cache: Optional[ViewCache] = None,
        tz: Optional[TzInfo] = None,
        settings: AnalyticsConfig = config.analytics,
        clock: Optional[Callable[[], date]] = None,
    ):
        self._bus = bus
        self._cache = cache if cache is not None else ViewCache()
        self._tz = resolve_tz(tz)
        self._settings = settings
        self._clock = clock or (lambda: today(self._tz))
        self._snapshot = LedgerSnapshot()
        self._descriptor = ALL_TIME
        self._views: Optional[LedgerViews] = None
        self._attached = False

    # ─── Subscription ───────────────────────────────────────────────────────

    def attach(self) -> None:
        """Subscribe to ledger and filter changes on the bus."""
        if self._attached:
            return
        self._bus.subscribe(LedgerEvent.LEDGER_UPDATED, self._on_ledger_updated)
        self._bus.subscribe(LedgerEvent.FILTER_CHANGED, self._on_filter_changed)
        self._attached = True

    def detach(self) -> None:
        self._bus.unsubscribe(LedgerEvent.LEDGER_UPDATED, self._on_ledger_updated)
        self._bus.unsubscribe(LedgerEvent.FILTER_CHANGED, self._on_filter_changed)
        self._attached = False

    async def _on_ledger_updated(self, data: Dict[str, Any]) -> None:
        await self.update_ledger(data.get("snapshot") or data.get("records"))

    async def _on_filter_changed(self, data: Dict[str, Any]) -> None:
        descriptor = data.get("descriptor")
        if not isinstance(descriptor, FilterDescriptor):
            descriptor = FilterDescriptor.from_dict(data)
        await self.set_filter(descriptor)

    # ─── State ──────────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    @property
    def descriptor(self) -> FilterDescriptor:
        return self._descriptor

    @property
    def views(self) -> Optional[LedgerViews]:
        """Views from the last recomputation (None before the first one)."""
        return self._views

    @property
    def cache(self) -> ViewCache:
        return self._cache

    def _as_snapshot(self, ledger: LedgerInput) -> LedgerSnapshot:
        if isinstance(ledger, LedgerSnapshot):
            return ledger
        return LedgerSnapshot.from_records(
            ledger,
            version=self._snapshot.version + 1,
            strict=self._settings.strict_parsing,
        )

    # ─── Recomputation ──────────────────────────────────────────────────────

    def compute(
        self,
        descriptor: Optional[FilterDescriptor] = None,
        reference_date: Optional[date] = None,
    ) -> LedgerViews:
        """
        Views for the current snapshot, memoized per (snapshot, filter, day).

        Does not change the active filter; safe to call for any window.
        """
        descriptor = descriptor or self._descriptor
        ref = reference_date or self._clock()
        snapshot = self._snapshot
        key = (id(snapshot), snapshot.version, descriptor.cache_key, ref.isoformat())

        def _build() -> LedgerViews:
            with Timer(
                "recompute_views", logger, warn_threshold_ms=config.cache.slow_recompute_ms
            ):
                return build_views(snapshot, descriptor, ref, self._tz, self._settings)

        return self._cache.get_or_compute(key, _build)

    async def _recompute_and_publish(self, reason: str) -> LedgerViews:
        with correlation_context():
            try:
                views = self.compute()
            except Exception as e:
                logger.exception(f"Recompute failed after {reason}")
                await self._bus.emit(
                    LedgerEvent.RECOMPUTE_FAILED,
                    {"reason": reason, "error": str(e)},
                    source="dashboard_service",
                )
                raise

            self._views = views
            logger.info(
                f"Views recomputed after {reason}",
                extra={
                    "sales": len(self._snapshot),
                    "filtered": len(views.filtered_sales),
                    "filter": self._descriptor.to_dict(),
                },
            )
            await self._bus.emit(
                LedgerEvent.VIEWS_PUBLISHED,
                {"views": views, "reason": reason, "version": self._snapshot.version},
                source="dashboard_service",
            )
            return views

    async def update_ledger(self, ledger: LedgerInput) -> LedgerViews:
        """Replace the snapshot with a complete new one and republish."""
        self._snapshot = self._as_snapshot(ledger)
        if self._cache.invalidate("ledger updated"):
            await self._bus.emit(
                LedgerEvent.CACHE_INVALIDATED,
                {"reason": "ledger updated"},
                source="dashboard_service",
            )
        return await self._recompute_and_publish("ledger update")

    async def set_filter(self, descriptor: FilterDescriptor) -> LedgerViews:
        """Change the active filter and republish."""
        self._descriptor = descriptor
        return await self._recompute_and_publish("filter change")

    # ─── Secondary screens ──────────────────────────────────────────────────

    def expiry(self, reference_date: Any = None) -> ExpiryView:
        """Expiry windows around a date (default: today)."""
        return build_expiry_view(self._snapshot.sales, reference_date or self._clock())

    def pending(self) -> PendingView:
        return build_pending_view(self._snapshot.sales)

    def history_day(self, day: Any = None) -> HistoryDayView:
        return build_history_day(self._snapshot.sales, day or self._clock(), self._tz)

    def history_groups(self, search: str = "") -> Dict[str, List[SaleGroup]]:
        return build_history_groups(self._snapshot.sales, search)

    # ─── Export ─────────────────────────────────────────────────────────────

    def export_filtered(
        self,
        exporter: Exporter,
        preferences: Optional[Dict[str, bool]] = None,
    ) -> int:
        """Hand the currently filtered sales to an external exporter."""
        views = self._views or self.compute()
        return export_sales(views.filtered_sales, exporter, preferences, self._tz)

    def export_range(
        self,
        exporter: Exporter,
        date_from: Any,
        date_to: Any,
        preferences: Optional[Dict[str, bool]] = None,
    ) -> int:
        """Hand the sales of an inclusive YYYY-MM-DD window to an exporter."""
        sales = export_window_sales(self._snapshot.sales, date_from, date_to, self._tz)
        return export_sales(sales, exporter, preferences, self._tz)
