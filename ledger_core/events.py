"""
Publish/subscribe bus for ledger changes and recomputed views.

The store side emits LEDGER_UPDATED with a fresh snapshot; callers emit
FILTER_CHANGED; the dashboard service recomputes and emits
VIEWS_PUBLISHED. Aggregation code never touches the bus.

Usage:
    from ledger_core.events import events, LedgerEvent

    @events.on(LedgerEvent.VIEWS_PUBLISHED)
    async def render(data: dict):
        print(data["views"].dashboard.totals)

    await events.emit(LedgerEvent.LEDGER_UPDATED, {"snapshot": snapshot})
"""
import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from itertools import count
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from ledger_core.observability import get_correlation_id, get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]

_event_ids = count(1)


class LedgerEvent(Enum):
    """Events flowing between the ledger store, the engine and presentation."""

    LEDGER_UPDATED = "ledger.updated"
    FILTER_CHANGED = "filter.changed"
    VIEWS_PUBLISHED = "views.published"
    RECOMPUTE_FAILED = "views.recompute_failed"
    CACHE_INVALIDATED = "cache.invalidated"


@dataclass
class EventMetadata:
    """Where and when an event was emitted."""

    source: str = "ledger"
    event_id: int = field(default_factory=lambda: next(_event_ids))
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = field(default_factory=get_correlation_id)


@dataclass
class Event:
    type: LedgerEvent
    data: Dict[str, Any]
    metadata: EventMetadata = field(default_factory=EventMetadata)

    def to_dict(self) -> Dict[str, Any]:
        """
        Loggable summary.

        Payloads carry whole snapshots and views, so only their keys are
        included.
        """
        return {
            "event_type": self.type.value,
            "data_keys": sorted(self.data),
            "metadata": {
                "event_id": self.metadata.event_id,
                "timestamp": self.metadata.emitted_at.isoformat(),
                "correlation_id": self.metadata.correlation_id,
                "source": self.metadata.source,
            },
        }


class EventBus:
    """
    Async event bus.

    Handlers for one event run concurrently. A handler that raises is
    logged and does not affect the others or the emitter. Subscribing
    with event_type=None receives every event.
    """

    def __init__(self, max_history: int = 100):
        self._handlers: Dict[Optional[LedgerEvent], List[EventHandler]] = {}
        self._history: Deque[Event] = deque(maxlen=max_history)

    def on(
        self, event_type: Optional[LedgerEvent] = None
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of subscribe()."""

        def register(handler: EventHandler) -> EventHandler:
            self.subscribe(event_type, handler)
            return handler

        return register

    def subscribe(self, event_type: Optional[LedgerEvent], handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            f"Subscribed {getattr(handler, '__name__', handler)!s}",
            extra={"event_type": event_type.value if event_type else "*"},
        )

    def unsubscribe(self, event_type: Optional[LedgerEvent], handler: EventHandler) -> bool:
        """
        Remove a handler.

        Returns:
            True if the handler was subscribed
        """
        handlers = self._handlers.get(event_type, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def _handlers_for(self, event_type: LedgerEvent) -> List[EventHandler]:
        return [*self._handlers.get(event_type, []), *self._handlers.get(None, [])]

    async def emit(
        self,
        event_type: LedgerEvent,
        data: Optional[Dict[str, Any]] = None,
        source: str = "ledger",
    ) -> Event:
        """
        Deliver an event to its handlers and wildcard handlers.

        Returns:
            The emitted Event, after every handler has finished
        """
        event = Event(type=event_type, data=data or {}, metadata=EventMetadata(source=source))
        self._history.append(event)

        handlers = self._handlers_for(event_type)
        if not handlers:
            logger.debug(f"No handlers for {event_type.value}")
            return event

        outcomes = await asyncio.gather(
            *(handler(event.data) for handler in handlers),
            return_exceptions=True,
        )
        for handler, outcome in zip(handlers, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    f"Handler {getattr(handler, '__name__', handler)!s} failed on "
                    f"{event_type.value}: {outcome}",
                    extra={"event": event.to_dict()},
                )
        return event

    def get_history(
        self, event_type: Optional[LedgerEvent] = None, limit: int = 20
    ) -> List[Dict[str, Any]]:
        """Most recent events (oldest first), optionally of one type."""
        matching = [e for e in self._history if event_type is None or e.type == event_type]
        return [e.to_dict() for e in matching[-limit:]]

    def get_handlers(self) -> Dict[str, int]:
        """Handler count per event type; "*" counts wildcard handlers."""
        counts = {
            event_type.value: len(handlers)
            for event_type, handlers in self._handlers.items()
            if event_type is not None
        }
        counts["*"] = len(self._handlers.get(None, []))
        return counts

    def clear_handlers(self) -> None:
        self._handlers.clear()

    def clear_history(self) -> None:
        self._history.clear()


# Global event bus instance
events = EventBus()
