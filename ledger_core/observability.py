"""
Logging, correlation IDs and timing helpers.

Every recomputation runs under a correlation ID so that the log lines of
one filter -> aggregate -> publish pass can be grouped, together with the
events it emits.

Usage:
    from ledger_core.observability import setup_logging, get_logger, Timer

    setup_logging()
    logger = get_logger(__name__)

    with Timer("recompute_views", logger) as t:
        views = build_views(snapshot, descriptor)
"""
import asyncio
import functools
import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ledger_core.config import config

_correlation_id: ContextVar[Optional[str]] = ContextVar("ledger_correlation_id", default=None)

# Attributes every LogRecord has; anything else was passed via `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the running recomputation, if any."""
    return _correlation_id.get()


def generate_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


class correlation_context:
    """
    Bind a correlation ID for the duration of a block.

    Usage:
        with correlation_context() as cid:
            await service.update_ledger(records)
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or generate_correlation_id()
        self._token = None

    def __enter__(self) -> str:
        self._token = _correlation_id.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, *exc_info) -> None:
        _correlation_id.reset(self._token)


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# FORMATTERS
# ═══════════════════════════════════════════════════════════════════════════════

class StructuredFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, correlation_id and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = get_correlation_id()
        if cid:
            payload["correlation_id"] = cid
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    Format: TIMESTAMP LEVEL LOGGER [CORRELATION_ID] MESSAGE | extras
    """

    def format(self, record: logging.LogRecord) -> str:
        cid = get_correlation_id()
        parts = [
            _utc_now().strftime("%Y-%m-%d %H:%M:%S"),
            f"{record.levelname:<8}",
            record.name + (f" [{cid}]" if cid else ""),
            "-",
            record.getMessage(),
        ]
        line = " ".join(parts)

        extras = _record_extras(record)
        if extras:
            line = f"{line} | {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """
    Install a single root handler.

    Args:
        level: Log level name (default: LOG_LEVEL from config)
        json_format: JSON lines instead of console format (default: LOG_JSON)
    """
    level = level or config.logging.level
    if json_format is None:
        json_format = config.logging.json_format

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

class Timer:
    """
    Measure a block and log its duration.

    Logged at DEBUG, or WARNING once warn_threshold_ms is exceeded.

    Usage:
        with Timer("customer_profiles") as t:
            profiles = build_customer_profiles(sales)
        t.elapsed_ms
    """

    def __init__(
        self,
        name: str,
        logger: Optional[logging.Logger] = None,
        warn_threshold_ms: float = 1000,
    ):
        self.name = name
        self.logger = logger
        self.warn_threshold_ms = warn_threshold_ms
        self._started: float = 0.0
        self.elapsed_ms: float = 0.0

    @property
    def is_slow(self) -> bool:
        return self.elapsed_ms > self.warn_threshold_ms

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if self.logger is None:
            return
        self.logger.log(
            logging.WARNING if self.is_slow else logging.DEBUG,
            f"{self.name} took {self.elapsed_ms:.1f}ms",
            extra={"operation": self.name, "duration_ms": round(self.elapsed_ms, 2)},
        )


def timed(name: Optional[str] = None, warn_threshold_ms: float = 1000):
    """
    Decorator form of Timer for sync and async functions.

    Args:
        name: Operation name (defaults to function name)
        warn_threshold_ms: Log at WARNING level above this duration
    """
    def decorator(func: Callable) -> Callable:
        label = name or func.__name__
        log = get_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with Timer(label, log, warn_threshold_ms):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with Timer(label, log, warn_threshold_ms):
                return func(*args, **kwargs)
        return wrapper

    return decorator
