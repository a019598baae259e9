"""
Integration tests for ledger_core/observability.py
"""
import json
import logging
import pytest

from ledger_core.observability import (
    HumanReadableFormatter,
    StructuredFormatter,
    Timer,
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    timed,
)


def _record(msg="Views recomputed", **extra):
    record = logging.LogRecord("ledger_core.service", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationId:
    """Tests for correlation ID context."""

    def test_no_id_outside_context(self):
        """No correlation ID is bound by default."""
        assert get_correlation_id() is None

    def test_context_sets_and_restores(self):
        """The previous ID is restored on exit."""
        with correlation_context("abc") as cid:
            assert cid == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() is None

    def test_generated_id(self):
        """Generated IDs are 8 hex characters."""
        assert len(generate_correlation_id()) == 8
        with correlation_context() as cid:
            assert get_correlation_id() == cid


class TestFormatters:
    """Tests for log formatters."""

    def test_structured(self):
        """JSON lines include the correlation ID and extras."""
        with correlation_context("abc"):
            output = StructuredFormatter().format(_record(sales=4))
        entry = json.loads(output)
        assert entry["message"] == "Views recomputed"
        assert entry["correlation_id"] == "abc"
        assert entry["sales"] == 4
        assert entry["level"] == "INFO"

    def test_human_readable(self):
        """Console lines include logger, message and extras."""
        output = HumanReadableFormatter().format(_record(sales=4))
        assert "ledger_core.service" in output
        assert "Views recomputed" in output
        assert "'sales': 4" in output


class TestTimer:
    """Tests for Timer and timed."""

    def test_timer_measures(self):
        """Timer records elapsed time without a logger."""
        with Timer("noop") as t:
            sum(range(1000))
        assert t.elapsed_ms >= 0

    def test_timer_warns_when_slow(self, caplog):
        """Over the threshold the duration is logged as a warning."""
        logger = logging.getLogger("ledger_core.test_timer")
        with caplog.at_level(logging.DEBUG, logger="ledger_core.test_timer"):
            with Timer("recompute_views", logger, warn_threshold_ms=-1):
                pass
        assert caplog.records[-1].levelno == logging.WARNING
        assert caplog.records[-1].duration_ms >= 0

    def test_timed_sync(self):
        """The decorator keeps the wrapped function's name and result."""
        @timed("double")
        def double(x):
            return x * 2

        assert double(4) == 8
        assert double.__name__ == "double"

    @pytest.mark.asyncio
    async def test_timed_async(self):
        """Coroutines are awaited inside the timer."""
        @timed()
        async def triple(x):
            return x * 3

        assert await triple(3) == 9
