"""Tests for the structured logging system (stock_kernel/logging_config.py)."""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

import pytest

from stock_kernel.domain.events import StockEventKind
from stock_kernel.exceptions import LedgerCorruption
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "stock_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("stock_committed", extra={"new_balance": 7, "kind": "outbound"})

        record = _parse_log(stream)
        assert record["new_balance"] == 7
        assert record["kind"] == "outbound"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(product_id="WIDGET", reference_id="PO-9")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["product_id"] == "WIDGET"
        assert record["reference_id"] == "PO-9"

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise LedgerCorruption("WIDGET", 12, "balance would become -3")
        except LedgerCorruption:
            logger.error("replay_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "LEDGER_CORRUPTION"
        assert record["exc_type"] == "LedgerCorruption"
        assert record["exc_product_id"] == "WIDGET"
        assert record["exc_position"] == 12
        assert "traceback" in record

    def test_decimal_datetime_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info(
            "typed_values",
            extra={
                "amount": Decimal("12.50"),
                "at": datetime(2025, 11, 1, 9, 0, tzinfo=UTC),
                "event_kind": StockEventKind.INBOUND,
            },
        )

        record = _parse_log(stream)
        assert record["amount"] == "12.50"
        assert record["at"].startswith("2025-11-01T09:00:00")
        assert record["event_kind"] == "inbound"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "product_id" not in record
        assert "event_id" not in record

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # Default level is INFO
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", product_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "product_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(product_id="outer")
        with LogContext.bind(product_id="inner"):
            assert LogContext.get_all()["product_id"] == "inner"
        assert LogContext.get_all()["product_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(reference_id="temp"):
            assert LogContext.get_all()["reference_id"] == "temp"
        assert "reference_id" not in LogContext.get_all()

    def test_bind_stringifies_values(self):
        with LogContext.bind(event_id=42):
            assert LogContext.get_all()["event_id"] == "42"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            operation="append",
            event_id="e",
            product_id="p",
            reference_id="r",
        )
        assert len(LogContext.get_all()) == 5

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(warehouse="north")

    def test_bind_skips_none(self):
        with LogContext.bind(product_id="WIDGET", reference_id=None):
            assert LogContext.get_all() == {"product_id": "WIDGET"}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        handlers = logging.getLogger("stock_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers
        structured = [h for h in handlers if isinstance(h.formatter, StructuredFormatter)]
        assert structured == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("services.ledger_engine").name == "stock_kernel.services.ledger_engine"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "stock_kernel.deep.nested.module"
