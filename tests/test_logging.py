"""Tests for the structured logging system (fieldservice_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from fieldservice_kernel.exceptions import InsufficientStockError
from fieldservice_kernel.logging_config import (
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


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "fieldservice_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("stock_decremented", extra={"new_stock": 3, "status": "available"})

        record = _parse_log(stream)
        assert record["new_stock"] == 3
        assert record["status"] == "available"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", quote_id="q-1")
        get_logger("test").info("approval_started")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["quote_id"] == "q-1"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "quote_id" not in record

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "work_order_created",
            extra={
                "work_order_id": uid,
                "scheduled_date": date(2024, 1, 3),
                "material_cost": Decimal("150.00"),
            },
        )

        record = _parse_log(stream)
        assert record["work_order_id"] == str(uid)
        assert record["scheduled_date"] == "2024-01-03"
        assert record["material_cost"] == "150.00"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientStockError("item-1", available=0, requested=2, item_label="Frio F9")
        except InsufficientStockError:
            get_logger("test").error("approval_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert record["exc_type"] == "InsufficientStockError"
        assert record["exc_item_id"] == "item-1"
        assert record["exc_available"] == 0
        assert record["exc_requested"] == 2

    def test_level_filters_debug(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", item_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "item_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_outer_value(self):
        LogContext.set(quote_id="outer")
        with LogContext.bind(quote_id="inner"):
            assert LogContext.get_all()["quote_id"] == "inner"
        assert LogContext.get_all()["quote_id"] == "outer"

    def test_bind_skips_none(self):
        LogContext.set(actor_id="kept")
        with LogContext.bind(correlation_id="c", actor_id=None):
            assert LogContext.get_all() == {"correlation_id": "c", "actor_id": "kept"}
        assert "correlation_id" not in LogContext.get_all()

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            quote_id="q",
            actor_id="a",
            item_id="i",
            trace_id="t",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("fieldservice_kernel").handlers) == 1

    def test_level_by_name(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="DEBUG")
        get_logger("test").debug("visible")

        assert _parse_log(stream)["message"] == "visible"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("services.quote_approval").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "fieldservice_kernel.services.quote_approval"

    def test_does_not_propagate_to_root(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert logging.getLogger("fieldservice_kernel").propagate is False


class TestLogContextFields:

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(event_id="e")
        with pytest.raises(TypeError):
            with LogContext.bind(producer="p"):
                pass

    def test_nested_binds_unwind(self):
        with LogContext.bind(quote_id="q1", actor_id="a"):
            with LogContext.bind(quote_id="q2"):
                assert LogContext.get_all() == {"quote_id": "q2", "actor_id": "a"}
            assert LogContext.get_all() == {"quote_id": "q1", "actor_id": "a"}
        assert LogContext.get_all() == {}
