"""Tests for the structured logging system (production_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from production_kernel.exceptions import ZeroQuantityLotError
from production_kernel.logging_config import (
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
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    return logging.StreamHandler(stream), stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _log_one(message: str, **kwargs) -> dict:
    handler, stream = _make_handler()
    configure_logging(handler=handler)
    get_logger("test").info(message, **kwargs)
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_envelope(self):
        record = _log_one("hello")

        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "production_kernel.test"
        assert "ts" in record

    def test_extra_fields_serialized(self):
        record = _log_one(
            "shares_recomputed",
            extra={"row_count": 3, "total_quantity": Decimal("33.333333333"), "ids": (1, 2)},
        )

        assert record["row_count"] == 3
        assert record["total_quantity"] == "33.333333333"
        assert record["ids"] == [1, 2]

    def test_context_fields_included(self):
        with LogContext.bind(project_id=5, lot_no="12"):
            record = _log_one("catch_stop_toggled")

        assert record["project_id"] == "5"
        assert record["lot_no"] == "12"

    def test_no_context_fields_when_unbound(self):
        record = _log_one("bare_message")

        assert "project_id" not in record
        assert "lot_no" not in record

    def test_kernel_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ZeroQuantityLotError(5, "3")
        except ZeroQuantityLotError:
            get_logger("test").error("recompute_failed", exc_info=True)

        record = _parse_all_logs(stream)[0]
        assert record["exc_type"] == "ZeroQuantityLotError"
        assert record["exc_code"] == "ZERO_QUANTITY_LOT"
        assert record["exc_project_id"] == 5
        assert record["exc_lot_no"] == "3"
        assert "traceback" in record

    def test_level_filters_lines(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.debug("dropped")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first"]


class TestLogContext:
    """Tests for context propagation."""

    def test_bind_restores_previous_value(self):
        with LogContext.bind(lot_no="outer"):
            with LogContext.bind(lot_no="inner"):
                assert LogContext.get_all()["lot_no"] == "inner"
            assert LogContext.get_all()["lot_no"] == "outer"
        assert LogContext.get_all() == {}

    def test_bind_stringifies_and_skips_none(self):
        with LogContext.bind(project_id=42, lot_no=None):
            assert LogContext.get_all() == {"project_id": "42"}

    def test_clear(self):
        with LogContext.bind(project_id=1):
            LogContext.clear()
            assert LogContext.get_all() == {}


class TestConfigureLogging:
    """Tests for initialization and reset."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op

        root = logging.getLogger("production_kernel")
        assert h1 in root.handlers
        assert h2 not in root.handlers
        structured = [
            h for h in root.handlers if isinstance(h.formatter, StructuredFormatter)
        ]
        assert structured == [h1]

    def test_reset_keeps_foreign_handlers(self):
        root = logging.getLogger("production_kernel")
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            installed, _ = _make_handler()
            configure_logging(handler=installed)

            reset_logging()

            assert installed not in root.handlers
            assert foreign in root.handlers
        finally:
            root.removeHandler(foreign)

    def test_level_name_accepted(self):
        configure_logging(level="DEBUG", handler=_make_handler()[0])
        assert logging.getLogger("production_kernel").level == logging.DEBUG

    def test_child_logger_inherits_configuration(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("services.quantity_allocation")
        child.debug("hierarchy_test")

        record = _parse_all_logs(stream)[0]
        assert child.name == "production_kernel.services.quantity_allocation"
        assert record["logger"] == "production_kernel.services.quantity_allocation"
