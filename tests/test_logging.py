"""Tests for the structured logging system (rental_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Give each test an unconfigured logger tree, then restore the suite's."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


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
    """One JSON object per line."""

    def test_basic_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("schedule_generated")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "schedule_generated"
        assert record["logger"] == "rental_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("schedule_generated", extra={"period_count": 6, "rental_period": "month"})

        record = _parse_log(stream)
        assert record["period_count"] == 6
        assert record["rental_period"] == "month"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(agreement_id="agr-1", payment_id="pay-9")
        get_logger("test").info("payment_recorded")

        record = _parse_log(stream)
        assert record["agreement_id"] == "agr-1"
        assert record["payment_id"] == "pay-9"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "agreement_id" not in record
        assert "actor_id" not in record

    def test_decimal_date_and_uuid_serialized(self):
        from datetime import date
        from decimal import Decimal

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "payment_allocated",
            extra={"schedule_id": uid, "amount": Decimal("150.00"), "due_date": date(2024, 2, 1)},
        )

        record = _parse_log(stream)
        assert record["schedule_id"] == str(uid)
        assert record["amount"] == "150.00"
        assert record["due_date"] == "2024-02-01"

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
        """Kernel errors contribute their code and structured attributes."""
        from rental_kernel.exceptions import InvalidLateFeePolicyError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidLateFeePolicyError("grace_period_days", -1, "must be a non-negative integer")
        except InvalidLateFeePolicyError:
            get_logger("test").error("policy_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_LATE_FEE_POLICY"
        assert record["exc_type"] == "InvalidLateFeePolicyError"
        assert record["exc_field"] == "grace_period_days"
        assert record["exc_value"] == -1

    def test_default_level_drops_debug(self):
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
    """Request-scoped fields."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", agreement_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "agreement_id": "y"}

    def test_set_is_additive(self):
        LogContext.set(actor_id="a")
        LogContext.set(payment_id="p")
        assert LogContext.get_all() == {"actor_id": "a", "payment_id": "p"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(agreement_id="outer")
        with LogContext.bind(agreement_id="inner"):
            assert LogContext.get_all()["agreement_id"] == "inner"
        assert LogContext.get_all()["agreement_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(payment_id="temp"):
            assert LogContext.get_all()["payment_id"] == "temp"
        assert "payment_id" not in LogContext.get_all()

    def test_bind_stringifies_uuids(self):
        uid = uuid4()
        with LogContext.bind(agreement_id=uid):
            assert LogContext.get_all()["agreement_id"] == str(uid)

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(tenant="t", trace_id="tr"):
            assert LogContext.get_all() == {"trace_id": "tr"}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert logging.getLogger("rental_kernel").handlers == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("modules.schedules").name == "rental_kernel.modules.schedules"

    def test_children_inherit_config(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("engines.status").debug("schedule_status_projected")

        record = _parse_log(stream)
        assert record["logger"] == "rental_kernel.engines.status"
