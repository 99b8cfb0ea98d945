"""
Tests for the engine tracer decorator.

Every traced engine call emits one RENTAL_ENGINE_TRACE record carrying the
engine name, version and a deterministic input fingerprint.
"""

from datetime import date
from decimal import Decimal

import pytest

from rental_engines.late_fee import calculate_late_fee
from rental_engines.schedule import generate_schedule
from rental_engines.tracer import TRACE_TYPE, compute_input_fingerprint, traced_engine
from rental_kernel.exceptions import InvalidAgreementError


def _traces(captured_logs) -> list[dict]:
    return [r for r in captured_logs() if r.get("trace_type") == TRACE_TYPE]


class TestTraceRecord:
    """Shape of the emitted record."""

    def test_generator_emits_trace(self, make_agreement, captured_logs):
        generate_schedule(make_agreement())

        [trace] = _traces(captured_logs)
        assert trace["engine_name"] == "schedule_generator"
        assert trace["engine_version"] == "1.0"
        assert trace["logger"] == "rental_kernel.engines.tracer"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0

    def test_failed_call_emits_no_trace(self, make_agreement, captured_logs):
        with pytest.raises(InvalidAgreementError):
            generate_schedule(make_agreement(end_date=None))
        assert _traces(captured_logs) == []

    def test_wrapper_keeps_function_metadata(self):
        assert calculate_late_fee.__name__ == "calculate_late_fee"
        assert "Late fee" in calculate_late_fee.__doc__


class TestFingerprint:
    """Fingerprints depend on the selected inputs only."""

    def test_positional_and_keyword_calls_match(self, captured_logs):
        calculate_late_fee(10, Decimal("100"))
        calculate_late_fee(days_overdue=10, amount=Decimal("100"))

        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_equal_decimals_share_a_fingerprint(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("100")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("100.00")})
        assert a == b

    def test_different_inputs_differ(self):
        a = compute_input_fingerprint(("days",), {"days": 4})
        b = compute_input_fingerprint(("days",), {"days": 5})
        assert a != b

    def test_mapping_key_order_ignored(self):
        a = compute_input_fingerprint(("opts",), {"opts": {"x": 1, "y": date(2024, 1, 1)}})
        b = compute_input_fingerprint(("opts",), {"opts": {"y": date(2024, 1, 1), "x": 1}})
        assert a == b

    def test_missing_field_is_null(self):
        a = compute_input_fingerprint(("absent",), {})
        b = compute_input_fingerprint(("absent",), {"absent": None})
        assert a == b


class TestDecorator:
    """Behaviour of an ad-hoc traced function."""

    def test_argument_errors_propagate(self):
        @traced_engine("adder", "0.1", fingerprint_fields=("a",))
        def add(a, b):
            return a + b

        with pytest.raises(TypeError):
            add(1)

    def test_result_is_returned_unchanged(self, captured_logs):
        @traced_engine("adder", "0.1")
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        [trace] = _traces(captured_logs)
        assert trace["input_fingerprint"] == ""
        assert trace["function"].endswith("add")
